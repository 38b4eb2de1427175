"""
slidepack - Writer
Turns a Presentation into a .pptx file: snapshot, validate, serialize,
merge into the template, write atomically, optionally open
"""

import logging
from pathlib import Path
from typing import Optional

from slidepack.config import Settings
from slidepack.package_assembler import PackageAssembler
from slidepack.serializer import PresentationSerializer
from slidepack.slides import Presentation
from slidepack.template_analyzer import TemplateAnalyzer
from slidepack.utils import open_file, setup_logger

logger = logging.getLogger(__name__)


class PresentationWriter:
    """Writes presentations using a template and the runtime settings"""

    def __init__(self, template_path: Optional[str] = None, settings: Optional[Settings] = None):
        """
        Initialize the writer

        Args:
            template_path: Template package to merge into; defaults to the configured template
            settings: Runtime settings; read from the environment when omitted
        """
        self.settings = settings or Settings.from_env()
        self.template_path = str(template_path or self.settings.template_path)

    def write(self, filepath, presentation: Presentation, overwrite: bool = False,
              open_ppt: Optional[bool] = None) -> Path:
        """
        Write a presentation to disk

        Args:
            filepath: Destination .pptx path
            presentation: Presentation to write
            overwrite: Replace the destination if it exists
            open_ppt: Open the file afterwards; defaults to the configured behaviour

        Returns:
            Path of the written file

        Raises:
            DestinationExists: filepath exists and overwrite is False
            TemplateCorrupt: the template is unreadable or lacks a part or layout
            DanglingHyperlink: a hyperlink points outside the presentation
            AssetNotFound: a picture source cannot be read
            WriteDenied: the destination cannot be written
        """
        if not isinstance(presentation, Presentation):
            raise TypeError(f"Expected a Presentation, got {type(presentation).__name__}")
        if open_ppt is None:
            open_ppt = self.settings.open_after_write

        assembler = PackageAssembler(self.template_path)
        destination = assembler.check_destination(filepath, overwrite)

        logger.info(f"🎨 Writing {len(presentation)} slides to {destination}")
        snapshot = presentation.snapshot()
        template = TemplateAnalyzer(self.template_path).analyze()
        package = PresentationSerializer(snapshot, template).serialize()
        path = assembler.assemble(package, destination, overwrite)

        if open_ppt:
            try:
                open_file(path)
            except OSError as e:
                logger.warning(f"⚠️ Could not open {path}: {e}")
        return path


def write(filepath, presentation: Presentation, overwrite: bool = False, open_ppt: Optional[bool] = None,
          template_path: Optional[str] = None) -> Path:
    """
    Write a presentation to a .pptx file

    The destination is either the complete new file or untouched: the
    package is written to a temporary file next to it and moved into place
    only once it is complete.

    Args:
        filepath: Destination .pptx path
        presentation: Presentation to write
        overwrite: Replace the destination if it exists
        open_ppt: Open the file afterwards (SLIDEPACK_OPEN_AFTER_WRITE when None)
        template_path: Template package (SLIDEPACK_TEMPLATE_PATH or python-pptx's default when None)

    Returns:
        Path of the written file
    """
    return PresentationWriter(template_path).write(filepath, presentation, overwrite=overwrite, open_ppt=open_ppt)


def configure_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """Attach console and file handlers to the slidepack logger as configured"""
    settings = settings or Settings.from_env()
    return setup_logger("slidepack", level=settings.log_level, log_dir=settings.log_dir)
