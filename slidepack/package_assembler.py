"""
slidepack - Package assembler
Merges generated parts into the template archive and writes the result
atomically: the destination is either the complete new package or left
exactly as it was.
"""

import errno
import logging
import os
import stat
import tempfile
import zipfile
import zlib
from pathlib import Path

from slidepack.exceptions import DestinationExists, TemplateCorrupt, WriteDenied
from slidepack.serializer import SerializedPackage
from slidepack.utils import format_size

logger = logging.getLogger(__name__)

_NO_HARD_LINK_ERRNOS = {errno.EPERM, errno.ENOTSUP, errno.EOPNOTSUPP, errno.ENOSYS, errno.EXDEV}


class PackageAssembler:
    """Copies the template and applies the patch set of a serialized presentation"""

    def __init__(self, template_path):
        self.template_path = Path(template_path)

    @staticmethod
    def check_destination(destination, overwrite: bool = False) -> Path:
        """
        Validate the write target before any work is done

        Args:
            destination: Path of the .pptx to write
            overwrite: Allow replacing an existing file

        Returns:
            The destination as a Path

        Raises:
            DestinationExists: the file exists and overwrite is False
        """
        path = Path(destination)
        if path.is_dir():
            raise DestinationExists(f"Destination is a directory: {path}")
        if path.exists() and not overwrite:
            raise DestinationExists(f"File already exists: {path} (use overwrite=True to replace it)")
        return path

    def assemble(self, package: SerializedPackage, destination, overwrite: bool = False) -> Path:
        """
        Write the merged package to the destination

        Template entries are copied verbatim except the parts the package
        regenerates; slide parts, slide relationships and media follow.

        Args:
            package: Parts produced by PresentationSerializer
            destination: Path of the .pptx to write
            overwrite: Allow replacing an existing file

        Returns:
            Path of the written package
        """
        path = self.check_destination(destination, overwrite)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(suffix='.pptx.tmp', prefix=f".{path.stem}-", dir=path.parent)
            os.close(fd)
        except OSError as e:
            raise WriteDenied(f"Cannot write to {path.parent}: {e}") from e

        try:
            self._write_archive(package, Path(tmp_name))
            os.chmod(tmp_name, stat.S_IMODE(path.stat().st_mode) if path.exists() else 0o644)
            self._publish(tmp_name, path, overwrite)
        except (TemplateCorrupt, DestinationExists):
            self._discard(tmp_name)
            raise
        except OSError as e:
            self._discard(tmp_name)
            raise WriteDenied(f"Could not write {path}: {e}") from e
        except BaseException:
            self._discard(tmp_name)
            raise

        logger.info(f"✅ PPTX saved successfully: {path} ({format_size(path.stat().st_size)})")
        return path

    def _write_archive(self, package: SerializedPackage, target: Path) -> None:
        try:
            template = zipfile.ZipFile(self.template_path, 'r')
        except (zipfile.BadZipFile, OSError) as e:
            raise TemplateCorrupt(f"Cannot read template {self.template_path}: {e}") from e

        with template, zipfile.ZipFile(target, 'w', zipfile.ZIP_DEFLATED) as out:
            copied = 0
            for info in template.infolist():
                if info.filename in package.replaced:
                    out.writestr(info.filename, package.parts[info.filename])
                    continue
                if info.filename in package.parts:
                    raise TemplateCorrupt(f"Template already contains {info.filename}")
                try:
                    out.writestr(info, template.read(info))
                except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error) as e:
                    raise TemplateCorrupt(f"Cannot copy {info.filename} from template: {e}") from e
                copied += 1

            missing = package.replaced.difference(template.namelist())
            if missing:
                raise TemplateCorrupt(f"Template is missing: {', '.join(sorted(missing))}")

            for name in package.new_members:
                out.writestr(name, package.parts[name])
            logger.debug(f"Copied {copied} template entries, added {len(package.new_members)} parts")

    @staticmethod
    def _publish(tmp_name: str, path: Path, overwrite: bool) -> None:
        """
        Move the finished archive to the destination

        Without overwrite the archive is hard-linked into place, which fails
        if anything appeared at the destination while the archive was being
        written. Filesystems without hard links fall back to a checked
        replace.
        """
        if overwrite:
            os.replace(tmp_name, path)
            return
        try:
            os.link(tmp_name, path)
        except FileExistsError as e:
            raise DestinationExists(f"File already exists: {path} (use overwrite=True to replace it)") from e
        except OSError as e:
            if e.errno not in _NO_HARD_LINK_ERRNOS:
                raise
            logger.debug(f"Hard links not supported for {path.parent} ({e}), replacing instead")
            if path.exists():
                raise DestinationExists(f"File already exists: {path} (use overwrite=True to replace it)") from e
            os.replace(tmp_name, path)
            return
        os.remove(tmp_name)

    @staticmethod
    def _discard(tmp_name: str) -> None:
        Path(tmp_name).unlink(missing_ok=True)
