"""
slidepack - PowerPoint package writer

Builds presentations in memory and writes them as .pptx files by merging
generated slides into a template package.

Main Components:
- Presentation / Slide: the document model, built with push()
- TextBox, Picture, Table: shapes positioned in millimeters
- write(): serializes a presentation and writes it atomically

Usage:
    from slidepack import Presentation, Slide, TextBox, write

    slide = Slide(title="Results", layout=2)
    slide.push(TextBox("Revenue grew 12%", size_x=120))
    pres = Presentation([slide], title="Quarterly report", author="Finance")
    write("report.pptx", pres, open_ppt=False)
"""

from slidepack.exceptions import (
    AssetNotFound,
    DanglingHyperlink,
    DestinationExists,
    InvalidDimension,
    SlidepackError,
    TemplateCorrupt,
    WriteDenied,
)
from slidepack.shapes import Picture, Shape, Table, TextBox
from slidepack.slides import TEXT_LAYOUT, TITLE_LAYOUT, Presentation, Slide
from slidepack.tables import TableContent, as_table_content
from slidepack.units import px_to_native, to_native
from slidepack.writer import PresentationWriter, configure_logging, write

__all__ = [
    'Presentation',
    'Slide',
    'Shape',
    'TextBox',
    'Picture',
    'Table',
    'TableContent',
    'as_table_content',
    'to_native',
    'px_to_native',
    'write',
    'PresentationWriter',
    'configure_logging',
    'TITLE_LAYOUT',
    'TEXT_LAYOUT',
    'SlidepackError',
    'InvalidDimension',
    'AssetNotFound',
    'DanglingHyperlink',
    'TemplateCorrupt',
    'DestinationExists',
    'WriteDenied',
]

__version__ = '1.0.0'
