"""
slidepack - Shape model
Placeable slide content: text boxes, pictures and tables

Positions and sizes are accepted in millimeters and stored as EMU. The set
of shape kinds is closed; the serializer handles each one explicitly.
"""

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence, Tuple

from pptx.parts.image import Image
from pptx.util import Emu, Length

from slidepack.exceptions import AssetNotFound
from slidepack.tables import TableContent, as_table_content
from slidepack.units import to_native

if TYPE_CHECKING:
    from slidepack.slides import Slide

logger = logging.getLogger(__name__)

# Shape ids inside p:spTree: 1 is the tree itself, 2 the title placeholder
TITLE_SHAPE_ID = 2
FIRST_SHAPE_ID = 3

DEFAULT_PICTURE_SIZE_MM = (40, 30)
DEFAULT_TEXT_STYLE = {"bold": False, "italic": False}

_EXTENSION_PATTERN = re.compile(r"[a-z0-9]+")


class Shape:
    """Common geometry and hyperlink handling for every shape kind"""

    kind = "Shape"

    def __init__(self, offset_x, offset_y, size_x, size_y, hlink: Optional["Slide"] = None):
        self.offset_x: Length = to_native(offset_x)
        self.offset_y: Length = to_native(offset_y)
        self.size_x: Length = to_native(size_x)
        self.size_y: Length = to_native(size_y)
        self.hlink = hlink

    def bounding_box(self) -> Tuple[int, int, int, int]:
        """(x, y, w, h) in EMU"""
        return (self.offset_x, self.offset_y, self.size_x, self.size_y)

    def render_ref_id(self, position: int) -> int:
        """Shape id for the shape at the given 0-based position of its slide"""
        return position + FIRST_SHAPE_ID

    def _geometry_repr(self) -> str:
        return (
            f"offset_x={self.offset_x} offset_y={self.offset_y} "
            f"size_x={self.size_x} size_y={self.size_y} EMUs"
        )


class TextBox(Shape):
    """
    A text box. Each line of content becomes a paragraph.

    Args:
        content: Text to display
        offset_x, offset_y: Position in mm from the slide's top-left corner
        size_x, size_y: Size in mm
        style: Flags {"bold": bool, "italic": bool}
        hlink: Slide to jump to when the text box is clicked
    """

    kind = "TextBox"

    def __init__(
        self,
        content: str = "",
        offset_x=50,
        offset_y=50,
        size_x=40,
        size_y=30,
        style: Optional[Dict[str, bool]] = None,
        hlink: Optional["Slide"] = None,
    ):
        super().__init__(offset_x, offset_y, size_x, size_y, hlink=hlink)
        self.content = "" if content is None else str(content)
        self.style = dict(DEFAULT_TEXT_STYLE)
        for key, value in (style or {}).items():
            if key not in DEFAULT_TEXT_STYLE:
                raise ValueError(f"Unknown text style flag: {key}")
            self.style[key] = bool(value)

    @property
    def bold(self) -> bool:
        return self.style["bold"]

    @property
    def italic(self) -> bool:
        return self.style["italic"]

    def __repr__(self):
        return f"TextBox(content={self.content!r}, {self._geometry_repr()})"


class Picture(Shape):
    """
    A picture from an image file.

    Bytes are read when the presentation is written. When size_x or size_y
    is missing it is derived from the image's pixel aspect ratio; the width
    defaults to `size` mm. Images whose size cannot be probed (SVG, missing
    files) fall back to 40 x 30 mm for the missing sides.
    """

    kind = "Picture"

    def __init__(
        self,
        source,
        offset_x=0,
        offset_y=0,
        size=40,
        size_x=None,
        size_y=None,
        hlink: Optional["Slide"] = None,
    ):
        self.source = str(source)
        self._intrinsic: Optional[Tuple[int, int]] = None
        self._probed = False
        width, height = self._resolve_size(size, size_x, size_y)
        super().__init__(offset_x, offset_y, 0, 0, hlink=hlink)
        self.size_x = width
        self.size_y = height

    def _resolve_size(self, size, size_x, size_y) -> Tuple[Length, Length]:
        if size is None:
            size = DEFAULT_PICTURE_SIZE_MM[0]
        if size_x is not None and size_y is not None:
            return to_native(size_x), to_native(size_y)

        intrinsic = self.intrinsic_size()
        if intrinsic is None:
            default_y = DEFAULT_PICTURE_SIZE_MM[1]
            width = to_native(size_x if size_x is not None else size)
            height = to_native(size_y if size_y is not None else default_y)
            logger.warning(f"⚠️ Unknown image size for {self.source}, using {width}x{height} EMUs")
            return width, height

        px_w, px_h = intrinsic
        if size_y is not None and size_x is None:
            height = to_native(size_y)
            return Emu(int(round(height * px_w / px_h))), height
        width = to_native(size_x if size_x is not None else size)
        return width, Emu(int(round(width * px_h / px_w)))

    def intrinsic_size(self) -> Optional[Tuple[int, int]]:
        """Pixel (width, height) of the source image, or None when unknown"""
        if not self._probed:
            self._probed = True
            try:
                width, height = Image.from_file(self.source).size
            except (OSError, ValueError) as e:
                logger.debug(f"Could not probe image size of {self.source}: {e}")
            else:
                if width > 0 and height > 0:
                    self._intrinsic = (width, height)
        return self._intrinsic

    def resolve_bytes(self) -> bytes:
        """Read the image file; raises AssetNotFound when it cannot be read"""
        try:
            return Path(self.source).read_bytes()
        except OSError as e:
            raise AssetNotFound(self.source, e.strerror or str(e)) from e

    def media_extension(self, blob: Optional[bytes] = None) -> str:
        """
        Extension used for the media part name

        The image type detected from the bytes wins over the file name; the
        lower-cased suffix is used only for formats that cannot be detected,
        and only when it is a plain alphanumeric extension.
        """
        if blob is not None:
            try:
                return Image.from_blob(blob).ext
            except (OSError, ValueError) as e:
                logger.debug(f"Could not sniff image type of {self.source}: {e}")
        ext = Path(self.source).suffix.lower().lstrip(".")
        if _EXTENSION_PATTERN.fullmatch(ext):
            return ext
        return "bin"

    def __repr__(self):
        return f"Picture(source={self.source!r}, {self._geometry_repr()})"


class Table(Shape):
    """
    A table. Column names form the first row, followed by one row per record.

    Args:
        content: Tabular source accepted by as_table_content()
        columns: Column names for plain row sequences
    """

    kind = "Table"

    def __init__(
        self,
        content: Any,
        columns: Optional[Sequence[Any]] = None,
        offset_x=50,
        offset_y=50,
        size_x=150,
        size_y=100,
        hlink: Optional["Slide"] = None,
    ):
        super().__init__(offset_x, offset_y, size_x, size_y, hlink=hlink)
        self.content: TableContent = as_table_content(content, columns)
        if self.content.column_count() == 0:
            raise ValueError("A table needs at least one column")

    def row_count(self) -> int:
        return self.content.row_count()

    def column_count(self) -> int:
        return self.content.column_count()

    def cell(self, i: int, j: int) -> str:
        return self.content.cell(i, j)

    def __repr__(self):
        return f"Table({self.row_count()}x{self.column_count()}, {self._geometry_repr()})"
