"""
Unit conversion between physical units and EMU

EMU (English Metric Unit) is the integer length unit stored in OOXML parts.
"""

import math
from numbers import Real

from pptx.util import Emu, Length, Mm

from slidepack.exceptions import InvalidDimension

EMUS_PER_MM = int(Mm(1))
EMUS_PER_INCH = 914400
DEFAULT_DPI = 96


def _check(value, unit: str) -> None:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidDimension(f"Expected a number of {unit}, got {value!r}")
    if not math.isfinite(value):
        raise InvalidDimension(f"Expected a finite number of {unit}, got {value!r}")
    if value < 0:
        raise InvalidDimension(f"Negative dimension: {value} {unit}")


def to_native(mm) -> Length:
    """
    Convert millimeters to EMU

    Integer millimeters convert exactly (mm * 36000). Fractional values are
    rounded to the nearest EMU so no float ever reaches the XML.

    Args:
        mm: Non-negative distance in millimeters

    Returns:
        Distance as an EMU Length (an int subclass)
    """
    _check(mm, "mm")
    if isinstance(mm, int):
        return Emu(mm * EMUS_PER_MM)
    return Emu(int(round(mm * EMUS_PER_MM)))


def px_to_native(px, dpi: int = DEFAULT_DPI) -> Length:
    """Convert a pixel count to EMU at the given resolution"""
    _check(px, "px")
    if not dpi or dpi <= 0:
        dpi = DEFAULT_DPI
    return Emu(int(round(px * EMUS_PER_INCH / dpi)))
