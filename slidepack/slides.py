"""
slidepack - Slide and Presentation model

Documents are built by pushing shapes into slides and slides into a
presentation. Serialization works on an immutable snapshot taken when the
write starts.
"""

import logging
from typing import Iterable, Iterator, List, NamedTuple, Optional, Tuple

from slidepack.exceptions import DanglingHyperlink
from slidepack.shapes import Shape

logger = logging.getLogger(__name__)

TITLE_LAYOUT = 1
TEXT_LAYOUT = 2


class Slide:
    """
    A slide of a Presentation.

    Args:
        shapes: Shapes to add; more can be pushed afterwards
        title: Text placed in the title placeholder of the slide layout
        layout: 1-based slide layout index of the template
            (typically 1 is the title slide and 2 the title + text slide)
    """

    def __init__(self, shapes: Iterable[Shape] = (), title: str = "", layout: int = TITLE_LAYOUT):
        if isinstance(layout, bool) or not isinstance(layout, int) or layout < 1:
            raise ValueError(f"Slide layout must be a positive integer, got {layout!r}")
        self.shapes: List[Shape] = []
        self.title = "" if title is None else str(title)
        self.layout = layout
        self.id = 0
        for shape in shapes:
            self.push(shape)

    def push(self, shape: Shape) -> "Slide":
        """Append a shape on top of the existing ones"""
        if not isinstance(shape, Shape):
            raise TypeError(f"Expected a shape, got {type(shape).__name__}")
        self.shapes.append(shape)
        return self

    def __len__(self):
        return len(self.shapes)

    def __iter__(self) -> Iterator[Shape]:
        return iter(self.shapes)

    def __repr__(self):
        kinds = ", ".join(shape.kind for shape in self.shapes)
        return f"Slide({self.title!r}, [{kinds}], id={self.id}, layout={self.layout})"


class SlideSnapshot(NamedTuple):
    """Frozen view of a slide for one serialization pass"""

    slide: Slide
    title: str
    layout: int
    shapes: Tuple[Shape, ...]


class PresentationSnapshot(NamedTuple):
    """Frozen view of a presentation for one serialization pass"""

    title: str
    author: str
    slides: Tuple[SlideSnapshot, ...]

    def slide_index_of(self, slide: Slide) -> int:
        for index, snap in enumerate(self.slides):
            if snap.slide is slide:
                return index
        raise DanglingHyperlink(
            f"Hyperlink target {slide!r} was never pushed into the presentation being written"
        )


class Presentation:
    """
    The presentation to write to .pptx.

    If no slides are given, a first slide with the title layout and the
    presentation title is added.

    Args:
        slides: Slides in display order
        title: Document title (also stored in the core properties)
        author: Document author
    """

    def __init__(self, slides: Optional[Iterable[Slide]] = None, title: str = "unknown", author: str = "unknown"):
        self.slides: List[Slide] = []
        self.title = title
        self.author = author
        for slide in slides or ():
            self.push(slide)
        if not self.slides:
            self.push(Slide(title=title, layout=TITLE_LAYOUT))

    def push(self, slide: Slide) -> "Presentation":
        """Append a slide and assign its numeric id"""
        if not isinstance(slide, Slide):
            raise TypeError(f"Expected a Slide, got {type(slide).__name__}")
        if any(existing is slide for existing in self.slides):
            raise ValueError("Slide is already part of this presentation")
        self.slides.append(slide)
        slide.id = len(self.slides)
        logger.debug(f"Slide {slide.id} appended (layout {slide.layout}, {len(slide.shapes)} shapes)")
        return self

    def slide_index_of(self, slide: Slide) -> int:
        """0-based position of the slide; DanglingHyperlink if it was never pushed"""
        for index, existing in enumerate(self.slides):
            if existing is slide:
                return index
        raise DanglingHyperlink(f"{slide!r} is not part of this presentation")

    def snapshot(self) -> PresentationSnapshot:
        """Immutable copy of the current slide and shape sequences"""
        return PresentationSnapshot(
            title=self.title,
            author=self.author,
            slides=tuple(
                SlideSnapshot(slide=s, title=s.title, layout=s.layout, shapes=tuple(s.shapes))
                for s in self.slides
            ),
        )

    def __len__(self):
        return len(self.slides)

    def __iter__(self) -> Iterator[Slide]:
        return iter(self.slides)

    def __repr__(self):
        count = len(self.slides)
        return (
            f"Presentation with {count} slide{'' if count == 1 else 's'}\n"
            f" title is {self.title!r}\n"
            f" author is {self.author!r}"
        )
