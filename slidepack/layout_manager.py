import logging
from typing import Iterable, Optional

from pptx.opc.packuri import PackURI

from slidepack.exceptions import TemplateCorrupt
from slidepack.template_analyzer import TemplateInfo

logger = logging.getLogger(__name__)


class LayoutManager:
    """Maps slide layout indexes onto the layout parts of the template"""

    def __init__(self, template: TemplateInfo):
        """
        Initialize with an analyzed template

        Args:
            template: Template information from TemplateAnalyzer
        """
        self.template = template

    def validate(self, layouts: Iterable[int]) -> None:
        """Raise TemplateCorrupt if any of the layout indexes is absent"""
        for layout in sorted(set(layouts)):
            if layout not in self.template.layout_title_types:
                raise TemplateCorrupt(
                    f"Template {self.template.path} has no slideLayout{layout}.xml "
                    f"(available: {sorted(self.template.layout_title_types)})"
                )

    def layout_partname(self, layout: int) -> PackURI:
        """
        Partname of a slide layout

        Args:
            layout: 1-based layout index

        Returns:
            Absolute partname, e.g. /ppt/slideLayouts/slideLayout2.xml
        """
        self.validate([layout])
        return PackURI(f"/ppt/slideLayouts/slideLayout{layout}.xml")

    def title_placeholder_type(self, layout: int) -> Optional[str]:
        """
        Placeholder type that holds the slide title in a layout

        Returns:
            'ctrTitle' or 'title', or None when the layout has no title placeholder
        """
        ph_type = self.template.layout_title_types.get(layout)
        if ph_type is None:
            logger.warning(f"⚠️ slideLayout{layout}.xml has no title placeholder")
        return ph_type
