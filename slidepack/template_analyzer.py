"""
slidepack - Template analyzer
Inspects the template package: part list, parts that get patched,
existing slides and media, and the title placeholder of each layout
"""

import logging
import re
import zipfile
from pathlib import Path
from typing import Dict, List, Optional

from lxml import etree
from pptx.oxml.ns import qn

from slidepack.exceptions import TemplateCorrupt

logger = logging.getLogger(__name__)

CONTENT_TYPES_PART = '[Content_Types].xml'
ROOT_RELS_PART = '_rels/.rels'
PRESENTATION_PART = 'ppt/presentation.xml'
PRESENTATION_RELS_PART = 'ppt/_rels/presentation.xml.rels'
CORE_PROPS_PART = 'docProps/core.xml'

REQUIRED_PARTS = (CONTENT_TYPES_PART, ROOT_RELS_PART, PRESENTATION_PART, PRESENTATION_RELS_PART)

_SLIDE_PATTERN = re.compile(r'^ppt/slides/slide(\d+)\.xml$')
_LAYOUT_PATTERN = re.compile(r'^ppt/slideLayouts/slideLayout(\d+)\.xml$')
_TITLE_TYPES = ('title', 'ctrTitle')

XML_PARSER = etree.XMLParser(resolve_entities=False, remove_blank_text=False)


def parse_part(partname: str, blob: bytes) -> etree._Element:
    """Parse an XML part of the template, TemplateCorrupt when malformed"""
    try:
        return etree.fromstring(blob, XML_PARSER)
    except etree.XMLSyntaxError as e:
        raise TemplateCorrupt(f"Template part {partname} is not well-formed XML: {e}") from e


class TemplateInfo:
    """What the serializer and assembler need to know about a template"""

    def __init__(self, path: str):
        self.path = path
        self.names: List[str] = []
        self.parts: Dict[str, bytes] = {}
        self.slide_numbers: List[int] = []
        self.slide_ids: List[int] = []
        self.layout_title_types: Dict[int, Optional[str]] = {}

    @property
    def slide_count(self) -> int:
        return len(self.slide_numbers)

    @property
    def next_slide_number(self) -> int:
        return max(self.slide_numbers, default=0) + 1

    @property
    def has_core_properties(self) -> bool:
        return CORE_PROPS_PART in self.parts


class TemplateAnalyzer:
    """Reads a template package without modifying it"""

    def __init__(self, template_path):
        self.template_path = str(template_path)

    def analyze(self) -> TemplateInfo:
        """
        Load the template and collect the parts slidepack patches or extends

        Returns:
            TemplateInfo for the template

        Raises:
            TemplateCorrupt: unreadable archive or missing required part
        """
        path = Path(self.template_path)
        if not path.is_file():
            raise TemplateCorrupt(f"Template file not found: {self.template_path}")

        info = TemplateInfo(self.template_path)
        try:
            with zipfile.ZipFile(path, 'r') as zf:
                info.names = zf.namelist()
                missing = [name for name in REQUIRED_PARTS if name not in info.names]
                if missing:
                    raise TemplateCorrupt(
                        f"Template {self.template_path} is missing: {', '.join(missing)}"
                    )
                for name in REQUIRED_PARTS + (CORE_PROPS_PART,):
                    if name in info.names:
                        info.parts[name] = zf.read(name)
                for name in info.names:
                    layout_match = _LAYOUT_PATTERN.match(name)
                    if layout_match:
                        layout_xml = parse_part(name, zf.read(name))
                        info.layout_title_types[int(layout_match.group(1))] = self._title_type(layout_xml)
                        continue
                    slide_match = _SLIDE_PATTERN.match(name)
                    if slide_match:
                        info.slide_numbers.append(int(slide_match.group(1)))
        except (zipfile.BadZipFile, OSError) as e:
            raise TemplateCorrupt(f"Cannot read template {self.template_path}: {e}") from e

        presentation = parse_part(PRESENTATION_PART, info.parts[PRESENTATION_PART])
        for sld_id in presentation.iter(qn('p:sldId')):
            try:
                info.slide_ids.append(int(sld_id.get('id')))
            except (TypeError, ValueError) as e:
                raise TemplateCorrupt(f"Invalid slide id in {PRESENTATION_PART}: {sld_id.get('id')!r}") from e

        logger.info(f"✅ Template loaded: {self.template_path}")
        logger.info(
            f"📊 Template has {info.slide_count} slides and {len(info.layout_title_types)} layouts"
        )
        return info

    def _title_type(self, layout_xml: etree._Element) -> Optional[str]:
        """Type of the title placeholder in a layout ('title' or 'ctrTitle')"""
        for ph in layout_xml.iter(qn('p:ph')):
            ph_type = ph.get('type')
            if ph_type in _TITLE_TYPES:
                return ph_type
        return None
