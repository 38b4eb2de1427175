"""
slidepack - XML serializer
Renders a presentation snapshot into the XML parts of a package

Slide parts are rendered from text with every character datum and
attribute value escaped; package-level parts (presentation, relationships,
content types, core properties) are patched from the template's own XML so
unrelated template content survives untouched.
"""

import logging
import re
from collections import OrderedDict
from pathlib import PurePath
from typing import Dict, List, Optional, Set, Tuple
from xml.sax.saxutils import escape

from lxml import etree
from pptx.opc.constants import CONTENT_TYPE as CT
from pptx.opc.constants import RELATIONSHIP_TYPE as RT
from pptx.opc.packuri import PackURI
from pptx.oxml.ns import nsdecls, qn

from slidepack.layout_manager import LayoutManager
from slidepack.relationships import MediaRegistry, Relationship, RelationshipRegistry
from slidepack.shapes import TITLE_SHAPE_ID, Picture, Shape, Table, TextBox
from slidepack.slides import PresentationSnapshot, SlideSnapshot
from slidepack.template_analyzer import (
    CONTENT_TYPES_PART,
    CORE_PROPS_PART,
    PRESENTATION_PART,
    PRESENTATION_RELS_PART,
    ROOT_RELS_PART,
    TemplateInfo,
    parse_part,
)

logger = logging.getLogger(__name__)

NS_CT = 'http://schemas.openxmlformats.org/package/2006/content-types'
NS_PR = 'http://schemas.openxmlformats.org/package/2006/relationships'
NS_DC = 'http://purl.org/dc/elements/1.1/'
NS_CP = 'http://schemas.openxmlformats.org/package/2006/metadata/core-properties'
NS_TABLE = 'http://schemas.openxmlformats.org/drawingml/2006/table'

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
SLIDE_JUMP_ACTION = 'ppaction://hlinksldjump'
DEFAULT_TABLE_STYLE = '{5C22544A-7EE6-4342-B048-85BDC9FD1C3A}'
FIRST_SLIDE_ID = 256

MEDIA_CONTENT_TYPES = {
    'png': CT.PNG,
    'jpg': CT.JPEG,
    'jpeg': CT.JPEG,
    'jpe': CT.JPEG,
    'gif': CT.GIF,
    'bmp': CT.BMP,
    'tif': CT.TIFF,
    'tiff': CT.TIFF,
    'emf': CT.X_EMF,
    'wmf': CT.X_WMF,
    'svg': 'image/svg+xml',
}

# p:presentation children that must follow p:sldIdLst
_AFTER_SLD_ID_LST = (
    'sldSz', 'notesSz', 'smartTags', 'embeddedFontLst', 'custShowLst', 'photoAlbum',
    'custDataLst', 'kinsoku', 'defaultTextStyle', 'modifyVerifier', 'extLst',
)

_INVALID_XML_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]')
_QUOTES = {'"': '&quot;', "'": '&apos;'}


def escape_xml(text: str) -> str:
    """Escape the five XML special characters and drop characters XML cannot carry"""
    return escape(_INVALID_XML_CHARS.sub('', str(text)), _QUOTES)


def split_length(total: int, count: int) -> List[int]:
    """Split an EMU length into `count` integer parts that add up to `total`"""
    base = total // count
    parts = [base] * count
    parts[-1] += total - base * count
    return parts


def _tostring(element: etree._Element) -> bytes:
    return etree.tostring(element, xml_declaration=True, encoding='UTF-8', standalone=True)


class SerializedPackage:
    """Generated parts keyed by zip member name, in the order they were produced"""

    def __init__(self):
        self.parts: Dict[str, bytes] = OrderedDict()
        self.replaced: Set[str] = set()

    def add(self, membername: str, blob: bytes, replaces: bool = False) -> None:
        self.parts[membername] = blob
        if replaces:
            self.replaced.add(membername)

    @property
    def new_members(self) -> List[str]:
        return [name for name in self.parts if name not in self.replaced]


class SlideSerializer:
    """Renders one slide and its relationships"""

    def __init__(self, snap: SlideSnapshot, partname: PackURI, layouts: LayoutManager):
        self.snap = snap
        self.partname = partname
        self.layouts = layouts
        self.rels = RelationshipRegistry(partname)
        self.media: List[Tuple[PackURI, bytes]] = []

    def serialize(self, slide_partnames: List[PackURI], presentation: PresentationSnapshot,
                  media: MediaRegistry) -> Tuple[bytes, bytes]:
        """
        Render the slide XML and its relationship XML

        Args:
            slide_partnames: Partnames of every slide written, in display order
            presentation: Snapshot used to resolve hyperlink targets
            media: Package-wide media name registry

        Returns:
            (slide XML, slide relationships XML) as UTF-8 bytes
        """
        self.rels.register(RT.SLIDE_LAYOUT, self.layouts.layout_partname(self.snap.layout))

        body = [self._title_xml()]
        for position, shape in enumerate(self.snap.shapes):
            shape_id = shape.render_ref_id(position)
            hlink_rid = None
            if shape.hlink is not None:
                target = slide_partnames[presentation.slide_index_of(shape.hlink)]
                hlink_rid = self.rels.register(RT.SLIDE, target)
            body.append(self._shape_xml(shape, shape_id, hlink_rid, media))

        slide_xml = (
            XML_DECLARATION
            + '<p:sld %s>' % nsdecls('a', 'r', 'p')
            + '<p:cSld><p:spTree>'
            '<p:nvGrpSpPr><p:cNvPr id="1" name=""/><p:cNvGrpSpPr/><p:nvPr/></p:nvGrpSpPr>'
            '<p:grpSpPr><a:xfrm><a:off x="0" y="0"/><a:ext cx="0" cy="0"/>'
            '<a:chOff x="0" y="0"/><a:chExt cx="0" cy="0"/></a:xfrm></p:grpSpPr>'
            + ''.join(body)
            + '</p:spTree></p:cSld>'
            '<p:clrMapOvr><a:masterClrMapping/></p:clrMapOvr>'
            '</p:sld>'
        )
        return slide_xml.encode('utf-8'), relationships_xml(self.rels.relationships)

    def _shape_xml(self, shape: Shape, shape_id: int, hlink_rid: Optional[str], media: MediaRegistry) -> str:
        if isinstance(shape, TextBox):
            return self._textbox_xml(shape, shape_id, hlink_rid)
        if isinstance(shape, Picture):
            return self._picture_xml(shape, shape_id, hlink_rid, media)
        if isinstance(shape, Table):
            return self._table_xml(shape, shape_id, hlink_rid)
        raise TypeError(f"Cannot serialize shape of type {type(shape).__name__}")

    def _title_xml(self) -> str:
        """Title placeholder shape, empty when the slide has no title"""
        if not self.snap.title:
            return ''
        ph_type = self.layouts.title_placeholder_type(self.snap.layout)
        if ph_type is None:
            return ''
        return (
            '<p:sp><p:nvSpPr>'
            '<p:cNvPr id="%d" name="Title %d"/>'
            '<p:cNvSpPr><a:spLocks noGrp="1"/></p:cNvSpPr>'
            '<p:nvPr><p:ph type="%s"/></p:nvPr>'
            '</p:nvSpPr><p:spPr/>'
            '<p:txBody><a:bodyPr/><a:lstStyle/>%s</p:txBody></p:sp>'
        ) % (TITLE_SHAPE_ID, TITLE_SHAPE_ID - 1, ph_type, paragraphs_xml(self.snap.title))

    def _textbox_xml(self, shape: TextBox, shape_id: int, hlink_rid: Optional[str]) -> str:
        return (
            '<p:sp><p:nvSpPr>%s<p:cNvSpPr txBox="1"/><p:nvPr/></p:nvSpPr>'
            '<p:spPr>%s<a:prstGeom prst="rect"><a:avLst/></a:prstGeom><a:noFill/></p:spPr>'
            '<p:txBody><a:bodyPr wrap="square" rtlCol="0"><a:spAutoFit/></a:bodyPr><a:lstStyle/>%s</p:txBody>'
            '</p:sp>'
        ) % (
            c_nv_pr_xml(shape_id, f"TextBox {shape_id - 1}", hlink_rid),
            xfrm_xml(shape, 'a:xfrm'),
            paragraphs_xml(shape.content, bold=shape.bold, italic=shape.italic),
        )

    def _picture_xml(self, shape: Picture, shape_id: int, hlink_rid: Optional[str], media: MediaRegistry) -> str:
        blob = shape.resolve_bytes()
        media_partname = media.next_partname(shape.media_extension(blob))
        self.media.append((media_partname, blob))
        image_rid = self.rels.register(RT.IMAGE, media_partname)
        descr = PurePath(shape.source).name
        return (
            '<p:pic><p:nvPicPr>%s<p:cNvPicPr><a:picLocks noChangeAspect="1"/></p:cNvPicPr><p:nvPr/></p:nvPicPr>'
            '<p:blipFill><a:blip r:embed="%s"/><a:stretch><a:fillRect/></a:stretch></p:blipFill>'
            '<p:spPr>%s<a:prstGeom prst="rect"><a:avLst/></a:prstGeom></p:spPr>'
            '</p:pic>'
        ) % (
            c_nv_pr_xml(shape_id, f"Picture {shape_id - 1}", hlink_rid, descr=descr),
            image_rid,
            xfrm_xml(shape, 'a:xfrm'),
        )

    def _table_xml(self, shape: Table, shape_id: int, hlink_rid: Optional[str]) -> str:
        n_rows, n_cols = shape.row_count(), shape.column_count()
        grid = ''.join('<a:gridCol w="%d"/>' % w for w in split_length(shape.size_x, n_cols))
        rows = []
        for i, height in enumerate(split_length(shape.size_y, n_rows)):
            cells = ''.join(
                '<a:tc><a:txBody><a:bodyPr/><a:lstStyle/>%s</a:txBody><a:tcPr/></a:tc>'
                % paragraphs_xml(shape.cell(i, j))
                for j in range(n_cols)
            )
            rows.append('<a:tr h="%d">%s</a:tr>' % (height, cells))
        return (
            '<p:graphicFrame><p:nvGraphicFramePr>%s'
            '<p:cNvGraphicFramePr><a:graphicFrameLocks noGrp="1"/></p:cNvGraphicFramePr><p:nvPr/>'
            '</p:nvGraphicFramePr>%s'
            '<a:graphic><a:graphicData uri="%s"><a:tbl>'
            '<a:tblPr firstRow="1" bandRow="1"><a:tableStyleId>%s</a:tableStyleId></a:tblPr>'
            '<a:tblGrid>%s</a:tblGrid>%s'
            '</a:tbl></a:graphicData></a:graphic></p:graphicFrame>'
        ) % (
            c_nv_pr_xml(shape_id, f"Table {shape_id - 1}", hlink_rid),
            xfrm_xml(shape, 'p:xfrm'),
            NS_TABLE,
            DEFAULT_TABLE_STYLE,
            grid,
            ''.join(rows),
        )


def c_nv_pr_xml(shape_id: int, name: str, hlink_rid: Optional[str] = None, descr: Optional[str] = None) -> str:
    """Non-visual properties of a shape, with its click hyperlink if any"""
    attrs = 'id="%d" name="%s"' % (shape_id, escape_xml(name))
    if descr:
        attrs += ' descr="%s"' % escape_xml(descr)
    if hlink_rid is None:
        return '<p:cNvPr %s/>' % attrs
    return '<p:cNvPr %s><a:hlinkClick r:id="%s" action="%s"/></p:cNvPr>' % (
        attrs, escape_xml(hlink_rid), SLIDE_JUMP_ACTION
    )


def xfrm_xml(shape: Shape, tag: str) -> str:
    x, y, cx, cy = shape.bounding_box()
    return '<%s><a:off x="%d" y="%d"/><a:ext cx="%d" cy="%d"/></%s>' % (tag, x, y, cx, cy, tag)


def paragraphs_xml(text: str, bold: bool = False, italic: bool = False) -> str:
    """One a:p per line of text"""
    run_attrs = 'lang="en-US"'
    if bold:
        run_attrs += ' b="1"'
    if italic:
        run_attrs += ' i="1"'
    paragraphs = []
    for line in str(text).split('\n'):
        if line:
            paragraphs.append(
                '<a:p><a:r><a:rPr %s dirty="0"/><a:t>%s</a:t></a:r></a:p>' % (run_attrs, escape_xml(line))
            )
        else:
            paragraphs.append('<a:p><a:endParaRPr %s dirty="0"/></a:p>' % run_attrs)
    return ''.join(paragraphs)


def relationships_xml(relationships: List[Relationship]) -> bytes:
    """Relationship part listing the relationships in registration order"""
    items = []
    for rel in relationships:
        target_mode = ' TargetMode="External"' if rel.is_external else ''
        items.append(
            '<Relationship Id="%s" Type="%s" Target="%s"%s/>'
            % (escape_xml(rel.rId), escape_xml(rel.reltype), escape_xml(rel.target), target_mode)
        )
    xml = XML_DECLARATION + '<Relationships xmlns="%s">%s</Relationships>' % (NS_PR, ''.join(items))
    return xml.encode('utf-8')


class PresentationSerializer:
    """Renders a presentation snapshot into the parts to add to or replace in the template"""

    def __init__(self, snapshot: PresentationSnapshot, template: TemplateInfo):
        self.snapshot = snapshot
        self.template = template
        self.layouts = LayoutManager(template)

    def serialize(self) -> SerializedPackage:
        """
        Render every slide plus the patched package-level parts

        Returns:
            SerializedPackage with the new and the regenerated parts

        Raises:
            DanglingHyperlink: a hyperlink target is not part of the presentation
            AssetNotFound: a picture source cannot be read
            TemplateCorrupt: a slide references a layout the template lacks
        """
        self.layouts.validate(snap.layout for snap in self.snapshot.slides)
        self._check_hyperlinks()

        first_number = self.template.next_slide_number
        slide_partnames = [
            PackURI(f"/ppt/slides/slide{first_number + i}.xml") for i in range(len(self.snapshot.slides))
        ]
        media = MediaRegistry(self.template.names)
        package = SerializedPackage()
        media_extensions: Set[str] = set()

        for snap, partname in zip(self.snapshot.slides, slide_partnames):
            slide_serializer = SlideSerializer(snap, partname, self.layouts)
            slide_xml, rels_xml = slide_serializer.serialize(slide_partnames, self.snapshot, media)
            package.add(partname.membername, slide_xml)
            package.add(partname.rels_uri.membername, rels_xml)
            for media_partname, blob in slide_serializer.media:
                package.add(media_partname.membername, blob)
                media_extensions.add(media_partname.ext.lower())
            logger.info(
                f"✅ Slide serialized: {partname.filename} ({len(snap.shapes)} shapes, "
                f"{len(slide_serializer.rels)} relationships)"
            )

        slide_rids = self._patch_presentation_rels(package, slide_partnames)
        self._patch_presentation(package, slide_rids)
        overrides = [(partname, CT.PML_SLIDE) for partname in slide_partnames]
        if self.template.has_core_properties:
            self._patch_core_properties(package)
        else:
            overrides.append(self._add_core_properties(package))
        self._patch_content_types(package, overrides, media_extensions)
        return package

    def _check_hyperlinks(self) -> None:
        """Resolve every hyperlink target before anything is rendered"""
        for snap in self.snapshot.slides:
            for shape in snap.shapes:
                if shape.hlink is not None:
                    self.snapshot.slide_index_of(shape.hlink)

    def _patch_presentation_rels(self, package: SerializedPackage, slide_partnames: List[PackURI]) -> List[str]:
        root = parse_part(PRESENTATION_RELS_PART, self.template.parts[PRESENTATION_RELS_PART])
        registry = RelationshipRegistry(
            '/' + PRESENTATION_PART, (rel.get('Id') for rel in root.iter('{%s}Relationship' % NS_PR))
        )
        slide_rids = [registry.register(RT.SLIDE, partname) for partname in slide_partnames]
        for rel in registry.relationships:
            etree.SubElement(root, '{%s}Relationship' % NS_PR, Id=rel.rId, Type=rel.reltype, Target=rel.target)
        package.add(PRESENTATION_RELS_PART, _tostring(root), replaces=True)
        return slide_rids

    def _patch_presentation(self, package: SerializedPackage, slide_rids: List[str]) -> None:
        root = parse_part(PRESENTATION_PART, self.template.parts[PRESENTATION_PART])
        sld_id_lst = root.find(qn('p:sldIdLst'))
        if sld_id_lst is None:
            sld_id_lst = etree.Element(qn('p:sldIdLst'))
            successor = next(
                (child for child in root if child.tag in {qn('p:%s' % name) for name in _AFTER_SLD_ID_LST}),
                None,
            )
            if successor is None:
                root.append(sld_id_lst)
            else:
                successor.addprevious(sld_id_lst)

        next_id = max(self.template.slide_ids + [FIRST_SLIDE_ID - 1]) + 1
        for offset, rId in enumerate(slide_rids):
            sld_id = etree.SubElement(sld_id_lst, qn('p:sldId'))
            sld_id.set('id', '%d' % (next_id + offset))
            sld_id.set(qn('r:id'), rId)
        package.add(PRESENTATION_PART, _tostring(root), replaces=True)

    def _patch_content_types(self, package: SerializedPackage, overrides: List[Tuple[PackURI, str]],
                             media_extensions: Set[str]) -> None:
        root = parse_part(CONTENT_TYPES_PART, self.template.parts[CONTENT_TYPES_PART])
        defaults = root.findall('{%s}Default' % NS_CT)
        known = {(d.get('Extension') or '').lower() for d in defaults}
        for ext in sorted(media_extensions - known):
            content_type = MEDIA_CONTENT_TYPES.get(ext)
            if content_type is None:
                logger.warning(f"⚠️ Unknown media type for .{ext}, declaring application/octet-stream")
                content_type = 'application/octet-stream'
            default = etree.Element('{%s}Default' % NS_CT, Extension=ext, ContentType=content_type)
            if defaults:
                defaults[-1].addnext(default)
            else:
                root.insert(0, default)
            defaults.append(default)

        overridden = {o.get('PartName') for o in root.iter('{%s}Override' % NS_CT)}
        for partname, content_type in overrides:
            if str(partname) not in overridden:
                etree.SubElement(root, '{%s}Override' % NS_CT, PartName=str(partname), ContentType=content_type)
        package.add(CONTENT_TYPES_PART, _tostring(root), replaces=True)

    def _patch_core_properties(self, package: SerializedPackage) -> None:
        root = parse_part(CORE_PROPS_PART, self.template.parts[CORE_PROPS_PART])
        self._set_title_and_creator(root)
        package.add(CORE_PROPS_PART, _tostring(root), replaces=True)

    def _add_core_properties(self, package: SerializedPackage) -> Tuple[PackURI, str]:
        """Create docProps/core.xml and relate it from the package root"""
        partname = PackURI('/' + CORE_PROPS_PART)
        root = etree.Element('{%s}coreProperties' % NS_CP, nsmap={'cp': NS_CP, 'dc': NS_DC})
        self._set_title_and_creator(root)
        package.add(CORE_PROPS_PART, _tostring(root))

        rels = parse_part(ROOT_RELS_PART, self.template.parts[ROOT_RELS_PART])
        registry = RelationshipRegistry('/', (rel.get('Id') for rel in rels.iter('{%s}Relationship' % NS_PR)))
        rId = registry.register(RT.CORE_PROPERTIES, partname)
        etree.SubElement(rels, '{%s}Relationship' % NS_PR, Id=rId, Type=RT.CORE_PROPERTIES,
                         Target=registry.relationships[0].target)
        package.add(ROOT_RELS_PART, _tostring(rels), replaces=True)
        logger.debug("Template has no core properties part, added one")
        return partname, CT.OPC_CORE_PROPERTIES

    def _set_title_and_creator(self, root: etree._Element) -> None:
        for tag, value in (('title', self.snapshot.title), ('creator', self.snapshot.author)):
            element = root.find('{%s}%s' % (NS_DC, tag))
            if element is None:
                element = etree.SubElement(root, '{%s}%s' % (NS_DC, tag))
            element.text = _INVALID_XML_CHARS.sub('', '' if value is None else str(value))
