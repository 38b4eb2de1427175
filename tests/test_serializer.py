import sys

import pytest
from lxml import etree
from pptx.opc.constants import CONTENT_TYPE as CT
from pptx.opc.constants import RELATIONSHIP_TYPE as RT
from pptx.oxml.ns import qn

from slidepack import (
    DanglingHyperlink,
    Picture,
    Presentation,
    Slide,
    Table,
    TemplateCorrupt,
    TextBox,
)
from slidepack.serializer import NS_CT, NS_DC, NS_PR, PresentationSerializer, escape_xml, split_length
from slidepack.template_analyzer import TemplateAnalyzer

from conftest import build_template


def serialize(pres, template_path):
    info = TemplateAnalyzer(template_path).analyze()
    return PresentationSerializer(pres.snapshot(), info).serialize()


def slide_root(package, n=1):
    return etree.fromstring(package.parts['ppt/slides/slide%d.xml' % n])


def rels_of(package, membername):
    root = etree.fromstring(package.parts[membername])
    return [(r.get('Id'), r.get('Type'), r.get('Target')) for r in root.iter('{%s}Relationship' % NS_PR)]


@pytest.mark.parametrize(
    "text, expected",
    [
        ("", ""),
        ("plain", "plain"),
        ('<b>&"tag"</b>', "&lt;b&gt;&amp;&quot;tag&quot;&lt;/b&gt;"),
        ("it's", "it&apos;s"),
        ("bell\x07", "bell"),
        ("caf\udce9 \ud83d", "caf "),
    ],
)
def test_escape_xml(text, expected):
    assert escape_xml(text) == expected


def test_split_length_sums_to_total():
    assert split_length(100, 3) == [33, 33, 34]
    assert sum(split_length(5400000, 7)) == 5400000


def test_slide_text_is_escaped_and_parses(minimal_template):
    slide = Slide([TextBox('<b>&"tag"</b>')], title="R&D <2024>", layout=2)
    package = serialize(Presentation([slide]), minimal_template)
    raw = package.parts['ppt/slides/slide1.xml']
    assert b'&lt;b&gt;&amp;&quot;tag&quot;&lt;/b&gt;' in raw
    texts = [t.text for t in slide_root(package).iter(qn('a:t'))]
    assert texts == ['R&D <2024>', '<b>&"tag"</b>']


def test_empty_text_box_has_an_empty_paragraph(minimal_template):
    package = serialize(Presentation([Slide([TextBox("")])]), minimal_template)
    root = slide_root(package)
    assert len(list(root.iter(qn('a:t')))) == 0
    assert len(list(root.iter(qn('a:endParaRPr')))) == 1


def test_shapes_keep_push_order_and_ids(minimal_template, png_image):
    slide = Slide(title="Order", layout=2)
    slide.push(TextBox("first")).push(Picture(png_image)).push(Table({"a": [1]}))
    root = slide_root(serialize(Presentation([slide]), minimal_template))
    tree = root.find('.//' + qn('p:spTree'))
    tags = [etree.QName(child).localname for child in tree][2:]
    assert tags == ['sp', 'sp', 'pic', 'graphicFrame']
    ids = [int(c.get('id')) for c in root.iter(qn('p:cNvPr'))]
    assert ids == [1, 2, 3, 4, 5]


def test_title_uses_the_layout_placeholder_type(minimal_template):
    pres = Presentation([Slide(title="Cover", layout=1), Slide(title="Body", layout=2)])
    package = serialize(pres, minimal_template)
    assert slide_root(package, 1).find('.//' + qn('p:ph')).get('type') == 'ctrTitle'
    assert slide_root(package, 2).find('.//' + qn('p:ph')).get('type') == 'title'


def test_layout_without_title_placeholder_drops_title(minimal_template, caplog):
    package = serialize(Presentation([Slide(title="Lost", layout=3)]), minimal_template)
    assert slide_root(package).find('.//' + qn('p:ph')) is None
    assert "no title placeholder" in caplog.text


def test_geometry_is_integer_emus(minimal_template):
    box = TextBox("x", offset_x=10.5, offset_y=20, size_x=30, size_y=12.25)
    root = slide_root(serialize(Presentation([Slide([box])]), minimal_template))
    off = root.find('.//' + qn('a:off') + '[@x="378000"]')
    assert off is not None
    assert off.get('y') == '720000'
    ext = off.getnext()
    assert (ext.get('cx'), ext.get('cy')) == ('1080000', '441000')


def test_bold_italic_runs(minimal_template):
    box = TextBox("a\nb", style={"bold": True, "italic": True})
    root = slide_root(serialize(Presentation([Slide([box])]), minimal_template))
    runs = list(root.iter(qn('a:rPr')))
    assert len(runs) == 2
    assert all(r.get('b') == '1' and r.get('i') == '1' for r in runs)


def test_table_grid(minimal_template):
    table = Table([[1, 2, 3], [4, 5, 6]], columns=["a", "b", "c"], size_x=100, size_y=60)
    root = slide_root(serialize(Presentation([Slide([table])]), minimal_template))
    rows = list(root.iter(qn('a:tr')))
    assert len(rows) == 3
    assert all(len(row.findall(qn('a:tc'))) == 3 for row in rows)
    widths = [int(col.get('w')) for col in root.iter(qn('a:gridCol'))]
    assert sum(widths) == 3600000
    assert sum(int(row.get('h')) for row in rows) == 2160000
    assert rows[0].findall('.//' + qn('a:t'))[2].text == "c"
    assert rows[2].findall('.//' + qn('a:t'))[0].text == "4"


def test_slide_relationships(minimal_template, png_image):
    later = Slide(title="later", layout=2)
    first = Slide([Picture(png_image), TextBox("go", hlink=later)], layout=2)
    pres = Presentation([first])
    pres.push(later)
    package = serialize(pres, minimal_template)
    rels = rels_of(package, 'ppt/slides/_rels/slide1.xml.rels')
    assert rels == [
        ('rId1', RT.SLIDE_LAYOUT, '../slideLayouts/slideLayout2.xml'),
        ('rId2', RT.IMAGE, '../media/image1.png'),
        ('rId3', RT.SLIDE, 'slide2.xml'),
    ]
    hlink = slide_root(package).find('.//' + qn('a:hlinkClick'))
    assert hlink.get(qn('r:id')) == 'rId3'
    assert hlink.get('action') == 'ppaction://hlinksldjump'


def test_picture_and_table_hyperlinks(minimal_template, png_image):
    target = Slide(title="Details", layout=2)
    first = Slide([Picture(png_image, hlink=target), Table({"a": [1]}, hlink=target)], layout=2)
    pres = Presentation([first, target])
    package = serialize(pres, minimal_template)

    root = slide_root(package)
    pic_link = root.find('.//%s/%s/%s' % (qn('p:nvPicPr'), qn('p:cNvPr'), qn('a:hlinkClick')))
    frame_link = root.find('.//%s/%s/%s' % (qn('p:nvGraphicFramePr'), qn('p:cNvPr'), qn('a:hlinkClick')))
    assert pic_link is not None
    assert frame_link is not None
    assert pic_link.get('action') == frame_link.get('action') == 'ppaction://hlinksldjump'

    rels = {rId: (reltype, target_ref) for rId, reltype, target_ref in
            rels_of(package, 'ppt/slides/_rels/slide1.xml.rels')}
    assert rels[pic_link.get(qn('r:id'))] == (RT.SLIDE, 'slide2.xml')
    assert rels[frame_link.get(qn('r:id'))] == (RT.SLIDE, 'slide2.xml')
    assert pic_link.get(qn('r:id')) != frame_link.get(qn('r:id'))


@pytest.mark.skipif(sys.platform != "linux", reason="needs a filesystem that accepts non-UTF-8 names")
def test_surrogates_are_dropped_from_slide_xml(minimal_template, png_image, tmp_path):
    odd = tmp_path / "caf\udce9.png"
    odd.write_bytes(png_image.read_bytes())
    slide = Slide([Picture(odd, size_x=10, size_y=10), TextBox("bad \udce9 text")], title="T\ud800", layout=2)
    package = serialize(Presentation([slide]), minimal_template)
    root = slide_root(package)
    assert [t.text for t in root.iter(qn('a:t'))] == ["T", "bad  text"]
    assert root.find('.//' + qn('p:nvPicPr') + '/' + qn('p:cNvPr')).get('descr') == "caf.png"


def test_same_picture_twice_gets_two_media_parts(minimal_template, png_image):
    pres = Presentation([Slide([Picture(png_image)]), Slide([Picture(png_image)])])
    package = serialize(pres, minimal_template)
    assert 'ppt/media/image1.png' in package.parts
    assert 'ppt/media/image2.png' in package.parts
    assert package.parts['ppt/media/image1.png'] == png_image.read_bytes()


def test_dangling_hyperlink(minimal_template):
    pres = Presentation([Slide([TextBox("nowhere", hlink=Slide())])])
    with pytest.raises(DanglingHyperlink):
        serialize(pres, minimal_template)


def test_missing_layout(minimal_template):
    with pytest.raises(TemplateCorrupt):
        serialize(Presentation([Slide(layout=9)]), minimal_template)


def test_presentation_parts_are_patched(minimal_template, jpeg_image):
    pres = Presentation([Slide(layout=2), Slide([Picture(jpeg_image)], layout=2)], title="Q3", author="Ada")
    package = serialize(pres, minimal_template)
    assert package.replaced == {
        '[Content_Types].xml',
        'ppt/presentation.xml',
        'ppt/_rels/presentation.xml.rels',
        'docProps/core.xml',
    }

    rels = rels_of(package, 'ppt/_rels/presentation.xml.rels')
    assert rels[:2] == [
        ('rId1', RT.SLIDE_MASTER, 'slideMasters/slideMaster1.xml'),
        ('rId2', RT.THEME, 'theme/theme1.xml'),
    ]
    assert rels[2:] == [('rId3', RT.SLIDE, 'slides/slide1.xml'), ('rId4', RT.SLIDE, 'slides/slide2.xml')]

    presentation = etree.fromstring(package.parts['ppt/presentation.xml'])
    sld_id_lst = presentation.find(qn('p:sldIdLst'))
    assert sld_id_lst.getprevious().tag == qn('p:sldMasterIdLst')
    assert [(s.get('id'), s.get(qn('r:id'))) for s in sld_id_lst] == [('256', 'rId3'), ('257', 'rId4')]

    types = etree.fromstring(package.parts['[Content_Types].xml'])
    overrides = {o.get('PartName'): o.get('ContentType') for o in types.iter('{%s}Override' % NS_CT)}
    assert overrides['/ppt/slides/slide1.xml'] == CT.PML_SLIDE
    assert overrides['/ppt/slides/slide2.xml'] == CT.PML_SLIDE
    defaults = {d.get('Extension'): d.get('ContentType') for d in types.iter('{%s}Default' % NS_CT)}
    assert defaults['jpg'] == CT.JPEG

    core = etree.fromstring(package.parts['docProps/core.xml'])
    assert core.find('{%s}title' % NS_DC).text == "Q3"
    assert core.find('{%s}creator' % NS_DC).text == "Ada"


def test_template_slides_are_kept(tmp_path):
    template = build_template(
        tmp_path / 'with_slide.pptx',
        extra={
            'ppt/slides/slide1.xml': '<p:sld xmlns:p="http://schemas.openxmlformats.org/presentationml/2006/main"/>',
            'ppt/presentation.xml': (
                '<p:presentation xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships" '
                'xmlns:p="http://schemas.openxmlformats.org/presentationml/2006/main">'
                '<p:sldIdLst><p:sldId id="300" r:id="rId2"/></p:sldIdLst>'
                '<p:sldSz cx="9144000" cy="6858000"/></p:presentation>'
            ),
        },
    )
    package = serialize(Presentation([Slide(layout=2)]), template)
    assert 'ppt/slides/slide2.xml' in package.new_members
    presentation = etree.fromstring(package.parts['ppt/presentation.xml'])
    assert [s.get('id') for s in presentation.iter(qn('p:sldId'))] == ['300', '301']


def test_template_without_core_properties(tmp_path):
    template = build_template(tmp_path / 'bare.pptx', omit=('docProps/core.xml',))
    package = serialize(Presentation(title="Fresh", author="Ada"), template)
    assert 'docProps/core.xml' in package.new_members
    core = etree.fromstring(package.parts['docProps/core.xml'])
    assert core.find('{%s}title' % NS_DC).text == "Fresh"
    assert core.find('{%s}creator' % NS_DC).text == "Ada"

    assert rels_of(package, '_rels/.rels')[-1] == ('rId2', RT.CORE_PROPERTIES, 'docProps/core.xml')
    types = etree.fromstring(package.parts['[Content_Types].xml'])
    overrides = {o.get('PartName'): o.get('ContentType') for o in types.iter('{%s}Override' % NS_CT)}
    assert overrides['/docProps/core.xml'] == CT.OPC_CORE_PROPERTIES
