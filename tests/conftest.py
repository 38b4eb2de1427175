"""Shared fixtures: real image files and small hand-built template packages."""

import zipfile
from pathlib import Path

import pytest
from PIL import Image as PILImage

CONTENT_TYPES_XML = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
    '<Default Extension="xml" ContentType="application/xml"/>'
    '<Override PartName="/ppt/presentation.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.presentationml.presentation.main+xml"/>'
    '<Override PartName="/ppt/slideLayouts/slideLayout1.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.presentationml.slideLayout+xml"/>'
    '<Override PartName="/ppt/slideLayouts/slideLayout2.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.presentationml.slideLayout+xml"/>'
    '<Override PartName="/docProps/core.xml" '
    'ContentType="application/vnd.openxmlformats-package.core-properties+xml"/>'
    '</Types>'
)

ROOT_RELS_XML = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
    '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
    '<Relationship Id="rId1" '
    'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" '
    'Target="ppt/presentation.xml"/>'
    '</Relationships>'
)

PRESENTATION_XML = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
    '<p:presentation xmlns:a="http://schemas.openxmlformats.org/drawingml/2006/main" '
    'xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships" '
    'xmlns:p="http://schemas.openxmlformats.org/presentationml/2006/main">'
    '<p:sldMasterIdLst><p:sldMasterId id="2147483648" r:id="rId1"/></p:sldMasterIdLst>'
    '<p:sldSz cx="9144000" cy="6858000" type="screen4x3"/>'
    '<p:notesSz cx="6858000" cy="9144000"/>'
    '</p:presentation>'
)

PRESENTATION_RELS_XML = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
    '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
    '<Relationship Id="rId1" '
    'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/slideMaster" '
    'Target="slideMasters/slideMaster1.xml"/>'
    '<Relationship Id="rId2" '
    'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/theme" '
    'Target="theme/theme1.xml"/>'
    '</Relationships>'
)

CORE_XML = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
    '<cp:coreProperties '
    'xmlns:cp="http://schemas.openxmlformats.org/package/2006/metadata/core-properties" '
    'xmlns:dc="http://purl.org/dc/elements/1.1/">'
    '<dc:title>Template</dc:title>'
    '</cp:coreProperties>'
)


def layout_xml(ph_type):
    placeholder = ''
    if ph_type:
        placeholder = (
            '<p:sp><p:nvSpPr><p:cNvPr id="2" name="Title 1"/><p:cNvSpPr/>'
            '<p:nvPr><p:ph type="%s"/></p:nvPr></p:nvSpPr><p:spPr/></p:sp>' % ph_type
        )
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        '<p:sldLayout xmlns:a="http://schemas.openxmlformats.org/drawingml/2006/main" '
        'xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships" '
        'xmlns:p="http://schemas.openxmlformats.org/presentationml/2006/main">'
        '<p:cSld><p:spTree><p:nvGrpSpPr><p:cNvPr id="1" name=""/><p:cNvGrpSpPr/><p:nvPr/></p:nvGrpSpPr>'
        '<p:grpSpPr/>%s</p:spTree></p:cSld></p:sldLayout>' % placeholder
    )


def build_template(path: Path, omit=(), extra=None) -> Path:
    """Write a small template package; `omit` drops parts, `extra` adds or replaces them"""
    parts = {
        '[Content_Types].xml': CONTENT_TYPES_XML,
        '_rels/.rels': ROOT_RELS_XML,
        'ppt/presentation.xml': PRESENTATION_XML,
        'ppt/_rels/presentation.xml.rels': PRESENTATION_RELS_XML,
        'ppt/slideLayouts/slideLayout1.xml': layout_xml('ctrTitle'),
        'ppt/slideLayouts/slideLayout2.xml': layout_xml('title'),
        'ppt/slideLayouts/slideLayout3.xml': layout_xml(None),
        'docProps/core.xml': CORE_XML,
    }
    parts.update(extra or {})
    with zipfile.ZipFile(path, 'w', zipfile.ZIP_DEFLATED) as zf:
        for name, data in parts.items():
            if name not in omit:
                zf.writestr(name, data)
    return path


@pytest.fixture
def minimal_template(tmp_path):
    return build_template(tmp_path / 'minimal.pptx')


@pytest.fixture
def png_image(tmp_path):
    path = tmp_path / 'chart.png'
    PILImage.new('RGB', (300, 200), color=(200, 30, 30)).save(path)
    return path


@pytest.fixture
def jpeg_image(tmp_path):
    path = tmp_path / 'photo.jpg'
    PILImage.new('RGB', (100, 100), color=(10, 120, 200)).save(path, format='JPEG')
    return path


@pytest.fixture(autouse=True)
def no_file_opening(monkeypatch):
    """Never launch a viewer from tests"""
    opened = []
    monkeypatch.setenv('SLIDEPACK_OPEN_AFTER_WRITE', 'false')
    monkeypatch.delenv('SLIDEPACK_TEMPLATE_PATH', raising=False)
    monkeypatch.setattr('slidepack.writer.open_file', opened.append)
    return opened
