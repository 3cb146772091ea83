"""
题名页模板渲染的测试用例。

模板在内存中用 python-docx 生成。

运行测试：
    python -m pytest DocxEngine/core/test_template_parser.py -v
"""

import io
import struct
import zipfile

import pytest
from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml.ns import qn
from docx.shared import Pt

from DocxEngine.core.context import ExportContext
from DocxEngine.core.template_parser import (
    TemplatePackage,
    TitlePageRenderer,
    build_placeholder_values,
    substitute_placeholders,
)
from DocxEngine.ir import inline_text
from DocxEngine.state import TitleFields
from DocxEngine.utils.errors import TemplateParseError


def _template_bytes(*lines, split_first=False) -> bytes:
    doc = Document()
    for idx, line in enumerate(lines):
        paragraph = doc.add_paragraph()
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        if idx == 0 and split_first:
            # 占位符被拆到两个run中
            half = len(line) // 2
            head = paragraph.add_run(line[:half])
            head.bold = True
            paragraph.add_run(line[half:])
        else:
            run = paragraph.add_run(line)
            run.font.size = Pt(16)
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def _corrupt_member(data: bytes, name: str) -> bytes:
    """翻转某个成员压缩数据的前64个字节。"""
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        info = archive.getinfo(name)
    raw = bytearray(data)
    offset = info.header_offset
    name_len, extra_len = struct.unpack("<HH", bytes(raw[offset + 26:offset + 30]))
    start = offset + 30 + name_len + extra_len
    for i in range(start, start + min(info.compress_size, 64)):
        raw[i] ^= 0xFF
    return bytes(raw)


def _template_with_jc(*values) -> bytes:
    doc = Document()
    for value in values:
        paragraph = doc.add_paragraph()
        paragraph.add_run("{{TITLE}}")
        jc = paragraph._p.get_or_add_pPr().makeelement(qn("w:jc"), {qn("w:val"): value})
        paragraph._p.get_or_add_pPr().append(jc)
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def _fields() -> TitleFields:
    return TitleFields(
        organization="Московский университет",
        title="Анализ рынка",
        author="Иванов И.И.",
        group="М-101",
        city="Москва",
        year="2024",
    )


class TestTemplatePackage:
    """测试TemplatePackage类"""

    def test_reads_paragraphs(self):
        package = TemplatePackage(_template_bytes("{{TITLE}}", "{{AUTHOR_LINE}}"))
        paragraphs = package.paragraphs()
        assert [p.text for p in paragraphs] == ["{{TITLE}}", "{{AUTHOR_LINE}}"]
        assert paragraphs[0].alignment == "center"
        assert paragraphs[0].runs[0].size == 16

    def test_rejects_non_zip(self):
        with pytest.raises(TemplateParseError):
            TemplatePackage(b"definitely not a docx")

    def test_alignment_normalized(self):
        package = TemplatePackage(_template_with_jc("start", "both", "right"))
        assert [p.alignment for p in package.paragraphs()] == ["left", "justify", "right"]

    def test_damaged_central_directory(self):
        data = _template_bytes("{{TITLE}}")
        damaged = data.replace(b"PK\x01\x02", b"XX\x01\x02", 1)
        assert zipfile.is_zipfile(io.BytesIO(damaged))
        with pytest.raises(TemplateParseError):
            TemplatePackage(damaged)

    def test_damaged_deflate_stream(self):
        damaged = _corrupt_member(_template_bytes("{{TITLE}}"), "word/document.xml")
        with pytest.raises(TemplateParseError):
            TemplatePackage(damaged)

    def test_rejects_zip_without_main_part(self):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("readme.txt", "hello")
        with pytest.raises(TemplateParseError):
            TemplatePackage(buffer.getvalue())


class TestPlaceholders:
    """测试占位符取值与替换"""

    def test_composite_values(self):
        values = build_placeholder_values(_fields().resolved(), "business")
        assert values["AUTHOR_LINE"] == "Автор: Иванов И.И."
        assert values["LOCATION_LINE"] == "Москва, 2024"
        assert values["DOC_TYPE"] == "АНАЛИТИЧЕСКИЙ ОТЧЁТ"

    def test_upper_and_lower_case(self):
        values = {"TITLE": "Отчёт"}
        assert substitute_placeholders("{{TITLE}} / {{title}}", values) == "Отчёт / Отчёт"

    def test_unknown_and_mixed_case(self):
        values = {"TITLE": "Отчёт"}
        assert substitute_placeholders("[{{UNKNOWN}}]", values) == "[]"
        assert substitute_placeholders("{{Title}}", values) == "{{Title}}"


class TestTitlePageRenderer:
    """测试TitlePageRenderer类"""

    def setup_method(self):
        self.context = ExportContext()
        self.renderer = TitlePageRenderer(self.context)

    def test_template_substitution(self):
        blocks = self.renderer.render(_fields(), _template_bytes("{{TITLE}}", "{{AUTHOR}}"))
        assert [inline_text(b) for b in blocks] == ["Анализ рынка", "Иванов И.И."]
        assert blocks[0]["align"] == "center"
        assert not self.context.warnings

    def test_split_placeholder_merged(self):
        blocks = self.renderer.render(_fields(), _template_bytes("{{TITLE}}", split_first=True))
        assert inline_text(blocks[0]) == "Анализ рынка"
        assert len(blocks[0]["inlines"]) == 1
        assert {"type": "bold"} in blocks[0]["inlines"][0]["marks"]

    def test_corrupt_template_equals_default(self):
        default = TitlePageRenderer().render(_fields(), None)
        fallback = self.renderer.render(_fields(), b"\x00\x01corrupt")
        assert [inline_text(b) for b in fallback] == [inline_text(b) for b in default]
        assert self.context.warnings

    @pytest.mark.parametrize("damage", ["central_directory", "deflate"])
    def test_damaged_container_equals_default(self, damage):
        data = _template_bytes("{{TITLE}}")
        if damage == "central_directory":
            data = data.replace(b"PK\x01\x02", b"XX\x01\x02", 1)
        else:
            data = _corrupt_member(data, "word/document.xml")
        default = TitlePageRenderer().render(_fields(), None)
        fallback = self.renderer.render(_fields(), data)
        assert [inline_text(b) for b in fallback] == [inline_text(b) for b in default]
        assert self.context.warnings

    def test_default_page_order(self):
        texts = [inline_text(b) for b in TitlePageRenderer().render(_fields(), None, "gost")]
        assert texts[0] == "МОСКОВСКИЙ УНИВЕРСИТЕТ"
        assert "КУРСОВАЯ РАБОТА" in texts
        assert "«Анализ рынка»" in texts
        assert "Группа: М-101" in texts
        assert texts[-1] == "Москва, 2024"
