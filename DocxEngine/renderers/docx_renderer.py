"""
Document IR → DOCX 渲染器。

版式规范在这里是固定常量，不随配置变化：
- A4，左 30 mm / 右 15 mm / 上下 20 mm；
- 正文 Times New Roman 14 pt，1.5 倍行距，首行缩进 1.25 cm，两端对齐；
- 一级章节标题使用内置 “Heading 1” 样式，每章另起一页；
- 表格表头加粗并带灰色底纹，列宽按百分比平均分配。
用户只能通过题名页模板影响题名页本身的样式。
"""

from __future__ import annotations

import io
from typing import Any, Dict, List, Optional

from docx import Document
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.image.exceptions import (
    InvalidImageStreamError,
    UnexpectedEndOfFileError,
    UnrecognizedImageError,
)
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Cm, Emu, Mm, Pt, RGBColor
from loguru import logger

ALIGNMENT_MAP = {
    "left": WD_ALIGN_PARAGRAPH.LEFT,
    "center": WD_ALIGN_PARAGRAPH.CENTER,
    "right": WD_ALIGN_PARAGRAPH.RIGHT,
    "justify": WD_ALIGN_PARAGRAPH.JUSTIFY,
}


class DocxRenderer:
    """
    将 Document IR 序列化为 .docx 二进制。

    render() 返回字节串；render_document() 返回 python-docx 的
    Document 对象，便于测试直接检查结构。
    """

    PAGE_WIDTH = Mm(210)
    PAGE_HEIGHT = Mm(297)
    LEFT_MARGIN = Mm(30)
    RIGHT_MARGIN = Mm(15)
    TOP_MARGIN = Mm(20)
    BOTTOM_MARGIN = Mm(20)

    FONT_NAME = "Times New Roman"
    BODY_SIZE = Pt(14)
    TABLE_SIZE = Pt(12)
    LINE_SPACING = 1.5
    FIRST_LINE_INDENT = Cm(1.25)
    HEADER_FILL = "D9D9D9"
    MAX_IMAGE_WIDTH = Cm(16)
    IMAGE_DPI = 96

    def __init__(self) -> None:
        self.warnings: List[str] = []

    @property
    def text_width(self) -> Emu:
        return Emu(self.PAGE_WIDTH - self.LEFT_MARGIN - self.RIGHT_MARGIN)

    def render(self, document_ir: Dict[str, Any]) -> bytes:
        """
        入口：把IR渲染为 .docx 字节串。

        参数:
            document_ir: Composer 生成的 Document IR。

        返回:
            bytes: 完整的OOXML压缩包。
        """
        doc = self.render_document(document_ir)
        buffer = io.BytesIO()
        doc.save(buffer)
        data = buffer.getvalue()
        logger.info(f"[DocxRenderer] 序列化完成，大小 {len(data) / 1024:.1f} KB")
        return data

    def render_document(self, document_ir: Dict[str, Any]):
        self.warnings = []
        doc = Document()
        self._setup_page(doc)
        self._setup_styles(doc)

        metadata = document_ir.get("metadata") or {}
        doc.core_properties.title = str(metadata.get("title") or "")
        doc.core_properties.author = str(metadata.get("author") or "")

        for block in document_ir.get("titlePage") or []:
            self._render_block(doc, block)

        toc = document_ir.get("toc")
        if isinstance(toc, dict):
            self._render_toc(doc, toc)

        for chapter in document_ir.get("chapters") or []:
            for block in chapter.get("blocks") or []:
                self._render_block(doc, block)
        return doc

    # ===== 页面与样式 =====

    def _setup_page(self, doc):
        for section in doc.sections:
            section.page_width = self.PAGE_WIDTH
            section.page_height = self.PAGE_HEIGHT
            section.left_margin = self.LEFT_MARGIN
            section.right_margin = self.RIGHT_MARGIN
            section.top_margin = self.TOP_MARGIN
            section.bottom_margin = self.BOTTOM_MARGIN

    def _setup_styles(self, doc):
        normal = doc.styles["Normal"]
        self._apply_font(normal, self.BODY_SIZE)
        fmt = normal.paragraph_format
        fmt.line_spacing = self.LINE_SPACING
        fmt.space_before = Pt(0)
        fmt.space_after = Pt(0)

        heading = doc.styles["Heading 1"]
        self._apply_font(heading, self.BODY_SIZE)
        heading.font.bold = True
        heading.font.color.rgb = RGBColor(0, 0, 0)
        heading_fmt = heading.paragraph_format
        heading_fmt.first_line_indent = self.FIRST_LINE_INDENT
        heading_fmt.space_before = Pt(0)
        heading_fmt.space_after = Pt(12)
        heading_fmt.line_spacing = self.LINE_SPACING
        heading_fmt.keep_with_next = True

    def _apply_font(self, style, size):
        style.font.name = self.FONT_NAME
        style.font.size = size
        rpr = style.element.get_or_add_rPr()
        rfonts = rpr.get_or_add_rFonts()
        for attr in ("w:ascii", "w:hAnsi", "w:eastAsia", "w:cs"):
            rfonts.set(qn(attr), self.FONT_NAME)
        # 主题字体优先级高于显式字体名，内置标题样式带有主题字体
        for attr in ("w:asciiTheme", "w:hAnsiTheme", "w:eastAsiaTheme", "w:cstheme"):
            rfonts.attrib.pop(qn(attr), None)

    # ===== 块级渲染 =====

    def _render_block(self, container, block: Dict[str, Any]):
        if not isinstance(block, dict):
            return
        block_type = block.get("type")
        if block_type == "heading":
            self._render_heading(container, block)
        elif block_type == "paragraph":
            self._render_paragraph(container, block)
        elif block_type == "list":
            self._render_list(container, block)
        elif block_type == "table":
            self._render_table(container, block)
        elif block_type == "figure":
            self._render_figure(container, block)
        elif block_type == "toc":
            self._render_toc(container, block)
        elif block_type == "pageBreak":
            container.add_page_break()
        else:
            logger.warning(f"[DocxRenderer] 跳过未知block类型: {block_type}")

    def _render_heading(self, doc, block: Dict[str, Any]):
        level = int(block.get("level") or 1)
        paragraph = doc.add_heading(level=min(level, 9))
        run = paragraph.add_run(str(block.get("text") or ""))
        run.font.color.rgb = RGBColor(0, 0, 0)
        if level == 1:
            paragraph.paragraph_format.page_break_before = True
        paragraph.alignment = WD_ALIGN_PARAGRAPH.LEFT

    def _render_paragraph(self, container, block: Dict[str, Any], paragraph=None, in_table: bool = False):
        if paragraph is None:
            paragraph = container.add_paragraph()
        role = block.get("role", "body")
        paragraph.alignment = ALIGNMENT_MAP.get(block.get("align"), WD_ALIGN_PARAGRAPH.LEFT)
        fmt = paragraph.paragraph_format
        fmt.first_line_indent = self.FIRST_LINE_INDENT if block.get("firstLineIndent") else Cm(0)
        if in_table or role in ("caption", "title", "placeholder"):
            fmt.line_spacing = 1.0
        if role == "caption":
            fmt.space_before = Pt(6)
            fmt.space_after = Pt(6)

        spacing = block.get("spacing") or {}
        if "before" in spacing:
            fmt.space_before = Pt(float(spacing["before"]))
        if "after" in spacing:
            fmt.space_after = Pt(float(spacing["after"]))
        if "line" in spacing:
            fmt.line_spacing = float(spacing["line"])
        elif "linePt" in spacing:
            fmt.line_spacing = Pt(float(spacing["linePt"]))

        for run in block.get("inlines") or []:
            self._add_run(paragraph, run, self.TABLE_SIZE if in_table else None)
        return paragraph

    def _add_run(self, paragraph, run: Dict[str, Any], default_size=None):
        text = str(run.get("text", ""))
        docx_run = paragraph.add_run(text)
        if default_size is not None:
            docx_run.font.size = default_size
        for mark in run.get("marks") or []:
            mtype = mark.get("type")
            value = mark.get("value")
            if mtype == "bold":
                docx_run.bold = True
            elif mtype == "italic":
                docx_run.italic = True
            elif mtype == "underline":
                docx_run.underline = True
            elif mtype == "size" and value:
                docx_run.font.size = Pt(float(value))
            elif mtype == "color" and value:
                color = str(value).lstrip("#")
                if len(color) == 6:
                    try:
                        docx_run.font.color.rgb = RGBColor.from_string(color.upper())
                    except ValueError:
                        logger.debug(f"[DocxRenderer] 忽略非法颜色值: {value}")
            elif mtype == "font" and value:
                docx_run.font.name = str(value)
                rfonts = docx_run._element.get_or_add_rPr().get_or_add_rFonts()
                rfonts.set(qn("w:eastAsia"), str(value))
        return docx_run

    def _render_list(self, container, block: Dict[str, Any]):
        """
        编号列表用手写前缀 “n. ”，保证每个列表都从1开始编号；
        项目符号列表使用内置 “List Bullet” 样式。
        """
        ordered = block.get("listType") == "ordered"
        for idx, item_blocks in enumerate(block.get("items") or [], start=1):
            inlines: List[Dict[str, Any]] = []
            for sub in item_blocks or []:
                if isinstance(sub, dict):
                    inlines.extend(sub.get("inlines") or [])
            if ordered:
                paragraph = container.add_paragraph()
                paragraph.paragraph_format.first_line_indent = self.FIRST_LINE_INDENT
                paragraph.add_run(f"{idx}. ")
            else:
                paragraph = container.add_paragraph(style="List Bullet")
            paragraph.alignment = WD_ALIGN_PARAGRAPH.JUSTIFY
            for run in inlines:
                self._add_run(paragraph, run)

    def _render_table(self, doc, block: Dict[str, Any]):
        rows = [row for row in block.get("rows") or [] if isinstance(row, dict)]
        if not rows:
            return
        col_count = max(len(row.get("cells") or []) for row in rows)
        table = doc.add_table(rows=len(rows), cols=col_count)
        table.style = doc.styles["Table Grid"]
        table.alignment = WD_TABLE_ALIGNMENT.CENTER
        table.autofit = False

        colgroup = block.get("colgroup") or []
        widths = [
            Emu(int(self.text_width * float(col.get("widthPct", 100.0 / col_count)) / 100))
            for col in colgroup
        ] or [Emu(int(self.text_width / col_count))] * col_count

        for r_idx, row in enumerate(rows):
            is_header = bool(row.get("header"))
            if is_header:
                self._mark_header_row(table.rows[r_idx])
            for c_idx, cell_data in enumerate(row.get("cells") or []):
                cell = table.cell(r_idx, c_idx)
                if c_idx < len(widths):
                    cell.width = widths[c_idx]
                for b_idx, sub in enumerate(cell_data.get("blocks") or []):
                    target = cell.paragraphs[0] if b_idx == 0 else None
                    self._render_paragraph(cell, sub, paragraph=target, in_table=True)
                if is_header and block.get("headerShading"):
                    self._shade_cell(cell, self.HEADER_FILL)

        # 表格后留一个空段落，避免与下一段粘连
        doc.add_paragraph()

    @staticmethod
    def _shade_cell(cell, fill: str):
        tc_pr = cell._tc.get_or_add_tcPr()
        shading = OxmlElement("w:shd")
        shading.set(qn("w:val"), "clear")
        shading.set(qn("w:color"), "auto")
        shading.set(qn("w:fill"), fill)
        tc_pr.append(shading)

    @staticmethod
    def _mark_header_row(row):
        tr_pr = row._tr.get_or_add_trPr()
        header = OxmlElement("w:tblHeader")
        header.set(qn("w:val"), "true")
        tr_pr.append(header)

    def _render_figure(self, doc, block: Dict[str, Any]):
        image = block.get("image") or {}
        data: Optional[bytes] = image.get("data")
        width_px = int(image.get("width") or 0)
        paragraph = doc.add_paragraph()
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        paragraph.paragraph_format.first_line_indent = Cm(0)
        paragraph.paragraph_format.keep_with_next = True

        width = Emu(int(width_px / self.IMAGE_DPI * 914400)) if width_px else self.MAX_IMAGE_WIDTH
        width = min(width, self.MAX_IMAGE_WIDTH)
        try:
            paragraph.add_run().add_picture(io.BytesIO(data or b""), width=width)
        except (UnrecognizedImageError, UnexpectedEndOfFileError, InvalidImageStreamError) as exc:
            message = f"[DocxRenderer] 图片无法嵌入，已输出占位文字: {exc}"
            logger.warning(message)
            self.warnings.append(message)
            paragraph.add_run("[image unavailable]")

    def _render_toc(self, doc, block: Dict[str, Any]):
        title = doc.add_paragraph()
        title.alignment = WD_ALIGN_PARAGRAPH.CENTER
        title.paragraph_format.first_line_indent = Cm(0)
        title.paragraph_format.page_break_before = True
        title.paragraph_format.space_after = Pt(12)
        title_run = title.add_run(str(block.get("title") or ""))
        title_run.bold = True

        for entry in block.get("entries") or []:
            paragraph = doc.add_paragraph()
            paragraph.alignment = WD_ALIGN_PARAGRAPH.LEFT
            paragraph.paragraph_format.first_line_indent = Cm(0)
            level = int(entry.get("level") or 1)
            if level > 1:
                paragraph.paragraph_format.left_indent = Cm(0.5 * (level - 1))
            paragraph.add_run(str(entry.get("text") or ""))


__all__ = ["DocxRenderer", "ALIGNMENT_MAP"]
