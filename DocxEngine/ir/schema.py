"""
Docx Engine 文档IR定义。

IR（styled node）是与输出格式无关的中间表示：题名页、目录、
章节标题、段落、列表、表格、图片及题注都用普通dict表达，
由 Composer 组装、由 DOCX/Markdown 渲染器消费。这里集中维护
允许的节点类型与构造函数，保证各组件对结构有一致认知。
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

IR_VERSION = "1.0"

# ====== 基础常量 ======
ALLOWED_INLINE_MARKS: List[str] = [
    "bold",
    "italic",
    "underline",
    "color",
    "font",
    "size",
]

ALLOWED_BLOCK_TYPES: List[str] = [
    "heading",
    "paragraph",
    "list",
    "table",
    "figure",
    "toc",
    "pageBreak",
]

ALLOWED_ALIGNMENTS: List[str] = ["left", "center", "right", "justify"]

# 段落角色，渲染器据此选择字号/缩进
PARAGRAPH_ROLES: List[str] = ["body", "caption", "title", "placeholder"]


# ====== 构造函数 ======

def make_inline(
    text: str,
    bold: bool = False,
    italic: bool = False,
    underline: bool = False,
    size: Optional[float] = None,
    color: Optional[str] = None,
    font: Optional[str] = None,
) -> Dict[str, Any]:
    """构造一个带marks的文本run。"""
    marks: List[Dict[str, Any]] = []
    if bold:
        marks.append({"type": "bold"})
    if italic:
        marks.append({"type": "italic"})
    if underline:
        marks.append({"type": "underline"})
    if size:
        marks.append({"type": "size", "value": float(size)})
    if color:
        marks.append({"type": "color", "value": str(color)})
    if font:
        marks.append({"type": "font", "value": str(font)})
    return {"text": text, "marks": marks}


def make_paragraph(
    text: str = "",
    align: str = "justify",
    role: str = "body",
    first_line_indent: bool = False,
    inlines: Optional[List[Dict[str, Any]]] = None,
    spacing: Optional[Dict[str, int]] = None,
    bold: bool = False,
) -> Dict[str, Any]:
    """构造段落节点；未传 inlines 时用 text 生成单个run。"""
    block: Dict[str, Any] = {
        "type": "paragraph",
        "inlines": inlines if inlines is not None else [make_inline(text, bold=bold)],
        "align": align if align in ALLOWED_ALIGNMENTS else "left",
        "role": role if role in PARAGRAPH_ROLES else "body",
        "firstLineIndent": bool(first_line_indent),
    }
    if spacing:
        block["spacing"] = dict(spacing)
    return block


def make_body_paragraph(text: str) -> Dict[str, Any]:
    """正文段落：两端对齐、首行缩进。"""
    return make_paragraph(text, align="justify", role="body", first_line_indent=True)


def make_caption(text: str, align: str) -> Dict[str, Any]:
    return make_paragraph(text, align=align, role="caption")


def make_heading(text: str, level: int, anchor: str, numbering: str = "") -> Dict[str, Any]:
    block: Dict[str, Any] = {
        "type": "heading",
        "level": max(1, min(6, int(level))),
        "text": text,
        "anchor": anchor,
    }
    if numbering:
        block["numbering"] = numbering
    return block


def make_list(list_type: str, items: List[str]) -> Dict[str, Any]:
    """构造列表节点，items 中每一项是一个段落块列表。"""
    return {
        "type": "list",
        "listType": "ordered" if list_type == "ordered" else "bullet",
        "items": [[make_paragraph(text, align="justify", role="body")] for text in items],
    }


def make_table(headers: List[str], rows: List[List[str]]) -> Dict[str, Any]:
    """
    构造表格节点。

    表头行加粗并带底纹，所有列等宽（百分比）。
    """
    column_count = max(1, len(headers))
    width = round(100.0 / column_count, 2)

    def _cell(text: str, header: bool) -> Dict[str, Any]:
        return {
            "blocks": [make_paragraph(text, align="center" if header else "left", bold=header)],
            "header": header,
        }

    table_rows = [{"cells": [_cell(h, True) for h in headers], "header": True}]
    for row in rows:
        table_rows.append({"cells": [_cell(c, False) for c in row], "header": False})
    return {
        "type": "table",
        "rows": table_rows,
        "colgroup": [{"widthPct": width} for _ in range(column_count)],
        "headerShading": True,
    }


def make_figure(data: bytes, width: int, height: int, mime_type: str = "image/png") -> Dict[str, Any]:
    return {
        "type": "figure",
        "image": {
            "data": data,
            "width": int(width),
            "height": int(height),
            "mimeType": mime_type,
        },
        "align": "center",
    }


def make_toc(title: str, entries: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": "toc", "title": title, "entries": entries}


def make_page_break() -> Dict[str, Any]:
    return {"type": "pageBreak"}


def inline_text(block: Dict[str, Any]) -> str:
    """拼接段落节点中所有run的文本。"""
    return "".join(
        str(run.get("text", ""))
        for run in block.get("inlines", []) or []
        if isinstance(run, dict)
    )


__all__ = [
    "IR_VERSION",
    "ALLOWED_INLINE_MARKS",
    "ALLOWED_BLOCK_TYPES",
    "ALLOWED_ALIGNMENTS",
    "PARAGRAPH_ROLES",
    "make_inline",
    "make_paragraph",
    "make_body_paragraph",
    "make_caption",
    "make_heading",
    "make_list",
    "make_table",
    "make_figure",
    "make_toc",
    "make_page_break",
    "inline_text",
]
