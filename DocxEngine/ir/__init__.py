"""
Docx Engine的文档IR定义与校验工具。

该模块暴露节点类型常量、节点构造函数与校验器，供分类器、
表格/图表构建器、装订器与渲染器共同复用。
"""

from .schema import (
    IR_VERSION,
    ALLOWED_BLOCK_TYPES,
    ALLOWED_INLINE_MARKS,
    ALLOWED_ALIGNMENTS,
    inline_text,
    make_body_paragraph,
    make_caption,
    make_figure,
    make_heading,
    make_inline,
    make_list,
    make_page_break,
    make_paragraph,
    make_table,
    make_toc,
)
from .validator import IRValidator

__all__ = [
    "IR_VERSION",
    "ALLOWED_BLOCK_TYPES",
    "ALLOWED_INLINE_MARKS",
    "ALLOWED_ALIGNMENTS",
    "inline_text",
    "make_body_paragraph",
    "make_caption",
    "make_figure",
    "make_heading",
    "make_inline",
    "make_list",
    "make_page_break",
    "make_paragraph",
    "make_table",
    "make_toc",
    "IRValidator",
]
