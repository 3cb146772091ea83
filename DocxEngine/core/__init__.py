"""
Docx Engine核心工具集合。

该包封装了导出上下文、引用/参考文献重建与题名页模板渲染三项
基础能力；章节装订器 DocumentComposer 位于 ``core.stitcher``，
由 Agent 直接引用。
"""

from .bibliography import (
    BibliographyEntry,
    CitationRegistry,
    SourceLineFilter,
    harvest_entries,
    is_bibliography_title,
)
from .context import ExportContext
from .template_parser import TemplatePackage, TitlePageRenderer

__all__ = [
    "BibliographyEntry",
    "CitationRegistry",
    "SourceLineFilter",
    "harvest_entries",
    "is_bibliography_title",
    "ExportContext",
    "TemplatePackage",
    "TitlePageRenderer",
]
