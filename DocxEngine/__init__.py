"""
Docx Engine。

把内容生成器交付的章节、表格、图表与题名页字段（可选题名页
模板）装订成符合排版规范的 .docx 文档。
"""

from .agent import ExportAgent, build_filename, create_agent
from .core.stitcher import DocumentComposer
from .state import ExportRequest, ExportResult, Section, TitleFields

__version__ = "1.0.0"
__author__ = "Docx Engine Team"

__all__ = [
    "ExportAgent",
    "build_filename",
    "create_agent",
    "DocumentComposer",
    "ExportRequest",
    "ExportResult",
    "Section",
    "TitleFields",
]
