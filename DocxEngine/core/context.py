"""
单次导出的可变上下文。

表格/图表/章节编号、引用序号表、待用题注与非阻断告警都挂在
ExportContext 上，每次导出新建一个实例并显式传给各节点，
并发的两次导出之间没有任何共享计数器。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from loguru import logger

from ..utils.config import Settings, settings
from .bibliography import CitationRegistry, SourceLineFilter


@dataclass
class ExportContext:
    """COLLECT 阶段累积的全部状态。"""

    config: Settings = field(default_factory=lambda: settings)
    citations: Optional[CitationRegistry] = None
    source_filter: Optional[SourceLineFilter] = None
    table_count: int = 0
    figure_count: int = 0
    section_count: int = 0
    pending_caption: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.citations is None:
            self.citations = CitationRegistry(
                missing_template=self.config.MISSING_SOURCE_TEMPLATE,
                dedupe=self.config.BIBLIOGRAPHY_DEDUPE,
            )
        if self.source_filter is None:
            self.source_filter = SourceLineFilter(
                self.config.FILLER_PREFIXES,
                self.config.BIBLIOGRAPHY_MAX_ENTRY_LENGTH,
            )

    def next_table_number(self) -> int:
        self.table_count += 1
        return self.table_count

    def next_figure_number(self) -> int:
        self.figure_count += 1
        return self.figure_count

    def next_section_number(self) -> int:
        self.section_count += 1
        return self.section_count

    def take_pending_caption(self) -> Optional[str]:
        """取出并清空待用题注。"""
        caption, self.pending_caption = self.pending_caption, None
        return caption

    def warn(self, message: str):
        """记录一条非阻断告警，同时写入日志。"""
        logger.warning(message)
        self.warnings.append(message)


__all__ = ["ExportContext"]
