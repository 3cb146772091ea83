"""
章节装订器：把题名页、目录、各章节与参考文献装订成整本IR。

DocumentComposer 按 COLLECT → RECONCILE 两个阶段运行（SERIALIZE
由 DocxRenderer 完成）：
- COLLECT 先做一次预扫描（预留正文中的引用编号、收集参考文献章节
  中的来源行），再逐章生成标题、正文块、表格与图片；
- RECONCILE 生成无空洞的参考文献列表，拼接到第一个参考文献章节
  所在的位置，并按最终章节编号生成目录。
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from ..ir import IR_VERSION, IRValidator, make_heading, make_list, make_toc
from ..nodes.block_classifier_node import BlockClassifierNode, split_blocks
from ..nodes.table_figure_node import Rasterizer, TableFigureNode
from ..state import ExportRequest, Section
from .bibliography import harvest_entries, is_bibliography_title
from .context import ExportContext
from .template_parser import TitlePageRenderer


class DocumentComposer:
    """
    将章节拼接成Document IR的装订器。

    作用：
        - 逐章调用分类节点与表格/图表节点，维护全局编号；
        - 为参考文献预留位置，在遍历结束后再拼接；
        - 生成目录与 IR 元数据，并做一次结构校验。
    """

    def __init__(
        self,
        classifier: Optional[BlockClassifierNode] = None,
        table_builder: Optional[TableFigureNode] = None,
        validator: Optional[IRValidator] = None,
    ):
        self.table_builder = table_builder or TableFigureNode()
        self.classifier = classifier or BlockClassifierNode(self.table_builder)
        self.validator = validator or IRValidator()

    async def compose(
        self,
        request: ExportRequest,
        rasterize: Rasterizer,
        context: ExportContext,
    ) -> Dict[str, Any]:
        """
        生成整本文档IR。

        参数:
            request: 导出请求（章节、题名页字段、模板、风格）。
            rasterize: 异步图表栅格化函数。
            context: 本次导出的上下文，调用方负责为每次导出新建。

        返回:
            dict: 可直接交给渲染器的Document IR。
        """
        config = context.config
        patterns = config.BIBLIOGRAPHY_TITLE_PATTERNS
        bibliography_flags = [is_bibliography_title(s.title, patterns) for s in request.sections]

        title_page = TitlePageRenderer(context).render(
            request.title_fields, request.template, request.style
        )

        self._prescan(request.sections, bibliography_flags, context)

        chapters: List[Dict[str, Any]] = []
        bibliography_slot: Optional[int] = None
        bibliography_title = ""
        for section, is_bibliography in zip(request.sections, bibliography_flags):
            if is_bibliography:
                if bibliography_slot is None:
                    bibliography_slot = len(chapters)
                    bibliography_title = section.title
                continue
            chapters.append(await self._collect_section(section, rasterize, context))

        bibliography = self._build_bibliography(bibliography_title, context)
        if bibliography is not None:
            if bibliography_slot is None:
                chapters.append(bibliography)
            else:
                chapters.insert(bibliography_slot, bibliography)

        for order, chapter in enumerate(chapters, start=1):
            chapter["order"] = order * 10

        fields = request.title_fields
        document = {
            "version": IR_VERSION,
            "documentId": f"doc-{datetime.now().strftime('%Y%m%d-%H%M%S')}",
            "metadata": {
                "title": fields.title,
                "author": fields.author,
                "organization": fields.organization,
                "style": request.style,
                "generatedAt": datetime.now().isoformat(timespec="seconds"),
            },
            "titlePage": title_page,
            "toc": make_toc(config.TOC_TITLE, self._build_toc_entries(chapters)),
            "chapters": chapters,
        }

        ok, errors = self.validator.validate_document(document)
        if not ok:
            for error in errors:
                context.warn(f"[DocumentComposer] IR校验未通过: {error}")

        logger.info(
            f"[DocumentComposer] 装订完成: {len(chapters)} 章, "
            f"{context.table_count} 个表格, {context.figure_count} 张图片"
        )
        return document

    # ===== COLLECT =====

    def _prescan(self, sections: List[Section], flags: List[bool], context: ExportContext):
        """预留正文中出现的全部数字引用编号，再收集参考文献章节的来源行。"""
        reserved = 0
        for section, is_bibliography in zip(sections, flags):
            if not is_bibliography:
                reserved += context.citations.reserve_markers(section.content)
        for section, is_bibliography in zip(sections, flags):
            if not is_bibliography:
                continue
            accepted, rejected = harvest_entries(
                section.content.splitlines(), context.citations, context.source_filter
            )
            logger.info(
                f"[DocumentComposer] 参考文献章节《{section.title}》: 采纳 {accepted} 条, 丢弃 {len(rejected)} 行"
            )
            for line in rejected:
                context.warn(f"[DocumentComposer] 丢弃不像来源的行: {line[:80]}")
        logger.debug(f"[DocumentComposer] 预扫描预留 {reserved} 个引用标记")

    async def _collect_section(
        self,
        section: Section,
        rasterize: Rasterizer,
        context: ExportContext,
    ) -> Dict[str, Any]:
        number = context.next_section_number()
        title = section.title or section.id
        anchor = f"section-{number}"
        blocks: List[Dict[str, Any]] = [
            make_heading(f"{number}. {title}", 1, anchor, numbering=str(number))
        ]

        context.pending_caption = None
        for raw_block in split_blocks(section.content):
            blocks.extend(self.classifier.classify(raw_block, context))
        if context.pending_caption:
            logger.debug(f"[DocumentComposer] 章节《{title}》末尾的题注未被表格使用: {context.pending_caption}")
            context.pending_caption = None

        for table in section.tables:
            blocks.extend(self.table_builder.build_table(table, context))
        for chart in section.charts:
            blocks.extend(await self.table_builder.build_figure(chart, rasterize, context))

        return {
            "chapterId": section.id,
            "title": title,
            "number": number,
            "anchor": anchor,
            "blocks": blocks,
            "isBibliography": False,
        }

    # ===== RECONCILE =====

    def _build_bibliography(self, title: str, context: ExportContext) -> Optional[Dict[str, Any]]:
        """
        生成参考文献章节。

        没有参考文献章节且没有任何引用时返回None；编号为可见章节数 + 1。
        """
        entries = context.citations.finalize()
        if not entries and not title:
            return None

        title = title or context.config.DEFAULT_BIBLIOGRAPHY_TITLE
        number = context.next_section_number()
        anchor = f"section-{number}"
        blocks: List[Dict[str, Any]] = [
            make_heading(f"{number}. {title}", 1, anchor, numbering=str(number))
        ]
        placeholders = sum(1 for entry in entries if entry.placeholder)
        if entries:
            blocks.append(make_list("ordered", [entry.text for entry in entries]))
        if placeholders:
            context.warn(f"[DocumentComposer] 参考文献中有 {placeholders} 条缺失条目已用占位文字补齐")

        return {
            "chapterId": "bibliography",
            "title": title,
            "number": number,
            "anchor": anchor,
            "blocks": blocks,
            "isBibliography": True,
        }

    @staticmethod
    def _build_toc_entries(chapters: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [
            {
                "text": f"{chapter['number']}. {chapter['title']}",
                "anchor": chapter["anchor"],
                "level": 1,
            }
            for chapter in chapters
        ]


__all__ = ["DocumentComposer"]
