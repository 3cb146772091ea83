"""
表格/图表构建节点。

把结构化的 TableSpec 与栅格化后的 ChartSpec 转换为文档原生的
表格节点与图片节点，并附加全局连续编号的题注：
- 表格题注位于表格上方、右对齐：``Table {n} – {title}``
- 图片题注位于图片下方、居中：``Figure {n} – {caption}``
单个图表栅格化失败只输出一行居中占位文字，不中断导出。
"""

from __future__ import annotations

import re
from typing import Any, Awaitable, Callable, Dict, List, Union

from ..core.context import ExportContext
from ..ir import make_caption, make_figure, make_paragraph, make_table
from ..renderers.chart_to_png import RasterImage, coerce_raster
from ..state import ChartSpec, TableSpec
from ..utils.chart_validator import ChartRepairer, ChartValidator
from ..utils.table_validator import TableRepairer, TableValidator
from .base_node import BaseNode

RasterResult = Union[RasterImage, bytes, str]
Rasterizer = Callable[[ChartSpec], Awaitable[RasterResult]]

TABLE_PREFIX_PATTERN = re.compile(r"^(?:table|таблица)\s*\d+\s*[.:–—-]?\s*", re.IGNORECASE)
FIGURE_PREFIX_PATTERN = re.compile(r"^(?:figure|fig\.|рисунок|рис\.)\s*\d+\s*[.:–—-]?\s*", re.IGNORECASE)


def strip_caption_prefix(text: str, pattern: "re.Pattern[str]" = TABLE_PREFIX_PATTERN) -> str:
    """去掉标题前已有的 “Table N” 前缀，避免题注重复编号。"""
    return pattern.sub("", (text or "").strip()).strip()


class TableFigureNode(BaseNode):
    """
    表格与图表节点。

    表格在构建前经过 TableValidator/TableRepairer 规整，保证每行列数
    与表头一致；图表在栅格化前经过 ChartValidator/ChartRepairer。
    """

    def __init__(self):
        super().__init__("TableFigureNode")
        self.table_validator = TableValidator()
        self.table_repairer = TableRepairer(self.table_validator)
        self.chart_validator = ChartValidator()
        self.chart_repairer = ChartRepairer(self.chart_validator)

    def run(self, input_data: Any, context: ExportContext, **kwargs) -> List[Dict[str, Any]]:
        """同步入口只处理表格；图表请使用 build_figure。"""
        if isinstance(input_data, TableSpec):
            return self.build_table(input_data, context)
        raise TypeError(f"TableFigureNode.run 不支持 {type(input_data).__name__}")

    def build_table(
        self,
        spec: TableSpec,
        context: ExportContext,
        title: str = "",
    ) -> List[Dict[str, Any]]:
        """
        构建表格节点。

        参数:
            spec: 表格规格
            context: 导出上下文（提供全局表格编号）
            title: 显式题注文字，优先于 spec 自带的 title/caption

        返回:
            list[dict]: [题注段落, 表格节点]
        """
        validation = self.table_validator.validate(spec)
        if not validation.is_valid:
            repair = self.table_repairer.repair(spec, validation)
            self.log_warning(f"表格结构已修复: {'; '.join(repair.changes)}", context)
            spec = repair.repaired_spec or spec

        config = context.config
        label = strip_caption_prefix(title or spec.label)
        if not label:
            label = config.TABLE_CAPTION_FALLBACK
            self.log_debug("表格缺少标题，使用默认题注")

        number = context.next_table_number()
        caption = make_caption(f"{config.TABLE_CAPTION_LABEL} {number} – {label}", align="right")
        return [caption, make_table(spec.headers, spec.rows)]

    async def build_figure(
        self,
        spec: ChartSpec,
        rasterize: Rasterizer,
        context: ExportContext,
    ) -> List[Dict[str, Any]]:
        """
        栅格化图表并构建图片节点。

        参数:
            spec: 图表规格
            rasterize: 异步栅格化函数
            context: 导出上下文（提供全局图片编号）

        返回:
            list[dict]: 成功时为 [图片节点, 题注段落]；失败时为 [占位段落]，
            且不占用图片编号。
        """
        config = context.config
        validation = self.chart_validator.validate(spec)
        if not validation.is_valid:
            repair = self.chart_repairer.repair(spec, validation)
            self.log_warning(f"图表数据已修复: {'; '.join(repair.changes)}", context)
            spec = repair.repaired_spec or spec

        label = strip_caption_prefix(spec.label, FIGURE_PREFIX_PATTERN)
        try:
            result = await rasterize(spec)
            image = coerce_raster(result, config.CHART_WIDTH_PX, config.CHART_HEIGHT_PX)
        except Exception as exc:
            # 单张图的任何失败都只替换为占位文字
            return [self._failure_placeholder(label, context, exc)]

        number = context.next_figure_number()
        caption_text = label or spec.type
        return [
            make_figure(image.data, image.width, image.height, image.mime_type),
            make_caption(f"{config.FIGURE_CAPTION_LABEL} {number} – {caption_text}", align="center"),
        ]

    def _failure_placeholder(self, label: str, context: ExportContext, exc: BaseException) -> Dict[str, Any]:
        config = context.config
        self.log_warning(f"图表栅格化失败，已插入占位文字: {label or '未命名图表'} ({exc})", context)
        text = config.FIGURE_FAILURE_TEMPLATE.format(
            label=config.FIGURE_CAPTION_LABEL,
            title=label or "chart",
        )
        return make_paragraph(text, align="center", role="placeholder")


__all__ = ["TableFigureNode", "Rasterizer", "strip_caption_prefix"]
