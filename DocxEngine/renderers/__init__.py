"""
Docx Engine渲染器集合。

提供 DocxRenderer（Document IR → .docx）、MarkdownRenderer（预览）
以及内置的图表栅格化器 ChartToPNGConverter。
"""

from .chart_to_png import ChartToPNGConverter, RasterImage, coerce_raster, create_chart_converter
from .docx_renderer import DocxRenderer
from .markdown_renderer import MarkdownRenderer

__all__ = [
    "ChartToPNGConverter",
    "RasterImage",
    "coerce_raster",
    "create_chart_converter",
    "DocxRenderer",
    "MarkdownRenderer",
]
