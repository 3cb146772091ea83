"""
Docx Engine数据模型。

导出 Section/TableSpec/ChartSpec/TitleFields 等输入结构，以及
ExportRequest/ExportResult，供Agent、Composer与CLI共享。
"""

from .state import (
    CHART_TYPES,
    DOCUMENT_STYLES,
    ChartDataset,
    ChartSpec,
    ExportRequest,
    ExportResult,
    Section,
    TableSpec,
    TitleFields,
)

__all__ = [
    "CHART_TYPES",
    "DOCUMENT_STYLES",
    "ChartDataset",
    "ChartSpec",
    "ExportRequest",
    "ExportResult",
    "Section",
    "TableSpec",
    "TitleFields",
]
