"""
Docx Engine工具模块。

暴露配置、异常定义以及表格/图表规格的验证与修复工具。
"""

from DocxEngine.utils.config import Settings, settings
from DocxEngine.utils.errors import (
    ChartRenderError,
    DocxEngineError,
    ExportSerializationError,
    TemplateParseError,
    TitleFieldsError,
)
from DocxEngine.utils.table_validator import (
    TableValidator,
    TableRepairer,
    TableValidationResult,
    TableRepairResult,
    create_table_validator,
    create_table_repairer,
)
from DocxEngine.utils.chart_validator import (
    ChartValidator,
    ChartRepairer,
    create_chart_validator,
    create_chart_repairer,
)

__all__ = [
    "Settings",
    "settings",
    "ChartRenderError",
    "DocxEngineError",
    "ExportSerializationError",
    "TemplateParseError",
    "TitleFieldsError",
    "TableValidator",
    "TableRepairer",
    "TableValidationResult",
    "TableRepairResult",
    "create_table_validator",
    "create_table_repairer",
    "ChartValidator",
    "ChartRepairer",
    "create_chart_validator",
    "create_chart_repairer",
]
