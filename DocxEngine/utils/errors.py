"""
Docx Engine异常定义。

只有结构性/系统级失败才以异常形式抛出；文本分类与参考文献
重建的启发式从不抛错，而是降级为普通段落或占位条目。
"""

from __future__ import annotations

from typing import Dict, Optional


class DocxEngineError(Exception):
    """引擎所有受控异常的基类。"""


class TitleFieldsError(DocxEngineError, ValueError):
    """题名页必填字段缺失：在任何处理开始前拒绝导出。"""

    def __init__(self, field_errors: Dict[str, str]):
        self.field_errors = dict(field_errors)
        details = "; ".join(f"{name}: {msg}" for name, msg in self.field_errors.items())
        super().__init__(f"题名页字段不完整 ({details})")


class TemplateParseError(DocxEngineError):
    """题名页模板包无法读取（非zip、缺少主文档部件、无段落）。"""


class ChartRenderError(DocxEngineError):
    """单个图表栅格化失败，仅影响该图表。"""


class ExportSerializationError(DocxEngineError):
    """
    序列化/打包失败，整次导出中止。

    category 用于给用户分类提示：memory / io / unknown。
    """

    HINTS = {
        "memory": "文档过大，内存不足；请减少图表数量或拆分文档后重试",
        "io": "写入文件失败；请检查输出目录的磁盘空间与写权限",
        "unknown": "生成文档时发生未知错误，请重试",
    }

    def __init__(self, message: str, category: str = "unknown", cause: Optional[BaseException] = None):
        self.category = category if category in self.HINTS else "unknown"
        self.cause = cause
        super().__init__(message)

    @property
    def hint(self) -> str:
        return self.HINTS[self.category]


__all__ = [
    "DocxEngineError",
    "TitleFieldsError",
    "TemplateParseError",
    "ChartRenderError",
    "ExportSerializationError",
]
