"""
导出请求与结果的数据模型。

内容生成器交付的章节、表格、图表规格以及题名页字段都在这里
定义为dataclass；核心流程只读这些对象，不会回写。
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Optional

CHART_TYPES = ("line", "bar", "pie")
DOCUMENT_STYLES = ("gost", "business", "free")


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


@dataclass
class TableSpec:
    """结构化表格：表头 + 数据行，可选标题/题注。"""

    headers: List[str]
    rows: List[List[str]]
    title: str = ""
    caption: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TableSpec":
        headers = [_as_text(h) for h in (data.get("headers") or [])]
        rows = [
            [_as_text(cell) for cell in row]
            for row in (data.get("rows") or [])
            if isinstance(row, (list, tuple))
        ]
        return cls(
            headers=headers,
            rows=rows,
            title=_as_text(data.get("title")),
            caption=_as_text(data.get("caption")),
        )

    @property
    def label(self) -> str:
        """题注使用的文字：优先title，其次caption。"""
        return (self.title or self.caption).strip()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "headers": list(self.headers),
            "rows": [list(r) for r in self.rows],
            "title": self.title,
            "caption": self.caption,
        }


@dataclass
class ChartDataset:
    label: str
    data: List[float]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChartDataset":
        values: List[float] = []
        for raw in data.get("data") or []:
            try:
                values.append(float(raw))
            except (TypeError, ValueError):
                values.append(0.0)
        return cls(label=_as_text(data.get("label")), data=values)


@dataclass
class ChartSpec:
    """图表规格：类型、标签与一个或多个数据序列。"""

    type: str
    title: str
    labels: List[str]
    datasets: List[ChartDataset]
    caption: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChartSpec":
        return cls(
            type=_as_text(data.get("type") or "bar").lower(),
            title=_as_text(data.get("title")),
            labels=[_as_text(label) for label in (data.get("labels") or [])],
            datasets=[
                ChartDataset.from_dict(ds)
                for ds in (data.get("datasets") or [])
                if isinstance(ds, dict)
            ],
            caption=_as_text(data.get("caption")),
        )

    @property
    def label(self) -> str:
        return (self.caption or self.title).strip()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "labels": list(self.labels),
            "datasets": [{"label": ds.label, "data": list(ds.data)} for ds in self.datasets],
            "caption": self.caption,
        }


@dataclass
class Section:
    """内容生成器产出的章节。"""

    id: str
    title: str
    content: str = ""
    tables: List[TableSpec] = field(default_factory=list)
    charts: List[ChartSpec] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], index: int = 0) -> "Section":
        return cls(
            id=_as_text(data.get("id") or f"section-{index + 1}"),
            title=_as_text(data.get("title")).strip(),
            content=_as_text(data.get("content")),
            tables=[
                TableSpec.from_dict(t) for t in (data.get("tables") or []) if isinstance(t, dict)
            ],
            charts=[
                ChartSpec.from_dict(c) for c in (data.get("charts") or []) if isinstance(c, dict)
            ],
        )


@dataclass
class TitleFields:
    """
    题名页字段。

    字段名与模板占位符一一对应（大写形式，如 ``{{TITLE}}``）。
    留空的字段在 ``resolved()`` 中替换为默认值。
    """

    organization: str = ""
    faculty: str = ""
    department: str = ""
    direction: str = ""
    profile: str = ""
    title: str = ""
    doc_type: str = ""
    author: str = ""
    group: str = ""
    supervisor: str = ""
    supervisor_position: str = ""
    city: str = ""
    year: str = ""

    DEFAULTS = {
        "organization": "Московский государственный университет",
        "faculty": "Институт/Факультет",
        "department": "Кафедра ...",
        "direction": "38.03.02 Менеджмент",
        "profile": "Цифровые технологии в бизнесе",
        "author": "Студент",
        "supervisor": "Научный руководитель",
        "city": "Москва",
    }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TitleFields":
        known = {f.name for f in fields(cls)}
        aliases = {"university": "organization", "theme": "title"}
        values: Dict[str, str] = {}
        for key, value in (data or {}).items():
            name = aliases.get(str(key).lower(), str(key).lower())
            if name in known and value is not None:
                values[name] = _as_text(value).strip()
        return cls(**values)

    def missing(self, required: List[str]) -> List[str]:
        """返回为空的必填字段名。"""
        return [name for name in required if not _as_text(getattr(self, name, "")).strip()]

    def resolved(self) -> "TitleFields":
        """返回一个补齐默认值后的副本（年份默认为当前年份）。"""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        for name, default in self.DEFAULTS.items():
            if not values.get(name):
                values[name] = default
        if not values.get("year"):
            values["year"] = str(datetime.now().year)
        return TitleFields(**values)

    def to_dict(self) -> Dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class ExportRequest:
    """一次导出动作的全部输入。"""

    sections: List[Section]
    title_fields: TitleFields
    template: Optional[bytes] = None
    style: str = "gost"

    @classmethod
    def from_dict(cls, data: Dict[str, Any], template: Optional[bytes] = None) -> "ExportRequest":
        sections = [
            Section.from_dict(s, idx)
            for idx, s in enumerate(data.get("sections") or [])
            if isinstance(s, dict)
        ]
        style = _as_text(data.get("style") or "gost").lower()
        return cls(
            sections=sections,
            title_fields=TitleFields.from_dict(data.get("title") or data.get("titleFields") or {}),
            template=template,
            style=style if style in DOCUMENT_STYLES else "gost",
        )


@dataclass
class ExportResult:
    """导出结果：文件名、落盘路径、二进制内容与非阻断告警。"""

    filename: str
    data: bytes
    path: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    document: Dict[str, Any] = field(default_factory=dict)
