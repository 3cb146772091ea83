"""
题名页模板渲染。

用户可以上传一个 .docx 作为题名页模板，模板中用 ``{{TITLE}}``、
``{{AUTHOR}}`` 等占位符标记字段位置。这里负责：
- 通过 python-docx 读取模板主文档，按段落抽取run及其格式；
- 把占位符替换为题名页字段值（大写与小写写法都识别）；
- 模板缺失或无法解析时，回退到内置的默认题名页。

模板解析被隔离在 TemplatePackage 的 ``paragraphs()`` 接口之后，
其余组件只接触 TemplateParagraph/TemplateRun，不直接碰XML。
"""

from __future__ import annotations

import io
import re
import zipfile
import zlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from docx import Document
from docx.enum.text import WD_PARAGRAPH_ALIGNMENT
from docx.opc.exceptions import PackageNotFoundError
from docx.oxml.ns import qn
from docx.shared import Length
from docx.text.paragraph import Paragraph
from loguru import logger
from lxml import etree

from ..ir import make_inline, make_paragraph
from ..state import TitleFields
from ..utils.errors import TemplateParseError

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z_]+)\s*\}\}")

DOC_TYPE_LABELS = {
    "gost": "КУРСОВАЯ РАБОТА",
    "business": "АНАЛИТИЧЕСКИЙ ОТЧЁТ",
    "free": "ДОКУМЕНТ",
}

_ALIGNMENT_MAP = {
    WD_PARAGRAPH_ALIGNMENT.CENTER: "center",
    WD_PARAGRAPH_ALIGNMENT.RIGHT: "right",
    WD_PARAGRAPH_ALIGNMENT.JUSTIFY: "justify",
    WD_PARAGRAPH_ALIGNMENT.DISTRIBUTE: "justify",
}


@dataclass
class TemplateRun:
    """模板中的一个文本run及其字符格式。"""

    text: str
    bold: bool = False
    italic: bool = False
    underline: bool = False
    size: Optional[float] = None
    color: Optional[str] = None
    font: Optional[str] = None

    def with_text(self, text: str) -> "TemplateRun":
        return TemplateRun(text, self.bold, self.italic, self.underline, self.size, self.color, self.font)


@dataclass
class TemplateParagraph:
    """模板中的一个段落：run列表、对齐方式与段前/段后间距（磅）。"""

    runs: List[TemplateRun] = field(default_factory=list)
    alignment: str = "left"
    spacing: Dict[str, float] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)


class TemplatePackage:
    """
    题名页模板包的只读视图。

    构造时即完成容器级校验：不是zip、缺少 word/document.xml、
    或没有任何段落时抛出 TemplateParseError。
    """

    MAIN_PART = "word/document.xml"

    def __init__(self, data: bytes):
        if not data:
            raise TemplateParseError("模板内容为空")
        if not zipfile.is_zipfile(io.BytesIO(data)):
            raise TemplateParseError("模板不是有效的OOXML压缩包")
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                names = archive.namelist()
            if self.MAIN_PART not in names:
                raise TemplateParseError(f"模板缺少 {self.MAIN_PART}")
            self._document = Document(io.BytesIO(data))
            self._paragraphs = self._extract()
        except TemplateParseError:
            raise
        except (PackageNotFoundError, zipfile.BadZipFile, zlib.error, etree.XMLSyntaxError) as exc:
            raise TemplateParseError(f"模板无法解析: {exc}") from exc
        except Exception as exc:
            # 其余读取异常一律按模板损坏处理
            raise TemplateParseError(f"模板读取失败: {exc!r}") from exc

        if not self._paragraphs:
            raise TemplateParseError("模板中没有任何段落")

    def paragraphs(self) -> List[TemplateParagraph]:
        return list(self._paragraphs)

    def _extract(self) -> List[TemplateParagraph]:
        """按文档顺序抽取正文中的全部段落（包括表格单元格内的段落）。"""
        body = self._document.element.body
        result: List[TemplateParagraph] = []
        for p_element in body.iter(qn("w:p")):
            paragraph = Paragraph(p_element, self._document)
            result.append(
                TemplateParagraph(
                    runs=[self._read_run(run) for run in paragraph.runs],
                    alignment=self._read_alignment(paragraph),
                    spacing=self._read_spacing(paragraph),
                )
            )
        return result

    @staticmethod
    def _read_alignment(paragraph: Paragraph) -> str:
        try:
            alignment = paragraph.alignment
        except (ValueError, KeyError):
            # jc 取值不在枚举内
            return "left"
        return _ALIGNMENT_MAP.get(alignment, "left")

    @staticmethod
    def _read_spacing(paragraph: Paragraph) -> Dict[str, float]:
        spacing: Dict[str, float] = {}
        fmt = paragraph.paragraph_format
        if fmt.space_before is not None:
            spacing["before"] = round(fmt.space_before.pt, 2)
        if fmt.space_after is not None:
            spacing["after"] = round(fmt.space_after.pt, 2)
        line = fmt.line_spacing
        if isinstance(line, Length):
            spacing["linePt"] = round(line.pt, 2)
        elif isinstance(line, float):
            spacing["line"] = line
        return spacing

    @staticmethod
    def _read_run(run) -> TemplateRun:
        font = run.font
        color = None
        try:
            if font.color is not None and font.color.rgb is not None:
                color = str(font.color.rgb)
        except ValueError:
            color = None
        return TemplateRun(
            text=run.text,
            bold=bool(run.bold),
            italic=bool(run.italic),
            underline=bool(run.underline),
            size=font.size.pt if font.size is not None else None,
            color=color,
            font=font.name,
        )


def build_placeholder_values(fields: TitleFields, style: str = "gost") -> Dict[str, str]:
    """
    由题名页字段生成占位符取值表。

    参数:
        fields: 已补齐默认值的题名页字段。
        style: 文档风格，用于生成文档类型标签。

    返回:
        dict: 大写占位符名 -> 文本；组合占位符（*_LINE）在对应字段为空时为空串。
    """
    doc_type = fields.doc_type or DOC_TYPE_LABELS.get(style, DOC_TYPE_LABELS["gost"])

    def _line(prefix: str, value: str) -> str:
        return f"{prefix}{value}" if value else ""

    location = ", ".join(part for part in (fields.city, fields.year) if part)
    return {
        "ORGANIZATION": fields.organization,
        "UNIVERSITY": fields.organization,
        "FACULTY": fields.faculty,
        "DEPARTMENT": fields.department,
        "DIRECTION": fields.direction,
        "PROFILE": fields.profile,
        "TITLE": fields.title,
        "THEME": fields.title,
        "DOC_TYPE": doc_type,
        "AUTHOR": fields.author,
        "GROUP": fields.group,
        "SUPERVISOR": fields.supervisor,
        "SUPERVISOR_POSITION": fields.supervisor_position,
        "CITY": fields.city,
        "YEAR": fields.year,
        "AUTHOR_LINE": _line("Автор: ", fields.author),
        "GROUP_LINE": _line("Группа: ", fields.group),
        "SUPERVISOR_LINE": _line("Руководитель: ", fields.supervisor),
        "SUPERVISOR_POSITION_LINE": fields.supervisor_position,
        "DIRECTION_LINE": _line("Направление: ", fields.direction),
        "PROFILE_LINE": _line("Профиль: ", fields.profile),
        "LOCATION_LINE": location,
    }


def substitute_placeholders(text: str, values: Dict[str, str]) -> str:
    """替换 ``{{KEY}}`` 与 ``{{key}}``；未知占位符替换为空串。"""

    def _replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name.upper() != name and name.lower() != name:
            # 混合大小写不属于约定写法，原样保留
            return match.group(0)
        return values.get(name.upper(), "")

    return PLACEHOLDER_PATTERN.sub(_replace, text)


class TitlePageRenderer:
    """
    题名页渲染器。

    render() 永不抛出：模板解析失败时记录告警并使用默认题名页，
    保证导出继续进行。
    """

    def __init__(self, context=None):
        self.context = context

    def render(
        self,
        fields: TitleFields,
        template_package: Optional[bytes] = None,
        style: str = "gost",
    ) -> List[Dict[str, Any]]:
        """
        生成题名页段落节点。

        参数:
            fields: 用户填写的题名页字段（空字段会补默认值）。
            template_package: 可选的模板 .docx 二进制。
            style: 文档风格。

        返回:
            list[dict]: 段落IR节点列表。
        """
        resolved = fields.resolved()
        values = build_placeholder_values(resolved, style)

        if template_package:
            try:
                package = TemplatePackage(template_package)
                blocks = [self._render_paragraph(p, values) for p in package.paragraphs()]
                logger.info(f"[TitlePageRenderer] 使用上传模板渲染题名页，共 {len(blocks)} 段")
                return blocks
            except TemplateParseError as exc:
                self._warn(f"[TitlePageRenderer] 题名页模板解析失败，改用默认题名页: {exc}")

        return self.render_default(resolved, values)

    def render_default(self, fields: TitleFields, values: Dict[str, str]) -> List[Dict[str, Any]]:
        """内置题名页：机构 → 院系/教研室 → 文档类型 → «题目» → 右对齐的作者/导师 → 右对齐的城市与年份。"""

        def _centered(text: str, bold: bool = False, after: float = 6) -> Dict[str, Any]:
            return make_paragraph(text, align="center", role="title", bold=bold, spacing={"after": after})

        def _right(text: str, after: float = 0) -> Dict[str, Any]:
            return make_paragraph(text, align="right", role="title", spacing={"after": after})

        blocks: List[Dict[str, Any]] = [_centered(fields.organization.upper(), bold=True)]
        if fields.faculty and fields.faculty != TitleFields.DEFAULTS["faculty"]:
            blocks.append(_centered(fields.faculty))
        if fields.department and fields.department != TitleFields.DEFAULTS["department"]:
            blocks.append(_centered(fields.department, after=120))
        blocks.append(_centered(values["DOC_TYPE"], bold=True, after=12))
        blocks.append(_centered(f"«{fields.title}»", bold=True, after=120))

        for key in ("AUTHOR_LINE", "GROUP_LINE", "SUPERVISOR_LINE", "SUPERVISOR_POSITION_LINE"):
            if key == "SUPERVISOR_LINE" and fields.supervisor == TitleFields.DEFAULTS["supervisor"]:
                continue
            if values.get(key):
                blocks.append(_right(values[key], after=6))

        blocks.append(
            make_paragraph(
                values["LOCATION_LINE"],
                align="right",
                role="title",
                spacing={"before": 120},
            )
        )
        return blocks

    def _render_paragraph(self, paragraph: TemplateParagraph, values: Dict[str, str]) -> Dict[str, Any]:
        runs = [run.with_text(substitute_placeholders(run.text, values)) for run in paragraph.runs]
        merged = "".join(run.text for run in runs)
        full = substitute_placeholders(paragraph.text, values)
        if full != merged:
            # 占位符被拆分到多个run中，合并后按首个run的格式输出
            first = paragraph.runs[0] if paragraph.runs else TemplateRun("")
            runs = [first.with_text(full)]

        inlines = [
            make_inline(
                run.text,
                bold=run.bold,
                italic=run.italic,
                underline=run.underline,
                size=run.size,
                color=run.color,
                font=run.font,
            )
            for run in runs
        ] or [make_inline("")]
        return make_paragraph(
            align=paragraph.alignment,
            role="title",
            inlines=inlines,
            spacing=paragraph.spacing or None,
        )

    def _warn(self, message: str):
        if self.context is not None:
            self.context.warn(message)
        else:
            logger.warning(message)


__all__ = [
    "DOC_TYPE_LABELS",
    "TemplatePackage",
    "TemplateParagraph",
    "TemplateRun",
    "TitlePageRenderer",
    "build_placeholder_values",
    "substitute_placeholders",
]
