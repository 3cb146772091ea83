"""
文本块分类节点。

章节正文按空行切分为“块”，每个块经过一条有序规则链：
先做预处理（捕获 “Table N. 标题” 题注行、丢弃 “Ссылки:/References:”
噪声行、去掉Markdown标记），再依次判断项目符号列表、编号列表、
管道表格、``[n] 文字`` 引用串，都不命中时输出普通正文段落。
规则链中第一个命中的规则生效；任何输入都不会抛错。
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..core.bibliography import REFERENCE_HEADER_RE, harvest_entries
from ..core.context import ExportContext
from ..ir import make_body_paragraph, make_list
from ..state import TableSpec
from .base_node import BaseNode
from .table_figure_node import TableFigureNode

CAPTION_LINE_RE = re.compile(r"^(?:table|таблица)\s*\d+\s*[.:–—-]\s*(?P<label>.+)$", re.IGNORECASE)
BULLET_RE = re.compile(r"^[-*•]\s+")
NUMBERED_RE = re.compile(r"^\d+[.)]\s+")
CITATION_RUN_RE = re.compile(r"^\[\d+\]")
SEPARATOR_ROW_RE = re.compile(r"^[\s|:+-]+$")
CAPTION_NOISE_RE = re.compile(
    r"((?:table|таблица)\s*\d+\s*[.:–—-]?\s*)(?:(?:table|таблица)\s*\d+\s*[.:–—-]?\s*)+",
    re.IGNORECASE,
)

_HEADING_MARK_RE = re.compile(r"^#{1,6}\s*")
_QUOTE_MARK_RE = re.compile(r"^(?:>\s*)+")
_ITALIC_RE = re.compile(r"(?<![*\w])\*(?=\S)([^*\n]+?)(?<=\S)\*(?![*\w])")


def split_blocks(content: str) -> List[str]:
    """按空行切分章节正文。"""
    normalized = (content or "").replace("\r\n", "\n").replace("\r", "\n")
    return [block for block in re.split(r"\n\s*\n", normalized) if block.strip()]


def strip_markdown(line: str) -> str:
    """去掉标题井号、引用符号、粗体/斜体标记；保留行首的项目符号。"""
    text = _QUOTE_MARK_RE.sub("", line.strip())
    text = _HEADING_MARK_RE.sub("", text)
    text = text.replace("**", "").replace("__", "")
    text = _ITALIC_RE.sub(r"\1", text)
    return text.strip()


def is_separator_row(line: str) -> bool:
    return "|" in line and "-" in line and bool(SEPARATOR_ROW_RE.match(line))


def split_pipe_row(line: str) -> List[str]:
    stripped = line.strip()
    if stripped.startswith("|"):
        stripped = stripped[1:]
    if stripped.endswith("|"):
        stripped = stripped[:-1]
    return [cell.strip() for cell in stripped.split("|")]


def is_tabular_line(line: str) -> bool:
    return "|" in line and not is_separator_row(line) and len(split_pipe_row(line)) >= 2


# ===== 规则谓词（只看清洗后的行，不修改任何状态） =====

def is_bullet_block(lines: List[str]) -> bool:
    return bool(lines) and all(BULLET_RE.match(line) for line in lines)


def is_numbered_block(lines: List[str]) -> bool:
    return bool(lines) and all(NUMBERED_RE.match(line) for line in lines)


def is_pipe_table_block(lines: List[str]) -> bool:
    return sum(1 for line in lines if is_tabular_line(line)) >= 2


def is_citation_run_block(lines: List[str]) -> bool:
    return bool(lines) and all(CITATION_RUN_RE.match(line) for line in lines)


@dataclass
class ClassifierRule:
    """规则链中的一环：谓词 + 转换。"""

    name: str
    predicate: Callable[[List[str]], bool]
    transform: Callable[[List[str], ExportContext], List[Dict[str, Any]]]


class BlockClassifierNode(BaseNode):
    """
    文本块分类节点。

    典型用法::

        node = BlockClassifierNode()
        for block in split_blocks(section.content):
            nodes.extend(node.classify(block, context))
    """

    def __init__(self, table_builder: Optional[TableFigureNode] = None):
        super().__init__("BlockClassifierNode")
        self.table_builder = table_builder or TableFigureNode()
        self.rules: List[ClassifierRule] = [
            ClassifierRule("bullet_list", is_bullet_block, self._emit_bullet_list),
            ClassifierRule("numbered_list", is_numbered_block, self._emit_numbered_list),
            ClassifierRule("pipe_table", is_pipe_table_block, self._emit_pipe_table),
            ClassifierRule("citation_run", is_citation_run_block, self._collect_citation_run),
        ]

    def run(self, input_data: Any, context: ExportContext, **kwargs) -> List[Dict[str, Any]]:
        return self.classify(str(input_data or ""), context)

    def classify(self, block: str, context: ExportContext) -> List[Dict[str, Any]]:
        """
        分类一个文本块并生成IR节点。

        参数:
            block: 一个空行分隔的原始文本块。
            context: 导出上下文（题注暂存、引用序号表、表格编号）。

        返回:
            list[dict]: 零个或多个IR节点；引用串与纯噪声块返回空列表。
        """
        lines = self.preprocess(block, context)
        if not lines:
            return []

        for rule in self.rules:
            if rule.predicate(lines):
                self.log_debug(f"命中规则 {rule.name}: {lines[0][:40]}")
                return rule.transform(lines, context)

        context.pending_caption = None
        return [self._paragraph(" ".join(lines), context)]

    def preprocess(self, block: str, context: ExportContext) -> List[str]:
        """捕获题注行、丢弃引用标题行并清洗Markdown，返回非空行。"""
        raw_lines = [line.strip() for line in (block or "").splitlines() if line.strip()]
        if raw_lines:
            caption_match = CAPTION_LINE_RE.match(strip_markdown(raw_lines[0]))
            if caption_match:
                context.pending_caption = caption_match.group("label").strip()
                raw_lines = raw_lines[1:]

        cleaned: List[str] = []
        for line in raw_lines:
            if REFERENCE_HEADER_RE.match(strip_markdown(line)):
                context.pending_caption = None
                continue
            text = strip_markdown(line)
            if text:
                cleaned.append(text)
        return cleaned

    # ===== 规则转换 =====

    def _emit_bullet_list(self, lines: List[str], context: ExportContext) -> List[Dict[str, Any]]:
        context.pending_caption = None
        items = [context.citations.rewrite_markers(BULLET_RE.sub("", line)) for line in lines]
        return [make_list("bullet", items)]

    def _emit_numbered_list(self, lines: List[str], context: ExportContext) -> List[Dict[str, Any]]:
        context.pending_caption = None
        items = [context.citations.rewrite_markers(NUMBERED_RE.sub("", line)) for line in lines]
        return [make_list("ordered", items)]

    def _emit_pipe_table(self, lines: List[str], context: ExportContext) -> List[Dict[str, Any]]:
        before, table_lines, after = self._partition_table_lines(lines)
        rows = [
            [context.citations.rewrite_markers(cell) for cell in split_pipe_row(line)]
            for line in table_lines
        ]
        caption = context.take_pending_caption() or ""
        spec = TableSpec(headers=rows[0], rows=rows[1:])

        nodes: List[Dict[str, Any]] = []
        if before:
            nodes.append(self._paragraph(" ".join(before), context))
        nodes.extend(self.table_builder.build_table(spec, context, title=caption))
        if after:
            nodes.append(self._paragraph(" ".join(after), context))
        return nodes

    def _collect_citation_run(self, lines: List[str], context: ExportContext) -> List[Dict[str, Any]]:
        context.pending_caption = None
        accepted, rejected = harvest_entries(lines, context.citations, context.source_filter)
        self.log_debug(f"引用串登记 {accepted} 条来源")
        for text in rejected:
            self.log_warning(f"丢弃不像来源的引用行: {text[:80]}", context)
        return []

    # ===== 工具 =====

    @staticmethod
    def _partition_table_lines(lines: List[str]) -> Tuple[List[str], List[str], List[str]]:
        """拆出表格前的文字、表格行（去掉分隔行）与表格后的文字。"""
        first = next(i for i, line in enumerate(lines) if is_tabular_line(line))
        before = lines[:first]
        table_lines: List[str] = []
        after: List[str] = []
        for line in lines[first:]:
            if is_tabular_line(line):
                table_lines.append(line)
            elif is_separator_row(line):
                continue
            else:
                after.append(line)
        return before, table_lines, after

    @staticmethod
    def _paragraph(text: str, context: ExportContext) -> Dict[str, Any]:
        text = CAPTION_NOISE_RE.sub(r"\1", text)
        text = re.sub(r"\s{2,}", " ", text).strip()
        return make_body_paragraph(context.citations.rewrite_markers(text))


__all__ = [
    "BlockClassifierNode",
    "ClassifierRule",
    "is_bullet_block",
    "is_citation_run_block",
    "is_numbered_block",
    "is_pipe_table_block",
    "split_blocks",
    "strip_markdown",
]
