"""
引用编号与参考文献重建。

生成文本中的引用是松散的：正文里有 ``[12]`` 这样的编号标记，
参考文献章节里有带编号或不带编号的来源行。本模块负责：
1. 为每个引用标记分配稳定序号（显式数字原样保留，其余分配合成序号）；
2. 用可调启发式判断一行文字是否像来源条目；
3. 在导出结束时生成无空洞的参考文献列表，缺失条目用占位文字补齐。
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from loguru import logger

YEAR_RE = re.compile(r"(?<!\d)(?:1[5-9]\d{2}|20\d{2})(?!\d)")
URL_RE = re.compile(r"(?:https?://|www\.)\S+", re.IGNORECASE)
TERMINAL_PUNCT_RE = re.compile(r"[.!?;]\s*$")
NUMERIC_MARKER_RE = re.compile(r"^\[?\s*(\d+)\s*\]?[.)]?$")
INLINE_MARKER_RE = re.compile(r"\[(\s*\d+(?:\s*[,;–-]\s*\d+)*\s*)\]")
NUMBERED_LINE_RE = re.compile(r"^(?:\[(\d+)\]|(\d+)[.)])\s*(.*)$")
BRACKET_RUN_RE = re.compile(r"\[(\d+)\]\s*(.*?)(?=\s*\[\d+\]|$)", re.DOTALL)
BULLET_PREFIX_RE = re.compile(r"^[-*•]\s+")
MARKDOWN_NOISE_RE = re.compile(r"^(?:#{1,6}\s*|>\s*)+")
REFERENCE_HEADER_RE = re.compile(r"^(?:ссылки|references)\s*:", re.IGNORECASE)


def normalize_entry_text(text: str) -> str:
    """用于去重与合成键的归一化：压缩空白、去掉尾部标点、转小写。"""
    compact = re.sub(r"\s+", " ", (text or "").strip())
    return compact.rstrip(" .;").lower()


def is_bibliography_title(title: str, patterns: Iterable[str]) -> bool:
    """章节标题是否命中参考文献模式（大小写不敏感的子串匹配）。"""
    lowered = (title or "").lower()
    return any(p and p.lower() in lowered for p in patterns)


class SourceLineFilter:
    """
    来源行识别启发式。

    一行被接受为参考文献条目需满足：
    - 含4位年份且以终止标点结尾，或含URL；
    - 不是“填充句”（过长，或以话语连接词开头）。
    填充句即使带年份/链接也会被丢弃，避免正文混入参考文献。
    """

    def __init__(self, filler_prefixes: Sequence[str], max_length: int = 400):
        self.filler_prefixes = [p.strip().lower() for p in filler_prefixes if p and p.strip()]
        self.max_length = max_length

    def is_filler(self, line: str) -> bool:
        text = (line or "").strip()
        if self.max_length and len(text) > self.max_length:
            return True
        lowered = text.lower()
        return any(lowered.startswith(prefix) for prefix in self.filler_prefixes)

    def accepts(self, line: str) -> bool:
        text = (line or "").strip()
        if not text or self.is_filler(text):
            return False
        if YEAR_RE.search(text) and TERMINAL_PUNCT_RE.search(text):
            return True
        return bool(URL_RE.search(text))


@dataclass
class BibliographyEntry:
    """最终参考文献中的一条。"""

    ordinal: int
    text: str
    placeholder: bool = False


class CitationRegistry:
    """
    单次导出内的引用序号表。

    - ensure_ordinal：同一标记在整次导出中返回同一序号；
    - record_entry：先写入者占有该序号，冲突条目进入溢出列表；
    - finalize：输出 1..max 的稠密列表，空位补占位文字，溢出条目追加在末尾。
    """

    def __init__(self, missing_template: str = "Source {index}. Missing", dedupe: bool = True):
        self.missing_template = missing_template
        self.dedupe = dedupe
        self._numeric: Set[int] = set()
        self._synthetic: Dict[str, int] = {}
        self._entries: Dict[int, str] = {}
        self._overflow: List[str] = []
        self._seen_texts: Set[str] = set()
        self._max_ordinal = 0

    @property
    def max_ordinal(self) -> int:
        return self._max_ordinal

    @property
    def is_empty(self) -> bool:
        return self._max_ordinal == 0 and not self._overflow

    def ensure_ordinal(self, marker: object) -> int:
        """
        返回标记对应的序号。

        正整数标记（``12``、``[12]``、``12.``）原样保留；其他标记
        查合成表，不存在时分配当前最大序号之后的下一个整数，
        因此合成序号永远不会复用已出现过的数字。
        """
        key = str(marker if marker is not None else "").strip()
        match = NUMERIC_MARKER_RE.match(key)
        if match and int(match.group(1)) > 0:
            ordinal = int(match.group(1))
            self._numeric.add(ordinal)
            self._max_ordinal = max(self._max_ordinal, ordinal)
            return ordinal

        synthetic_key = normalize_entry_text(key)
        if synthetic_key in self._synthetic:
            return self._synthetic[synthetic_key]
        ordinal = self._max_ordinal + 1
        self._synthetic[synthetic_key] = ordinal
        self._max_ordinal = ordinal
        return ordinal

    def record_entry(self, ordinal: Optional[int], text: str) -> bool:
        """登记一条来源文字；返回是否被采纳（重复文本会被跳过）。"""
        clean = re.sub(r"\s+", " ", (text or "").strip())
        if not clean:
            return False
        norm = normalize_entry_text(clean)
        # 显式编号且尚空的槽位即使文字重复也要填上，否则会显示为缺失
        reserved_slot = ordinal in self._numeric and ordinal not in self._entries
        if self.is_duplicate(clean) and not reserved_slot:
            logger.debug(f"[CitationRegistry] 跳过重复来源: {clean[:60]}")
            return False
        self._seen_texts.add(norm)

        if ordinal is None or ordinal <= 0 or ordinal in self._entries:
            self._overflow.append(clean)
            return True
        self._entries[ordinal] = clean
        self._max_ordinal = max(self._max_ordinal, ordinal)
        return True

    def is_duplicate(self, text: str) -> bool:
        """开启去重时，判断该来源文字是否已登记过。"""
        return self.dedupe and normalize_entry_text(text) in self._seen_texts

    def finalize(self) -> List[BibliographyEntry]:
        entries: List[BibliographyEntry] = []
        for index in range(1, self._max_ordinal + 1):
            text = self._entries.get(index)
            if text:
                entries.append(BibliographyEntry(index, text))
            else:
                entries.append(
                    BibliographyEntry(index, self.missing_template.format(index=index), placeholder=True)
                )
        for offset, text in enumerate(self._overflow, start=1):
            entries.append(BibliographyEntry(self._max_ordinal + offset, text))
        return entries

    # ===== 正文中的引用标记 =====

    def reserve_markers(self, text: str) -> int:
        """预扫描：为正文中全部数字标记预留序号，返回找到的标记数量。"""
        found = 0
        for match in INLINE_MARKER_RE.finditer(text or ""):
            for number in re.findall(r"\d+", match.group(1)):
                self.ensure_ordinal(number)
                found += 1
        return found

    def rewrite_markers(self, text: str) -> str:
        """把正文中的 ``[n]``/``[n, m]`` 标记改写为登记后的序号。"""

        def _replace(match: "re.Match[str]") -> str:
            inner = match.group(1)
            parts = re.split(r"(\s*[,;–-]\s*)", inner.strip())
            rebuilt: List[str] = []
            for part in parts:
                if part.strip().isdigit():
                    rebuilt.append(str(self.ensure_ordinal(part.strip())))
                elif part.strip() in {"-", "–"}:
                    rebuilt.append("–")
                else:
                    rebuilt.append(", ")
            return "[" + "".join(rebuilt) + "]"

        return INLINE_MARKER_RE.sub(_replace, text or "")


def split_source_candidates(line: str) -> List[Tuple[Optional[str], str]]:
    """
    把一行拆成 (标记, 文字) 候选。

    ``[1] A. [2] B.`` 会拆成两条；``1. A`` / ``1) A`` 取数字为标记；
    无编号的行标记为 None。
    """
    text = MARKDOWN_NOISE_RE.sub("", (line or "").strip())
    text = text.replace("**", "").replace("__", "").strip()
    text = BULLET_PREFIX_RE.sub("", text)
    if not text:
        return []
    if text.startswith("[") and len(re.findall(r"\[\d+\]", text)) > 1:
        return [(num, body.strip()) for num, body in BRACKET_RUN_RE.findall(text) if body.strip()]
    match = NUMBERED_LINE_RE.match(text)
    if match:
        number = match.group(1) or match.group(2)
        return [(number, match.group(3).strip())]
    return [(None, text)]


def harvest_entries(
    lines: Iterable[str],
    registry: CitationRegistry,
    line_filter: SourceLineFilter,
) -> Tuple[int, List[str]]:
    """
    从若干行中收集参考文献条目。

    返回 (采纳数量, 被拒绝的行)。显式编号的条目占用该编号，
    无编号的条目分配合成序号。
    """
    accepted = 0
    rejected: List[str] = []
    for raw in lines:
        stripped = (raw or "").strip()
        if not stripped or REFERENCE_HEADER_RE.match(stripped):
            continue
        for marker, body in split_source_candidates(stripped):
            if not line_filter.accepts(body):
                rejected.append(body)
                continue
            if marker is None and registry.is_duplicate(body):
                continue
            ordinal = registry.ensure_ordinal(marker if marker is not None else body)
            if registry.record_entry(ordinal, body):
                accepted += 1
    return accepted, rejected


__all__ = [
    "BibliographyEntry",
    "CitationRegistry",
    "SourceLineFilter",
    "harvest_entries",
    "is_bibliography_title",
    "normalize_entry_text",
    "split_source_candidates",
]
