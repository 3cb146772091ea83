"""
Document IR → Markdown 预览渲染器。

导出前给用户快速查看装订结果，不参与DOCX生成。
"""

from __future__ import annotations

from typing import Any, Dict, List

from loguru import logger


class MarkdownRenderer:
    """
    将 Document IR 转为 Markdown 预览。

    - 题名页按段落输出，居中/右对齐信息在Markdown中无法表达，直接降级为普通段落；
    - 目录、章节标题、列表、表格与题注尽量保留；
    - 图片不内嵌，输出一行带尺寸的占位说明。
    """

    def __init__(self) -> None:
        self.document: Dict[str, Any] = {}
        self.metadata: Dict[str, Any] = {}

    def render(self, document_ir: Dict[str, Any]) -> str:
        """
        入口：将IR转换为Markdown字符串。

        参数:
            document_ir: Document IR 数据

        返回:
            str: Markdown 字符串
        """
        self.document = document_ir or {}
        self.metadata = self.document.get("metadata", {}) or {}

        parts: List[str] = []
        title_page = self._render_blocks(self.document.get("titlePage"))
        if title_page:
            parts.append(title_page)
            parts.append("---")

        toc = self.document.get("toc")
        if isinstance(toc, dict):
            parts.append(self._render_toc(toc))
            parts.append("---")

        for chapter in self.document.get("chapters", []) or []:
            chapter_md = self._render_blocks(chapter.get("blocks"))
            if chapter_md:
                parts.append(chapter_md)

        logger.debug(f"[MarkdownRenderer] 已生成预览: {len(self.document.get('chapters') or [])} 章")
        return "\n\n".join(part for part in parts if part).strip() + "\n"

    # ===== 块级渲染 =====

    def _render_blocks(self, blocks: List[Dict[str, Any]] | None, join_with_blank: bool = True) -> str:
        rendered: List[str] = []
        for block in blocks or []:
            md = self._render_block(block).strip()
            if md:
                rendered.append(md)
        separator = "\n\n" if join_with_blank else "\n"
        return separator.join(rendered)

    def _render_block(self, block: Any) -> str:
        if not isinstance(block, dict):
            return ""
        handlers = {
            "heading": self._render_heading,
            "paragraph": self._render_paragraph,
            "list": self._render_list,
            "table": self._render_table,
            "figure": self._render_figure,
            "toc": self._render_toc,
            "pageBreak": lambda b: "",
        }
        handler = handlers.get(block.get("type"))
        return handler(block) if handler else ""

    def _render_heading(self, block: Dict[str, Any]) -> str:
        level = max(1, min(6, int(block.get("level") or 1)))
        return f"{'#' * level} {self._escape_text(block.get('text'))}"

    def _render_paragraph(self, block: Dict[str, Any]) -> str:
        text = self._render_inlines(block.get("inlines", []))
        if block.get("role") == "caption":
            return f"*{text}*" if text else ""
        return text

    def _render_list(self, block: Dict[str, Any]) -> str:
        list_type = block.get("listType", "bullet")
        lines: List[str] = []
        for idx, item_blocks in enumerate(block.get("items") or []):
            prefix = f"{idx + 1}." if list_type == "ordered" else "-"
            content = self._render_blocks(item_blocks, join_with_blank=False)
            if content:
                lines.append(f"{prefix} {content}")
        return "\n".join(lines)

    def _render_table(self, block: Dict[str, Any]) -> str:
        rows = block.get("rows") or []
        if not rows:
            return ""
        rendered = [
            [self._cell_text(cell) for cell in (row.get("cells") or [])]
            for row in rows
            if isinstance(row, dict)
        ]
        header, body = rendered[0], rendered[1:]
        lines = [self._markdown_row(header), self._markdown_separator(len(header))]
        for row in body:
            padded = (row + [""] * len(header))[: len(header)]
            lines.append(self._markdown_row(padded))
        return "\n".join(lines)

    def _render_figure(self, block: Dict[str, Any]) -> str:
        image = block.get("image") or {}
        return f"[image {image.get('width', '?')}×{image.get('height', '?')}]"

    def _render_toc(self, block: Dict[str, Any]) -> str:
        lines = [f"## {self._escape_text(block.get('title') or '')}", ""]
        for entry in block.get("entries") or []:
            anchor = entry.get("anchor")
            text = self._escape_text(entry.get("text"))
            lines.append(f"- [{text}](#{anchor})" if anchor else f"- {text}")
        return "\n".join(lines)

    # ===== 行内渲染 =====

    def _cell_text(self, cell: Dict[str, Any]) -> str:
        parts = [
            self._render_inlines(sub.get("inlines", []), for_table=True)
            for sub in cell.get("blocks") or []
            if isinstance(sub, dict)
        ]
        return " ".join(part for part in parts if part)

    def _markdown_row(self, cells: List[str]) -> str:
        return "| " + " | ".join(cells) + " |"

    def _markdown_separator(self, count: int) -> str:
        return "| " + " | ".join(["---"] * max(1, count)) + " |"

    def _render_inlines(self, inlines: List[Any], for_table: bool = False) -> str:
        return "".join(self._render_inline_run(run, for_table) for run in inlines or [])

    def _render_inline_run(self, run: Any, for_table: bool = False) -> str:
        if not isinstance(run, dict):
            return ""
        result = self._escape_text(run.get("text", ""), for_table=for_table)
        if not result:
            return ""
        for mark in run.get("marks") or []:
            mtype = mark.get("type") if isinstance(mark, dict) else None
            if mtype == "bold":
                result = f"**{result}**"
            elif mtype == "italic":
                result = f"*{result}*"
            elif mtype == "underline":
                result = f"__{result}__"
            # 颜色/字体/字号等非通用标记直接降级为纯文本
        return result

    def _escape_text(self, text: Any, for_table: bool = False) -> str:
        if text is None:
            return ""
        value = str(text)
        if for_table:
            value = value.replace("|", r"\|").replace("\n", " ").replace("\r", " ")
        return value.strip()


__all__ = ["MarkdownRenderer"]
