"""
文档IR结构校验器。

Composer 在 RECONCILE 结束、序列化之前调用，确认 DocxRenderer
能识别每个节点：段落角色与对齐合法、表格每行列数一致且与
colgroup 对齐、图片带有可嵌入的字节、目录锚点都能在章节中找到。
错误用 ``chapters[1].blocks[3].rows[0]`` 这样的路径定位。
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Tuple

from .schema import (
    ALLOWED_ALIGNMENTS,
    ALLOWED_BLOCK_TYPES,
    ALLOWED_INLINE_MARKS,
    IR_VERSION,
    PARAGRAPH_ROLES,
)

EMBEDDABLE_IMAGE_TYPES = ("image/png", "image/jpeg")
REQUIRED_CHAPTER_KEYS = ("chapterId", "title", "anchor", "blocks")


class IRValidator:
    """
    文档IR校验器。

    validate_document / validate_chapter 返回 (是否通过, 错误列表)，
    不抛异常；调用方决定把错误当作告警还是中止。
    """

    def __init__(self, schema_version: str = IR_VERSION):
        self.schema_version = schema_version
        self._checks: Dict[str, Callable[[Dict[str, Any], str, List[str]], None]] = {
            "heading": self._check_heading,
            "paragraph": self._check_paragraph,
            "list": self._check_list,
            "table": self._check_table,
            "figure": self._check_figure,
            "toc": self._check_toc,
        }

    def validate_document(self, document: Dict[str, Any]) -> Tuple[bool, List[str]]:
        """校验整本文档：版本、题名页、目录与全部章节。"""
        if not isinstance(document, dict):
            return False, ["document必须是对象"]

        errors: List[str] = []
        if document.get("version") != self.schema_version:
            errors.append(f"version 应为 {self.schema_version}，实际为 {document.get('version')!r}")

        title_page = document.get("titlePage")
        if not isinstance(title_page, list) or not title_page:
            errors.append("titlePage 不能为空")
        else:
            for idx, block in enumerate(title_page):
                self._check_block(block, f"titlePage[{idx}]", errors)

        chapters = document.get("chapters")
        if not isinstance(chapters, list):
            errors.append("chapters 必须是数组")
            return False, errors

        anchors = set()
        for idx, chapter in enumerate(chapters):
            _, chapter_errors = self.validate_chapter(chapter)
            errors.extend(f"chapters[{idx}].{message}" for message in chapter_errors)
            if isinstance(chapter, dict):
                if chapter.get("anchor") in anchors:
                    errors.append(f"chapters[{idx}].anchor 重复: {chapter.get('anchor')}")
                anchors.add(chapter.get("anchor"))

        toc = document.get("toc")
        if toc is not None:
            self._check_block(toc, "toc", errors)
            for idx, entry in enumerate(toc.get("entries") or [] if isinstance(toc, dict) else []):
                anchor = entry.get("anchor") if isinstance(entry, dict) else None
                if anchor and anchor not in anchors:
                    errors.append(f"toc.entries[{idx}] 指向不存在的章节: {anchor}")

        return not errors, errors

    def validate_chapter(self, chapter: Dict[str, Any]) -> Tuple[bool, List[str]]:
        """校验单个章节：必填键齐全、至少一个block。"""
        if not isinstance(chapter, dict):
            return False, ["chapter必须是对象"]

        errors = [f"缺少 {key}" for key in REQUIRED_CHAPTER_KEYS if key not in chapter]
        blocks = chapter.get("blocks")
        if not isinstance(blocks, list) or not blocks:
            errors.append("blocks 不能为空")
            return False, errors
        for idx, block in enumerate(blocks):
            self._check_block(block, f"blocks[{idx}]", errors)
        return not errors, errors

    # ===== 按类型校验 =====

    def _check_block(self, block: Any, path: str, errors: List[str]):
        if not isinstance(block, dict):
            errors.append(f"{path} 不是对象")
            return
        block_type = block.get("type")
        if block_type not in ALLOWED_BLOCK_TYPES:
            errors.append(f"{path}.type 不被支持: {block_type}")
            return
        check = self._checks.get(block_type)
        if check is not None:
            check(block, path, errors)

    def _check_heading(self, block: Dict[str, Any], path: str, errors: List[str]):
        level = block.get("level")
        if not isinstance(level, int) or not 1 <= level <= 6:
            errors.append(f"{path}.level 应为1-6的整数")
        if not str(block.get("text") or "").strip():
            errors.append(f"{path}.text 为空")
        if not block.get("anchor"):
            errors.append(f"{path}.anchor 为空")

    def _check_paragraph(self, block: Dict[str, Any], path: str, errors: List[str]):
        if block.get("align") not in ALLOWED_ALIGNMENTS:
            errors.append(f"{path}.align 非法: {block.get('align')}")
        if block.get("role", "body") not in PARAGRAPH_ROLES:
            errors.append(f"{path}.role 非法: {block.get('role')}")
        inlines = block.get("inlines")
        if not isinstance(inlines, list) or not inlines:
            errors.append(f"{path}.inlines 不能为空")
            return
        for idx, run in enumerate(inlines):
            run_path = f"{path}.inlines[{idx}]"
            if not isinstance(run, dict) or not isinstance(run.get("text"), str):
                errors.append(f"{run_path} 缺少文本")
                continue
            for mark in run.get("marks") or []:
                if not isinstance(mark, dict) or mark.get("type") not in ALLOWED_INLINE_MARKS:
                    errors.append(f"{run_path} 含有不支持的mark: {mark}")

    def _check_list(self, block: Dict[str, Any], path: str, errors: List[str]):
        if block.get("listType") not in ("ordered", "bullet"):
            errors.append(f"{path}.listType 非法: {block.get('listType')}")
        items = block.get("items")
        if not isinstance(items, list) or not items:
            errors.append(f"{path}.items 不能为空")
            return
        for i, item in enumerate(items):
            if not isinstance(item, list) or not item:
                errors.append(f"{path}.items[{i}] 应为非空段落数组")
                continue
            for j, paragraph in enumerate(item):
                self._check_block(paragraph, f"{path}.items[{i}][{j}]", errors)

    def _check_table(self, block: Dict[str, Any], path: str, errors: List[str]):
        rows = block.get("rows")
        if not isinstance(rows, list) or not rows:
            errors.append(f"{path}.rows 不能为空")
            return

        column_counts = set()
        for r_idx, row in enumerate(rows):
            cells = row.get("cells") if isinstance(row, dict) else None
            if not isinstance(cells, list) or not cells:
                errors.append(f"{path}.rows[{r_idx}] 没有单元格")
                continue
            column_counts.add(len(cells))
            for c_idx, cell in enumerate(cells):
                cell_path = f"{path}.rows[{r_idx}].cells[{c_idx}]"
                paragraphs = cell.get("blocks") if isinstance(cell, dict) else None
                if not isinstance(paragraphs, list) or not paragraphs:
                    errors.append(f"{cell_path} 没有内容段落")
                    continue
                for b_idx, paragraph in enumerate(paragraphs):
                    self._check_block(paragraph, f"{cell_path}.blocks[{b_idx}]", errors)

        if len(column_counts) > 1:
            errors.append(f"{path}.rows 列数不一致: {sorted(column_counts)}")
        colgroup = block.get("colgroup")
        if colgroup and len(column_counts) == 1 and len(colgroup) != next(iter(column_counts)):
            errors.append(f"{path}.colgroup 数量与列数不符")

    def _check_figure(self, block: Dict[str, Any], path: str, errors: List[str]):
        image = block.get("image")
        if not isinstance(image, dict):
            errors.append(f"{path}.image 缺失")
            return
        data = image.get("data")
        if not isinstance(data, (bytes, bytearray)) or not data:
            errors.append(f"{path}.image.data 应为非空字节串")
        for key in ("width", "height"):
            value = image.get(key)
            if not isinstance(value, int) or value <= 0:
                errors.append(f"{path}.image.{key} 应为正整数")
        if image.get("mimeType", "image/png") not in EMBEDDABLE_IMAGE_TYPES:
            errors.append(f"{path}.image.mimeType 无法嵌入: {image.get('mimeType')}")

    def _check_toc(self, block: Dict[str, Any], path: str, errors: List[str]):
        entries = block.get("entries")
        if not isinstance(entries, list):
            errors.append(f"{path}.entries 必须是数组")
            return
        for idx, entry in enumerate(entries):
            if not isinstance(entry, dict) or not entry.get("text"):
                errors.append(f"{path}.entries[{idx}] 缺少文本")


__all__ = ["IRValidator", "EMBEDDABLE_IMAGE_TYPES"]
