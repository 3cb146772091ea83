"""
表格验证和修复工具。

内容生成器交付的 TableSpec 不保证结构正确，这里提供：
1. 验证表头是否存在、每行列数是否与表头一致
2. 统计空单元格，给出警告
3. 本地规则修复：补齐短行、截断长行、为缺失表头生成列名
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from loguru import logger

from ..state import TableSpec


@dataclass
class TableValidationResult:
    """表格验证结果"""
    is_valid: bool
    errors: List[str]
    warnings: List[str]
    empty_cells_count: int = 0
    total_cells_count: int = 0

    def has_critical_errors(self) -> bool:
        """是否有严重错误（会导致渲染失败）"""
        return not self.is_valid and len(self.errors) > 0


@dataclass
class TableRepairResult:
    """表格修复结果"""
    success: bool
    repaired_spec: Optional[TableSpec]
    changes: List[str]

    def has_changes(self) -> bool:
        """是否有修改"""
        return len(self.changes) > 0


class TableValidator:
    """
    表格验证器 - 验证 TableSpec 是否满足“每行列数等于表头列数”。

    验证规则：
    1. 表头非空
    2. 每行单元格数量与表头一致
    3. 空单元格计数（仅警告）
    """

    def validate(self, spec: TableSpec) -> TableValidationResult:
        """
        验证表格规格。

        Args:
            spec: 待验证的表格规格

        Returns:
            TableValidationResult: 验证结果
        """
        errors: List[str] = []
        warnings: List[str] = []
        empty_cells_count = 0
        total_cells_count = 0

        if not isinstance(spec, TableSpec):
            return TableValidationResult(False, ["spec 必须是 TableSpec"], warnings)

        width = len(spec.headers)
        if width == 0:
            errors.append("headers 为空")

        if not spec.rows:
            warnings.append("rows 为空，表格只有表头")

        for row_idx, row in enumerate(spec.rows):
            if width and len(row) != width:
                errors.append(f"rows[{row_idx}] 列数 {len(row)} 与表头列数 {width} 不一致")
            for cell in row:
                total_cells_count += 1
                if not str(cell).strip():
                    empty_cells_count += 1

        if total_cells_count and empty_cells_count == total_cells_count:
            warnings.append("所有数据单元格均为空")

        return TableValidationResult(
            len(errors) == 0, errors, warnings, empty_cells_count, total_cells_count
        )


class TableRepairer:
    """
    表格修复器 - 用本地规则修复 TableSpec。

    修复策略：
    1. 缺失表头时按最长行生成“Column N”列名
    2. 短行补空串，长行截断
    """

    def __init__(self, validator: Optional[TableValidator] = None):
        self.validator = validator or TableValidator()

    def repair(
        self,
        spec: TableSpec,
        validation_result: Optional[TableValidationResult] = None
    ) -> TableRepairResult:
        """
        尝试修复表格规格，原对象不会被修改。

        Args:
            spec: 表格规格
            validation_result: 验证结果（可选，如果没有会先进行验证）

        Returns:
            TableRepairResult: 修复结果
        """
        if validation_result is None:
            validation_result = self.validator.validate(spec)

        if validation_result.is_valid:
            return TableRepairResult(True, spec, [])

        changes: List[str] = []
        headers = list(spec.headers)
        if not headers:
            width = max((len(row) for row in spec.rows), default=1) or 1
            headers = [f"Column {i + 1}" for i in range(width)]
            changes.append(f"生成 {width} 个默认列名")

        width = len(headers)
        rows: List[List[str]] = []
        for row_idx, row in enumerate(spec.rows):
            if len(row) < width:
                rows.append(list(row) + [""] * (width - len(row)))
                changes.append(f"rows[{row_idx}] 补齐 {width - len(row)} 个空单元格")
            elif len(row) > width:
                rows.append(list(row[:width]))
                changes.append(f"rows[{row_idx}] 截断 {len(row) - width} 个多余单元格")
            else:
                rows.append(list(row))

        repaired = TableSpec(headers=headers, rows=rows, title=spec.title, caption=spec.caption)
        repaired_validation = self.validator.validate(repaired)
        if not repaired_validation.is_valid:
            logger.warning(f"表格修复后仍有问题: {repaired_validation.errors}")

        return TableRepairResult(repaired_validation.is_valid, repaired, changes)


def create_table_validator() -> TableValidator:
    """创建表格验证器实例"""
    return TableValidator()


def create_table_repairer(
    validator: Optional[TableValidator] = None
) -> TableRepairer:
    """创建表格修复器实例"""
    return TableRepairer(validator)


__all__ = [
    'TableValidator',
    'TableRepairer',
    'TableValidationResult',
    'TableRepairResult',
    'create_table_validator',
    'create_table_repairer',
]
