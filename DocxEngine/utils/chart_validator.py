"""
图表验证和修复工具。

提供对 ChartSpec 的验证和本地修复能力：
1. 验证图表类型是否可渲染（line / bar / pie）
2. 验证 labels 与 datasets 结构
3. 数据一致性：每个数据集长度必须等于 labels 长度
4. 遵循"宁愿不改，也不要改错"的原则，只做补齐/截断这类确定性修复
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from loguru import logger

from ..state import CHART_TYPES, ChartDataset, ChartSpec


@dataclass
class ValidationResult:
    """验证结果"""
    is_valid: bool
    errors: List[str]
    warnings: List[str]

    def has_critical_errors(self) -> bool:
        """是否有严重错误（会导致渲染失败）"""
        return not self.is_valid and len(self.errors) > 0


@dataclass
class RepairResult:
    """修复结果"""
    success: bool
    repaired_spec: Optional[ChartSpec]
    method: str  # 'none', 'local'
    changes: List[str]

    def has_changes(self) -> bool:
        """是否有修改"""
        return len(self.changes) > 0


class ChartValidator:
    """
    图表验证器 - 验证 ChartSpec 是否能交给栅格化器。

    验证规则：
    1. 图表类型必须是 line / bar / pie
    2. labels 非空
    3. 至少一个数据集，且每个数据集长度等于 labels 长度
    """

    SUPPORTED_CHART_TYPES = set(CHART_TYPES)

    def validate(self, spec: ChartSpec) -> ValidationResult:
        """
        验证图表规格。

        Args:
            spec: 图表规格

        Returns:
            ValidationResult: 验证结果
        """
        errors: List[str] = []
        warnings: List[str] = []

        if not isinstance(spec, ChartSpec):
            return ValidationResult(False, ["spec 必须是 ChartSpec"], warnings)

        if spec.type not in self.SUPPORTED_CHART_TYPES:
            errors.append(f"图表类型 '{spec.type}' 不被支持")

        if not spec.labels:
            errors.append(f"{spec.type}类型图表必须包含labels")

        if not spec.datasets:
            errors.append("datasets数组为空")
            return ValidationResult(False, errors, warnings)

        for idx, dataset in enumerate(spec.datasets):
            if not dataset.data:
                warnings.append(f"datasets[{idx}].data数组为空")
            if spec.labels and len(dataset.data) != len(spec.labels):
                errors.append(
                    f"datasets[{idx}].data长度({len(dataset.data)})与labels长度({len(spec.labels)})不匹配"
                )

        if spec.type == "pie":
            if len(spec.datasets) > 1:
                warnings.append("饼图只渲染第一个数据集")
            if any(value < 0 for value in spec.datasets[0].data):
                errors.append("饼图数据不能为负数")

        return ValidationResult(len(errors) == 0, errors, warnings)

    def can_render(self, spec: ChartSpec) -> bool:
        """快速判断图表是否可以直接渲染"""
        return self.validate(spec).is_valid


class ChartRepairer:
    """
    图表修复器 - 基于规则的本地修复。

    修复策略：
    1. 未知类型降级为 bar
    2. 缺失 labels 时按最长数据集生成序号标签
    3. 数据集补 0 或截断到 labels 长度
    4. 饼图负值取 0
    """

    def __init__(self, validator: Optional[ChartValidator] = None):
        self.validator = validator or ChartValidator()

    def repair(
        self,
        spec: ChartSpec,
        validation_result: Optional[ValidationResult] = None
    ) -> RepairResult:
        """
        修复图表规格，原对象不会被修改。

        Args:
            spec: 图表规格
            validation_result: 验证结果（可选）

        Returns:
            RepairResult: 修复结果
        """
        if validation_result is None:
            validation_result = self.validator.validate(spec)

        if validation_result.is_valid:
            return RepairResult(True, spec, 'none', [])

        changes: List[str] = []
        chart_type = spec.type
        if chart_type not in ChartValidator.SUPPORTED_CHART_TYPES:
            changes.append(f"图表类型 '{chart_type}' 降级为 bar")
            chart_type = "bar"

        labels = list(spec.labels)
        if not labels:
            width = max((len(ds.data) for ds in spec.datasets), default=0)
            labels = [str(i + 1) for i in range(width)]
            if width:
                changes.append(f"生成 {width} 个序号标签")

        datasets: List[ChartDataset] = []
        for idx, dataset in enumerate(spec.datasets):
            data = list(dataset.data)
            if len(data) < len(labels):
                changes.append(f"datasets[{idx}] 补齐 {len(labels) - len(data)} 个0值")
                data.extend([0.0] * (len(labels) - len(data)))
            elif len(data) > len(labels):
                changes.append(f"datasets[{idx}] 截断 {len(data) - len(labels)} 个多余值")
                data = data[:len(labels)]
            if chart_type == "pie" and any(v < 0 for v in data):
                changes.append(f"datasets[{idx}] 负值已置0")
                data = [max(0.0, v) for v in data]
            datasets.append(ChartDataset(label=dataset.label, data=data))

        repaired = ChartSpec(
            type=chart_type,
            title=spec.title,
            labels=labels,
            datasets=datasets,
            caption=spec.caption,
        )
        repaired_validation = self.validator.validate(repaired)
        if not repaired_validation.is_valid:
            logger.warning(f"图表修复后仍有问题: {repaired_validation.errors}")
        return RepairResult(repaired_validation.is_valid, repaired, 'local', changes)


def create_chart_validator() -> ChartValidator:
    """创建图表验证器实例"""
    return ChartValidator()


def create_chart_repairer(validator: Optional[ChartValidator] = None) -> ChartRepairer:
    """创建图表修复器实例"""
    return ChartRepairer(validator)


__all__ = [
    'ChartValidator',
    'ChartRepairer',
    'ValidationResult',
    'RepairResult',
    'create_chart_validator',
    'create_chart_repairer',
]
