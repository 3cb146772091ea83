"""
图表验证器和修复器的测试用例。

运行测试：
    python -m pytest DocxEngine/utils/test_chart_validator.py -v
"""

from DocxEngine.state import ChartDataset, ChartSpec
from DocxEngine.utils.chart_validator import (
    create_chart_repairer,
    create_chart_validator,
)


def _chart(chart_type="bar", labels=None, datasets=None):
    return ChartSpec(
        type=chart_type,
        title="Продажи",
        labels=labels if labels is not None else ["Q1", "Q2", "Q3"],
        datasets=datasets if datasets is not None else [ChartDataset("2024", [1.0, 2.0, 3.0])],
    )


class TestChartValidator:
    """测试ChartValidator类"""

    def setup_method(self):
        """每个测试前初始化"""
        self.validator = create_chart_validator()

    def test_valid_bar_chart(self):
        result = self.validator.validate(_chart("bar"))
        assert result.is_valid
        assert result.errors == []

    def test_valid_line_and_pie(self):
        assert self.validator.validate(_chart("line")).is_valid
        assert self.validator.validate(_chart("pie")).is_valid

    def test_unsupported_type(self):
        result = self.validator.validate(_chart("radar"))
        assert not result.is_valid
        assert any("radar" in err for err in result.errors)

    def test_length_mismatch(self):
        """数据集长度必须等于labels长度"""
        result = self.validator.validate(
            _chart(datasets=[ChartDataset("a", [1.0, 2.0])])
        )
        assert result.has_critical_errors()
        assert "不匹配" in result.errors[0]

    def test_missing_datasets(self):
        result = self.validator.validate(_chart(datasets=[]))
        assert not result.is_valid

    def test_negative_pie_values(self):
        result = self.validator.validate(
            _chart("pie", datasets=[ChartDataset("a", [1.0, -2.0, 3.0])])
        )
        assert not result.is_valid


class TestChartRepairer:
    """测试ChartRepairer类"""

    def setup_method(self):
        self.repairer = create_chart_repairer()

    def test_valid_chart_untouched(self):
        spec = _chart()
        result = self.repairer.repair(spec)
        assert result.success
        assert result.method == 'none'
        assert result.repaired_spec is spec

    def test_pad_and_truncate(self):
        spec = _chart(datasets=[
            ChartDataset("short", [1.0]),
            ChartDataset("long", [1.0, 2.0, 3.0, 4.0]),
        ])
        result = self.repairer.repair(spec)
        assert result.success
        assert result.method == 'local'
        assert result.repaired_spec.datasets[0].data == [1.0, 0.0, 0.0]
        assert result.repaired_spec.datasets[1].data == [1.0, 2.0, 3.0]
        # 原对象不变
        assert spec.datasets[0].data == [1.0]

    def test_unknown_type_falls_back_to_bar(self):
        result = self.repairer.repair(_chart("doughnut"))
        assert result.success
        assert result.repaired_spec.type == "bar"

    def test_generate_labels(self):
        result = self.repairer.repair(
            _chart(labels=[], datasets=[ChartDataset("a", [5.0, 6.0])])
        )
        assert result.success
        assert result.repaired_spec.labels == ["1", "2"]
