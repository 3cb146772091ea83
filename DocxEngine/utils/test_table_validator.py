"""
表格验证器和修复器的测试用例。

运行测试：
    python -m pytest DocxEngine/utils/test_table_validator.py -v
"""

from DocxEngine.state import TableSpec
from DocxEngine.utils.table_validator import (
    create_table_repairer,
    create_table_validator,
)


class TestTableValidator:
    """测试TableValidator类"""

    def setup_method(self):
        self.validator = create_table_validator()

    def test_valid_table(self):
        spec = TableSpec(headers=["A", "B"], rows=[["1", "2"], ["3", "4"]])
        result = self.validator.validate(spec)
        assert result.is_valid
        assert result.total_cells_count == 4
        assert result.empty_cells_count == 0

    def test_ragged_rows(self):
        spec = TableSpec(headers=["A", "B"], rows=[["1"], ["3", "4", "5"]])
        result = self.validator.validate(spec)
        assert not result.is_valid
        assert len(result.errors) == 2

    def test_missing_headers(self):
        result = self.validator.validate(TableSpec(headers=[], rows=[["1"]]))
        assert result.has_critical_errors()

    def test_empty_cells_warning(self):
        spec = TableSpec(headers=["A"], rows=[[""], [" "]])
        result = self.validator.validate(spec)
        assert result.is_valid
        assert result.empty_cells_count == 2
        assert result.warnings


class TestTableRepairer:
    """测试TableRepairer类"""

    def setup_method(self):
        self.repairer = create_table_repairer()

    def test_pad_and_truncate_rows(self):
        spec = TableSpec(headers=["A", "B"], rows=[["1"], ["3", "4", "5"]], title="T")
        result = self.repairer.repair(spec)
        assert result.success
        assert result.has_changes()
        assert result.repaired_spec.rows == [["1", ""], ["3", "4"]]
        assert result.repaired_spec.title == "T"

    def test_generate_headers(self):
        spec = TableSpec(headers=[], rows=[["1", "2", "3"]])
        result = self.repairer.repair(spec)
        assert result.success
        assert result.repaired_spec.headers == ["Column 1", "Column 2", "Column 3"]

    def test_valid_table_untouched(self):
        spec = TableSpec(headers=["A"], rows=[["1"]])
        result = self.repairer.repair(spec)
        assert result.repaired_spec is spec
        assert not result.has_changes()
