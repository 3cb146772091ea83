"""
引用序号表与参考文献识别启发式的测试用例。

运行测试：
    python -m pytest DocxEngine/core/test_bibliography.py -v
"""

from DocxEngine.core.bibliography import (
    CitationRegistry,
    SourceLineFilter,
    harvest_entries,
    is_bibliography_title,
    split_source_candidates,
)
from DocxEngine.utils.config import Settings


class TestCitationRegistry:
    """测试CitationRegistry类"""

    def setup_method(self):
        self.registry = CitationRegistry()

    def test_numeric_marker_is_idempotent(self):
        first = self.registry.ensure_ordinal("[3]")
        second = self.registry.ensure_ordinal("3")
        assert first == second == 3

    def test_synthetic_marker_never_reuses_reserved_number(self):
        self.registry.ensure_ordinal("2")
        synthetic = self.registry.ensure_ordinal("Smith J. Research Methods. 2020.")
        assert synthetic == 3
        assert self.registry.ensure_ordinal("smith j. research methods. 2020") == synthetic

    def test_finalize_is_dense(self):
        self.registry.ensure_ordinal("4")
        self.registry.record_entry(1, "Smith J. Research Methods. 2020.")
        self.registry.record_entry(4, "Doe A. Paper. 2019.")
        entries = self.registry.finalize()
        assert len(entries) >= self.registry.max_ordinal
        assert [e.ordinal for e in entries] == [1, 2, 3, 4]
        assert all(e.text for e in entries)
        assert entries[1].placeholder
        assert entries[1].text == "Source 2. Missing"

    def test_collision_goes_to_overflow(self):
        self.registry.record_entry(1, "Smith J. Research Methods. 2020.")
        self.registry.record_entry(1, "Doe A. Paper. 2019.")
        entries = self.registry.finalize()
        assert [e.text for e in entries] == [
            "Smith J. Research Methods. 2020.",
            "Doe A. Paper. 2019.",
        ]
        assert entries[1].ordinal == 2

    def test_duplicates_suppressed(self):
        assert self.registry.record_entry(1, "Smith J. Research Methods. 2020.")
        assert not self.registry.record_entry(2, "smith j.  research methods. 2020")
        assert len(self.registry.finalize()) == 1

    def test_duplicates_kept_when_dedupe_disabled(self):
        registry = CitationRegistry(dedupe=False)
        registry.record_entry(1, "Same source. 2020.")
        registry.record_entry(2, "Same source. 2020.")
        assert len(registry.finalize()) == 2

    def test_reserve_and_rewrite_markers(self):
        found = self.registry.reserve_markers("Как показано в [2] и [5, 7].")
        assert found == 3
        assert self.registry.max_ordinal == 7
        assert self.registry.rewrite_markers("см. [5,7]") == "см. [5, 7]"

    def test_empty_registry(self):
        assert self.registry.is_empty
        assert self.registry.finalize() == []


class TestSourceLineFilter:
    """测试来源行识别启发式"""

    def setup_method(self):
        config = Settings()
        self.filter = SourceLineFilter(config.FILLER_PREFIXES, config.BIBLIOGRAPHY_MAX_ENTRY_LENGTH)

    def test_filler_sentence_rejected(self):
        assert not self.filter.accepts("Рассмотрим подробно данный вопрос с учётом 2020 года.")

    def test_source_line_accepted(self):
        assert self.filter.accepts("Smith J. Research Methods. 2020.")

    def test_url_accepted_without_year(self):
        assert self.filter.accepts("Официальный сайт: https://example.org/data")

    def test_year_without_terminal_punctuation_rejected(self):
        assert not self.filter.accepts("Smith J. Research Methods 2020")

    def test_overlong_line_rejected(self):
        assert not self.filter.accepts("Source 2020. " * 50)


class TestHarvest:
    """测试从参考文献章节收集条目"""

    def setup_method(self):
        config = Settings()
        self.registry = CitationRegistry()
        self.filter = SourceLineFilter(config.FILLER_PREFIXES)

    def test_bracket_run_split(self):
        candidates = split_source_candidates("[1] Smith 2020. [2] Doe 2019.")
        assert candidates == [("1", "Smith 2020."), ("2", "Doe 2019.")]

    def test_numbered_and_unnumbered_lines(self):
        lines = [
            "Ссылки:",
            "1. Smith J. Research Methods. 2020.",
            "Doe A. Paper. 2019.",
            "Рассмотрим подробно данный вопрос с учётом 2020 года.",
        ]
        accepted, rejected = harvest_entries(lines, self.registry, self.filter)
        assert accepted == 2
        assert len(rejected) == 1
        texts = [entry.text for entry in self.registry.finalize()]
        assert texts == ["Smith J. Research Methods. 2020.", "Doe A. Paper. 2019."]

    def test_numbered_duplicate_fills_its_own_slot(self):
        lines = ["[1] Smith J. Research Methods. 2020.", "[3] Smith J. Research Methods. 2020."]
        harvest_entries(lines, self.registry, self.filter)
        entries = self.registry.finalize()
        assert [e.ordinal for e in entries] == [1, 2, 3]
        assert entries[2].text == "Smith J. Research Methods. 2020."
        assert not entries[2].placeholder
        assert entries[1].placeholder

    def test_unnumbered_duplicate_takes_no_number(self):
        lines = ["1. Smith J. Research Methods. 2020.", "Smith J. Research Methods. 2020."]
        accepted, _ = harvest_entries(lines, self.registry, self.filter)
        assert accepted == 1
        assert len(self.registry.finalize()) == 1


def test_bibliography_title_detection():
    patterns = Settings().BIBLIOGRAPHY_TITLE_PATTERNS
    assert is_bibliography_title("Список литературы", patterns)
    assert is_bibliography_title("References", patterns)
    assert not is_bibliography_title("Введение", patterns)
