"""
文本块分类规则链的测试用例。

运行测试：
    python -m pytest DocxEngine/nodes/test_block_classifier.py -v
"""

from DocxEngine.core.context import ExportContext
from DocxEngine.ir import inline_text
from DocxEngine.nodes.block_classifier_node import (
    BlockClassifierNode,
    is_bullet_block,
    is_citation_run_block,
    is_numbered_block,
    is_pipe_table_block,
    split_blocks,
    strip_markdown,
)


class TestRulePredicates:
    """每条规则的谓词可以单独测试"""

    def test_bullet(self):
        assert is_bullet_block(["- a", "* b", "• c"])
        assert not is_bullet_block(["- a", "plain"])

    def test_numbered(self):
        assert is_numbered_block(["1. a", "2) b"])
        assert not is_numbered_block(["1. a", "b"])

    def test_pipe_table(self):
        assert is_pipe_table_block(["| A | B |", "|---|---|", "| 1 | 2 |"])
        assert not is_pipe_table_block(["| A | B |"])

    def test_citation_run(self):
        assert is_citation_run_block(["[1] Smith 2020.", "[2] Doe 2019."])
        assert not is_citation_run_block(["Текст [1]."])

    def test_strip_markdown(self):
        assert strip_markdown("## **Важно**: *итог*") == "Важно: итог"
        assert strip_markdown("> цитата") == "цитата"


class TestBlockClassifierNode:
    """测试BlockClassifierNode类"""

    def setup_method(self):
        self.node = BlockClassifierNode()
        self.context = ExportContext()

    def test_split_blocks(self):
        assert split_blocks("a\n\nb\r\n\r\nc\n \n") == ["a", "b", "c"]

    def test_bullet_list(self):
        nodes = self.node.classify("- Item one\n- Item two", self.context)
        assert len(nodes) == 1
        assert nodes[0]["type"] == "list"
        assert nodes[0]["listType"] == "bullet"
        assert [inline_text(item[0]) for item in nodes[0]["items"]] == ["Item one", "Item two"]

    def test_numbered_list_wins_over_bibliography(self):
        nodes = self.node.classify("1. Smith (2020). Study.\n2. Doe (2019). Paper.", self.context)
        assert nodes[0]["type"] == "list"
        assert nodes[0]["listType"] == "ordered"
        assert self.context.citations.is_empty

    def test_pipe_table_with_pending_caption(self):
        block = "Table 3. Продажи по годам\n| Год | Сумма |\n|---|---|\n| 2023 | 10 |"
        nodes = self.node.classify(block, self.context)
        assert [n["type"] for n in nodes] == ["paragraph", "table"]
        assert inline_text(nodes[0]) == "Table 1 – Продажи по годам"
        assert nodes[0]["align"] == "right"
        assert len(nodes[1]["rows"]) == 2
        assert self.context.pending_caption is None

    def test_caption_carries_to_next_block(self):
        self.node.classify("Таблица 1. Итоги", self.context)
        assert self.context.pending_caption == "Итоги"
        nodes = self.node.classify("| A | B |\n| 1 | 2 |", self.context)
        assert inline_text(nodes[0]) == "Table 1 – Итоги"

    def test_paragraph_clears_pending_caption(self):
        self.context.pending_caption = "Итоги"
        self.node.classify("Обычный абзац текста.", self.context)
        assert self.context.pending_caption is None

    def test_table_surrounding_text(self):
        block = "Данные ниже:\n| A | B |\n| 1 | 2 |\nИсточник: расчёты автора"
        nodes = self.node.classify(block, self.context)
        assert [n["type"] for n in nodes] == ["paragraph", "paragraph", "table", "paragraph"]
        assert inline_text(nodes[0]) == "Данные ниже:"
        assert inline_text(nodes[1]) == "Table 1 – Table description"

    def test_citation_run_registers_entries(self):
        nodes = self.node.classify("[1] Smith J. Research Methods. 2020.\n[2] Doe A. Paper. 2019.", self.context)
        assert nodes == []
        entries = self.context.citations.finalize()
        assert [e.ordinal for e in entries] == [1, 2]

    def test_reference_header_dropped(self):
        assert self.node.classify("Ссылки:", self.context) == []

    def test_paragraph_rewrites_citations(self):
        nodes = self.node.classify("Рост подтверждают данные [3,4].", self.context)
        assert nodes[0]["type"] == "paragraph"
        assert nodes[0]["firstLineIndent"]
        assert inline_text(nodes[0]) == "Рост подтверждают данные [3, 4]."

    def test_repeated_caption_noise_collapsed(self):
        nodes = self.node.classify("Смотри Table 2. Table 2. ниже.", self.context)
        assert inline_text(nodes[0]) == "Смотри Table 2. ниже."

    def test_multiline_paragraph_joined(self):
        nodes = self.node.classify("Первая строка\nвторая строка", self.context)
        assert inline_text(nodes[0]) == "Первая строка вторая строка"
