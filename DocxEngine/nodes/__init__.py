"""
Docx Engine节点处理模块。

封装文本块分类与表格/图表构建两类流水线节点。
"""

from .base_node import BaseNode
from .table_figure_node import TableFigureNode
from .block_classifier_node import BlockClassifierNode, ClassifierRule, split_blocks

__all__ = [
    "BaseNode",
    "TableFigureNode",
    "BlockClassifierNode",
    "ClassifierRule",
    "split_blocks",
]
