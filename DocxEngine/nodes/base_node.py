"""
Docx Engine节点基类。

文本分类、表格/图表构建等节点都继承于此，统一日志前缀与
导出上下文的注入方式。
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from loguru import logger

from ..core.context import ExportContext


class BaseNode(ABC):
    """
    节点基类。

    统一实现日志工具与告警上报，节点只专注各自的转换规则。
    """

    def __init__(self, node_name: str = ""):
        """
        初始化节点

        Args:
            node_name: 节点名称，默认取类名，作为日志前缀
        """
        self.node_name = node_name or self.__class__.__name__

    @abstractmethod
    def run(self, input_data: Any, context: ExportContext, **kwargs) -> Any:
        """
        执行节点处理逻辑

        Args:
            input_data: 输入数据
            context: 本次导出的上下文
            **kwargs: 额外参数

        Returns:
            处理结果（IR节点列表）
        """
        pass

    def log_info(self, message: str):
        """记录信息日志，并自动带上节点名作为前缀。"""
        logger.info(f"[{self.node_name}] {message}")

    def log_debug(self, message: str):
        logger.debug(f"[{self.node_name}] {message}")

    def log_warning(self, message: str, context: Optional[ExportContext] = None):
        """记录非阻断告警；提供上下文时同时写入 context.warnings。"""
        formatted_message = f"[{self.node_name}] {message}"
        if context is not None:
            context.warn(formatted_message)
        else:
            logger.warning(formatted_message)
