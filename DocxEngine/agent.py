"""
Docx Export Agent主类。

该模块串联题名页字段校验、章节装订（COLLECT → RECONCILE）、
DOCX序列化与文件落盘，是Docx Engine的总调度中心：
1. 在任何处理开始前校验题名页必填字段；
2. 为每次导出新建 ExportContext，驱动 DocumentComposer 生成IR；
3. 在线程池中序列化为 .docx，失败时按 memory / io / unknown 分类抛出；
4. 以标题命名输出文件，并把非阻断告警随结果一并返回。
"""

import asyncio
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from loguru import logger

from .core.context import ExportContext
from .core.stitcher import DocumentComposer
from .nodes.table_figure_node import Rasterizer
from .renderers import ChartToPNGConverter, DocxRenderer, MarkdownRenderer
from .state import ExportRequest, ExportResult, TitleFields
from .utils.config import Settings, settings
from .utils.errors import ExportSerializationError, TitleFieldsError

# 已挂载的日志文件（按绝对路径），避免同一进程内重复添加sink
_LOG_SINKS: Set[str] = set()

_UNSAFE_FILENAME_RE = re.compile(r"[^\w\s-]", re.UNICODE)


def build_filename(title: str, suffix: str = ".docx") -> str:
    """
    由标题生成安全的文件名。

    参数:
        title: 题名页标题。
        suffix: 扩展名。

    返回:
        str: 去掉路径分隔符等特殊字符、空白替换为下划线后的文件名。
    """
    safe = _UNSAFE_FILENAME_RE.sub("", title or "").strip()
    safe = re.sub(r"\s+", "_", safe)[:80].strip("_")
    return f"{safe or 'document'}{suffix}"


class ExportAgent:
    """
    Docx Export Agent主类。

    负责集成：
    - 图表栅格化器（默认使用内置的 ChartToPNGConverter，可注入）；
    - DocumentComposer 装订与 DocxRenderer 序列化；
    - 日志、字段校验、异常分类与落盘。
    """

    def __init__(self, config: Optional[Settings] = None, rasterizer: Optional[Rasterizer] = None):
        """
        初始化Export Agent。

        Args:
            config: 配置对象，如果不提供则使用全局 settings
            rasterizer: 异步图表栅格化函数；不提供时使用内置的matplotlib实现
        """
        self.config = config or settings
        self._setup_logging()

        self.chart_converter = ChartToPNGConverter(
            font_path=self.config.CHART_FONT_PATH or None,
            width=self.config.CHART_WIDTH_PX,
            height=self.config.CHART_HEIGHT_PX,
            dpi=self.config.CHART_DPI,
        )
        self.rasterizer: Rasterizer = rasterizer or self.chart_converter.rasterize
        self.document_composer = DocumentComposer()

        logger.info("Docx Export Agent已初始化")

    def _setup_logging(self):
        """
        设置日志。

        为 LOG_FILE 挂一个按大小轮转的 loguru 文件sink；同一个文件
        在一个进程里只挂一次。
        """
        log_path = str(Path(self.config.LOG_FILE).resolve())
        if log_path in _LOG_SINKS:
            return
        log_dir = os.path.dirname(log_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handler_id = logger.add(
            log_path,
            level="DEBUG",
            rotation=self.config.LOG_ROTATION,
            encoding="utf-8",
            enqueue=False,
            mode="a",
        )
        _LOG_SINKS.add(log_path)
        logger.debug(f"已添加日志handler (ID: {handler_id}): {log_path}")

    # ===== 对外接口 =====

    async def export(
        self,
        request: ExportRequest,
        rasterize: Optional[Rasterizer] = None,
        save: bool = True,
    ) -> ExportResult:
        """
        执行一次完整导出。

        参数:
            request: 导出请求。
            rasterize: 本次导出使用的栅格化函数，覆盖构造时注入的实现。
            save: 是否把结果写入 OUTPUT_DIR。

        返回:
            ExportResult: 文件名、二进制内容、落盘路径与非阻断告警。

        异常:
            TitleFieldsError: 必填题名页字段为空，未做任何处理。
            ExportSerializationError: 序列化或写盘失败，整次导出中止。
        """
        self.check_title_fields(request.title_fields)

        context = ExportContext(config=self.config)
        logger.info(f"开始导出: {len(request.sections)} 个章节, 风格 {request.style}")
        document = await self.document_composer.compose(
            request, rasterize or self.rasterizer, context
        )

        data, render_warnings = await self._serialize(document)
        context.warnings.extend(render_warnings)

        filename = build_filename(request.title_fields.title)
        path = self._save(filename, data) if save else None
        if context.warnings:
            logger.info(f"导出完成，共 {len(context.warnings)} 条告警")
        return ExportResult(
            filename=filename,
            data=data,
            path=path,
            warnings=list(context.warnings),
            document=document,
        )

    def export_sync(
        self,
        request: ExportRequest,
        rasterize: Optional[Rasterizer] = None,
        save: bool = True,
    ) -> ExportResult:
        """同步包装，供命令行与脚本使用。"""
        return asyncio.run(self.export(request, rasterize=rasterize, save=save))

    def check_title_fields(self, fields: TitleFields):
        """必填字段为空时抛出 TitleFieldsError。"""
        missing = fields.missing(self.config.REQUIRED_TITLE_FIELDS)
        if missing:
            logger.warning(f"题名页必填字段缺失: {', '.join(missing)}")
            raise TitleFieldsError({name: "必填字段为空" for name in missing})

    @staticmethod
    def render_preview(document: Dict[str, Any]) -> str:
        """把已装订的IR渲染为Markdown预览。"""
        return MarkdownRenderer().render(document)

    # ===== SERIALIZE 与落盘 =====

    async def _serialize(self, document: Dict[str, Any]):
        renderer = DocxRenderer()
        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(None, renderer.render, document)
        except MemoryError as exc:
            logger.error("序列化DOCX时内存不足")
            raise ExportSerializationError("序列化DOCX时内存不足", "memory", exc) from exc
        except OSError as exc:
            logger.error(f"序列化DOCX时发生IO错误: {exc}")
            raise ExportSerializationError(f"序列化DOCX失败: {exc}", "io", exc) from exc
        except Exception as exc:
            logger.exception(f"序列化DOCX失败: {exc}")
            raise ExportSerializationError(f"序列化DOCX失败: {exc}", "unknown", exc) from exc
        warnings: List[str] = list(renderer.warnings)
        return data, warnings

    def _save(self, filename: str, data: bytes) -> str:
        output_dir = Path(self.config.OUTPUT_DIR)
        target = output_dir / filename
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            logger.error(f"写入文件失败: {target}, 错误: {exc}")
            raise ExportSerializationError(f"写入文件失败: {target}", "io", exc) from exc
        logger.info(f"DOCX已保存: {target}")
        return str(target.resolve())


def create_agent(config: Optional[Settings] = None, rasterizer: Optional[Rasterizer] = None) -> ExportAgent:
    """
    创建Export Agent实例的便捷函数。

    Args:
        config: 配置对象；不提供时从环境变量重新加载
        rasterizer: 可选的异步图表栅格化函数

    Returns:
        ExportAgent实例
    """
    return ExportAgent(config or Settings(), rasterizer=rasterizer)


__all__ = ["ExportAgent", "build_filename", "create_agent"]
