"""
图表到PNG转换器 - 将 ChartSpec 栅格化为位图，供DOCX嵌入。

支持的图表类型:
- line: 折线图
- bar: 柱状图
- pie: 饼图

输出尺寸固定为请求的像素宽高（默认 800×500），DOCX渲染器只关心
字节流与这两个尺寸。
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import io
import struct
import threading
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import matplotlib
matplotlib.use('Agg')  # 使用非GUI后端
import matplotlib.font_manager as fm
import matplotlib.pyplot as plt
import numpy as np
from docx.image.exceptions import (
    InvalidImageStreamError,
    UnexpectedEndOfFileError,
    UnrecognizedImageError,
)
from docx.image.image import Image as DocxImage
from loguru import logger

from ..state import ChartSpec
from ..utils.errors import ChartRenderError

# pyplot 的全局状态不是线程安全的，executor 中的并发渲染需串行
_PYPLOT_LOCK = threading.Lock()

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
EMBEDDABLE_MIME_TYPES = ("image/png", "image/jpeg")


@dataclass
class RasterImage:
    """栅格化结果：PNG字节与像素尺寸。"""

    data: bytes
    width: int
    height: int
    mime_type: str = "image/png"


def coerce_raster(result: Any, width: int, height: int) -> RasterImage:
    """
    把栅格化器的返回值统一为 RasterImage。

    接受 RasterImage、原始字节、base64 字符串或 ``data:image/png;base64,`` URL；
    字符串形式时尺寸取调用方请求的宽高。

    参数:
        result: 栅格化器返回值。
        width: 请求的宽度（像素）。
        height: 请求的高度（像素）。

    返回:
        RasterImage: 规范化后的图片。
    """
    if isinstance(result, RasterImage):
        return RasterImage(result.data, result.width, result.height, probe_image_type(result.data))
    if isinstance(result, (bytes, bytearray)):
        data = bytes(result)
        return RasterImage(data, width, height, probe_image_type(data))
    if isinstance(result, str):
        payload = result.strip()
        if payload.startswith("data:"):
            payload = payload.partition(",")[2]
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ChartRenderError(f"无法解码base64图片: {exc}") from exc
        return RasterImage(data, width, height, probe_image_type(data))
    raise ChartRenderError(f"不支持的栅格化结果类型: {type(result).__name__}")


def probe_image_type(data: bytes) -> str:
    """
    解析图片头部，确认python-docx能够嵌入。

    截断或损坏的位图在这里就被拒绝，而不是留到序列化阶段。

    返回:
        str: MIME类型（image/png 或 image/jpeg）

    异常:
        ChartRenderError: 数据为空、头部损坏或格式不可嵌入
    """
    if not data:
        raise ChartRenderError("栅格化结果为空")
    try:
        header = DocxImage.from_blob(data)
    except (UnrecognizedImageError, UnexpectedEndOfFileError, InvalidImageStreamError) as exc:
        raise ChartRenderError(f"图片数据损坏: {exc!r}") from exc
    except (struct.error, ValueError, IndexError) as exc:
        raise ChartRenderError(f"图片头部无法解析: {exc!r}") from exc
    if header.content_type not in EMBEDDABLE_MIME_TYPES:
        raise ChartRenderError(f"图片格式无法嵌入: {header.content_type}")
    if not header.px_width or not header.px_height:
        raise ChartRenderError("图片尺寸为0")
    return header.content_type


class ChartToPNGConverter:
    """
    将 ChartSpec 渲染为PNG位图
    """

    # 默认颜色调色板
    DEFAULT_COLORS = [
        '#4A90E2', '#E85D75', '#50C878', '#FFB347',
        '#9B59B6', '#3498DB', '#E67E22', '#16A085',
        '#F39C12', '#D35400', '#27AE60', '#8E44AD'
    ]

    def __init__(
        self,
        font_path: Optional[str] = None,
        width: int = 800,
        height: int = 500,
        dpi: int = 100,
    ):
        """
        初始化转换器

        参数:
            font_path: 自定义字体路径（可选，用于西里尔/中文字符）
            width: 图片宽度（像素）
            height: 图片高度（像素）
            dpi: DPI设置
        """
        self.font_path = font_path
        self.width = width
        self.height = height
        self.dpi = dpi
        self._font_family: Optional[str] = None
        self._setup_font()

    def _setup_font(self):
        """注册自定义字体；未提供时使用 DejaVu Sans（自带西里尔字符）"""
        if not self.font_path:
            return
        try:
            fm.fontManager.addfont(self.font_path)
            self._font_family = fm.FontProperties(fname=self.font_path).get_name()
            logger.info(f"已加载图表字体: {self.font_path}")
        except (OSError, RuntimeError, ValueError) as e:
            logger.warning(f"加载图表字体失败: {e}，将使用默认字体")

    def render(self, spec: ChartSpec) -> RasterImage:
        """
        同步渲染一个图表。

        参数:
            spec: 图表规格

        返回:
            RasterImage: PNG字节与像素尺寸

        异常:
            ChartRenderError: 类型不支持、数据为空或matplotlib渲染失败
        """
        render_method = getattr(self, f'_render_{spec.type}', None)
        if render_method is None:
            raise ChartRenderError(f"不支持的图表类型: {spec.type}")
        if not spec.labels or not spec.datasets:
            raise ChartRenderError(f"图表数据为空: {spec.title or spec.type}")

        with _PYPLOT_LOCK:
            fig = None
            try:
                fig, ax = self._create_figure(spec.title)
                render_method(ax, spec)
                data = self._figure_to_png(fig)
            except ChartRenderError:
                raise
            except (ValueError, TypeError, RuntimeError, MemoryError) as e:
                raise ChartRenderError(f"渲染{spec.type}图失败: {e}") from e
            finally:
                if fig is not None:
                    plt.close(fig)

        logger.debug(f"[ChartToPNGConverter] 已渲染 {spec.type} 图: {spec.title}")
        return RasterImage(data, self.width, self.height)

    async def rasterize(self, spec: ChartSpec) -> RasterImage:
        """异步入口：在线程池中执行渲染，作为导出流程的挂起点。"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.render, spec)

    def _create_figure(self, title: Optional[str] = None) -> Tuple[Any, Any]:
        """
        创建matplotlib图表

        返回:
            tuple: (fig, ax)
        """
        fig, ax = plt.subplots(figsize=(self.width / self.dpi, self.height / self.dpi), dpi=self.dpi)
        if title:
            ax.set_title(title, fontsize=14, fontweight='bold', pad=16, **self._font_kwargs())
        return fig, ax

    def _font_kwargs(self) -> dict:
        return {'fontfamily': self._font_family} if self._font_family else {}

    def _get_colors(self, count: int) -> List[str]:
        return [self.DEFAULT_COLORS[i % len(self.DEFAULT_COLORS)] for i in range(count)]

    def _figure_to_png(self, fig: Any) -> bytes:
        """
        将matplotlib图表转换为PNG字节（保持请求的像素尺寸，不做tight裁剪）
        """
        fig.tight_layout()
        buffer = io.BytesIO()
        fig.savefig(buffer, format='png', dpi=self.dpi, facecolor='white')
        data = buffer.getvalue()
        if not data.startswith(PNG_SIGNATURE):
            raise ChartRenderError("matplotlib未输出有效的PNG")
        return data

    def _render_line(self, ax: Any, spec: ChartSpec):
        """渲染折线图"""
        positions = np.arange(len(spec.labels))
        colors = self._get_colors(len(spec.datasets))
        for i, dataset in enumerate(spec.datasets):
            ax.plot(
                positions,
                dataset.data,
                marker='o',
                linewidth=2,
                markersize=5,
                color=colors[i],
                label=dataset.label or f'Series {i + 1}',
            )
        ax.set_xticks(positions)
        ax.set_xticklabels(spec.labels, rotation=30, ha='right')
        ax.grid(True, alpha=0.3, linestyle='--')
        if len(spec.datasets) > 1:
            ax.legend(loc='best', framealpha=0.9)

    def _render_bar(self, ax: Any, spec: ChartSpec):
        """渲染柱状图，多数据集时并排分组"""
        positions = np.arange(len(spec.labels))
        count = len(spec.datasets)
        width_bar = 0.8 / count if count > 1 else 0.6
        colors = self._get_colors(count)
        for i, dataset in enumerate(spec.datasets):
            offset = (i - count / 2 + 0.5) * width_bar
            ax.bar(
                positions + offset,
                dataset.data,
                width_bar,
                label=dataset.label or f'Series {i + 1}',
                color=colors[i],
                alpha=0.85,
                edgecolor='white',
                linewidth=0.5,
            )
        ax.set_xticks(positions)
        ax.set_xticklabels(spec.labels, rotation=30, ha='right')
        ax.grid(True, alpha=0.3, linestyle='--', axis='y')
        if count > 1:
            ax.legend(loc='best', framealpha=0.9)

    def _render_pie(self, ax: Any, spec: ChartSpec):
        """渲染饼图（只使用第一个数据集）"""
        values = [max(0.0, float(v)) for v in spec.datasets[0].data]
        if not any(v > 0 for v in values):
            raise ChartRenderError("饼图数据之和为0")
        _, _, autotexts = ax.pie(
            values,
            labels=spec.labels,
            colors=self._get_colors(len(values)),
            autopct='%1.1f%%',
            startangle=90,
            textprops={'fontsize': 10},
        )
        for autotext in autotexts:
            autotext.set_color('white')
            autotext.set_fontweight('bold')
        ax.axis('equal')


def create_chart_converter(
    font_path: Optional[str] = None,
    width: int = 800,
    height: int = 500,
    dpi: int = 100,
) -> ChartToPNGConverter:
    """
    创建图表转换器实例

    参数:
        font_path: 字体路径（可选）

    返回:
        ChartToPNGConverter: 转换器实例
    """
    return ChartToPNGConverter(font_path=font_path, width=width, height=height, dpi=dpi)


__all__ = [
    "ChartToPNGConverter",
    "EMBEDDABLE_MIME_TYPES",
    "RasterImage",
    "coerce_raster",
    "create_chart_converter",
    "probe_image_type",
]
