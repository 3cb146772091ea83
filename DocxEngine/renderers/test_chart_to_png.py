"""
内置图表栅格化器的测试用例。

运行测试：
    python -m pytest DocxEngine/renderers/test_chart_to_png.py -v
"""

import asyncio
import base64
import struct

import pytest

from DocxEngine.renderers.chart_to_png import (
    PNG_SIGNATURE,
    RasterImage,
    coerce_raster,
    create_chart_converter,
)
from DocxEngine.state import ChartDataset, ChartSpec
from DocxEngine.utils.errors import ChartRenderError


def _png_size(data: bytes):
    return struct.unpack(">II", data[16:24])


def _spec(chart_type, values=(3.0, 5.0, 2.0)):
    return ChartSpec(
        type=chart_type,
        title="Выручка по годам",
        labels=["2021", "2022", "2023"],
        datasets=[
            ChartDataset(label="Выручка", data=list(values)),
            ChartDataset(label="Прибыль", data=[1.0, 2.0, 1.5]),
        ],
    )


class TestChartToPNGConverter:
    """测试ChartToPNGConverter类"""

    def setup_method(self):
        self.converter = create_chart_converter(width=400, height=250, dpi=50)

    @pytest.mark.parametrize("chart_type", ["line", "bar", "pie"])
    def test_renders_png_of_requested_size(self, chart_type):
        image = self.converter.render(_spec(chart_type))
        assert image.data.startswith(PNG_SIGNATURE)
        assert _png_size(image.data) == (400, 250)
        assert (image.width, image.height) == (400, 250)

    def test_async_rasterize(self):
        image = asyncio.run(self.converter.rasterize(_spec("bar")))
        assert image.data.startswith(PNG_SIGNATURE)

    def test_unknown_type(self):
        with pytest.raises(ChartRenderError):
            self.converter.render(_spec("radar"))

    def test_pie_with_zero_total(self):
        with pytest.raises(ChartRenderError):
            self.converter.render(_spec("pie", values=(0.0, 0.0, 0.0)))


class TestCoerceRaster:
    """测试栅格化结果的规范化"""

    PNG = base64.b64decode(
        "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
    )

    def test_bytes_use_requested_size(self):
        image = coerce_raster(self.PNG, 800, 500)
        assert isinstance(image, RasterImage)
        assert (image.width, image.height) == (800, 500)

    def test_data_url(self):
        url = "data:image/png;base64," + base64.b64encode(self.PNG).decode()
        assert coerce_raster(url, 800, 500).data == self.PNG

    def test_png_content_type_detected(self):
        assert coerce_raster(self.PNG, 800, 500).mime_type == "image/png"

    def test_truncated_png_rejected(self):
        with pytest.raises(ChartRenderError):
            coerce_raster(self.PNG[:20], 800, 500)
        with pytest.raises(ChartRenderError):
            coerce_raster(RasterImage(self.PNG[:20], 1, 1), 800, 500)

    def test_non_image_bytes_rejected(self):
        with pytest.raises(ChartRenderError):
            coerce_raster(b"not an image", 800, 500)

    def test_rejects_empty_and_unknown(self):
        with pytest.raises(ChartRenderError):
            coerce_raster(b"", 800, 500)
        with pytest.raises(ChartRenderError):
            coerce_raster(42, 800, 500)
