"""
ExportAgent 端到端测试：字段校验、序列化、落盘与错误分类。

运行测试：
    python -m pytest DocxEngine/test_agent.py -v
"""

import base64
import io

import pytest
from docx import Document

from DocxEngine import ExportAgent, ExportRequest, build_filename
from DocxEngine.utils.config import Settings
from DocxEngine.utils.errors import ExportSerializationError, TitleFieldsError

PNG_1X1 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="


async def stub_rasterize(spec):
    return PNG_1X1


def _payload(**title_overrides):
    title = {"university": "МГУ", "theme": "Анализ рынка", "author": "Иванов И.И."}
    title.update(title_overrides)
    return {
        "sections": [
            {"id": "intro", "title": "Введение", "content": "Рынок растёт [1]."},
            {
                "id": "analysis",
                "title": "Анализ",
                "content": "- Рост продаж\n- Снижение затрат",
                "tables": [{"headers": ["Год", "Сумма"], "rows": [["2023", "10"]], "title": "Продажи"}],
                "charts": [
                    {
                        "type": "bar",
                        "title": "Динамика",
                        "labels": ["2022", "2023"],
                        "datasets": [{"label": "Продажи", "data": [8, 10]}],
                    }
                ],
            },
            {"id": "refs", "title": "Список литературы", "content": "[1] Smith J. Research Methods. 2020."},
        ],
        "title": title,
        "style": "gost",
    }


class TestExportAgent:
    """测试ExportAgent类"""

    def _agent(self, tmp_path, rasterizer=stub_rasterize):
        config = Settings(OUTPUT_DIR=str(tmp_path / "out"), LOG_FILE=str(tmp_path / "logs" / "engine.log"))
        return ExportAgent(config, rasterizer=rasterizer)

    def test_missing_title_fields_rejected(self, tmp_path):
        agent = self._agent(tmp_path)
        request = ExportRequest.from_dict(_payload(author="", theme=" "))
        with pytest.raises(TitleFieldsError) as exc_info:
            agent.export_sync(request)
        assert set(exc_info.value.field_errors) == {"title", "author"}
        assert not (tmp_path / "out").exists()

    def test_full_export(self, tmp_path):
        agent = self._agent(tmp_path)
        result = agent.export_sync(ExportRequest.from_dict(_payload()))

        assert result.filename == "Анализ_рынка.docx"
        assert result.path is not None
        assert (tmp_path / "out" / "Анализ_рынка.docx").read_bytes() == result.data

        doc = Document(io.BytesIO(result.data))
        headings = [p.text for p in doc.paragraphs if p.style.name == "Heading 1"]
        assert headings == ["1. Введение", "2. Анализ", "3. Список литературы"]
        texts = [p.text for p in doc.paragraphs]
        assert "Table 1 – Продажи" in texts
        assert "Figure 1 – Динамика" in texts
        assert "1. Smith J. Research Methods. 2020." in texts
        assert len(doc.tables) == 1
        assert len(doc.inline_shapes) == 1

    def test_export_without_saving(self, tmp_path):
        agent = self._agent(tmp_path)
        result = agent.export_sync(ExportRequest.from_dict(_payload()), save=False)
        assert result.path is None
        assert result.data.startswith(b"PK")

    def test_chart_failure_is_warning(self, tmp_path):
        async def broken(spec):
            raise RuntimeError("renderer offline")

        agent = self._agent(tmp_path, rasterizer=broken)
        result = agent.export_sync(ExportRequest.from_dict(_payload()), save=False)
        assert result.warnings
        doc = Document(io.BytesIO(result.data))
        assert "[Figure could not be rendered: Динамика]" in [p.text for p in doc.paragraphs]

    def test_truncated_chart_image_does_not_abort(self, tmp_path):
        async def truncated(spec):
            return base64.b64decode(PNG_1X1)[:20]

        agent = self._agent(tmp_path, rasterizer=truncated)
        result = agent.export_sync(ExportRequest.from_dict(_payload()), save=False)
        doc = Document(io.BytesIO(result.data))
        assert len(doc.inline_shapes) == 0
        assert "[Figure could not be rendered: Динамика]" in [p.text for p in doc.paragraphs]
        assert result.warnings

    def test_unexpected_rasterizer_error_does_not_abort(self, tmp_path):
        async def unreachable(spec):
            raise Exception("rasterizer service unreachable")

        agent = self._agent(tmp_path, rasterizer=unreachable)
        result = agent.export_sync(ExportRequest.from_dict(_payload()), save=False)
        doc = Document(io.BytesIO(result.data))
        assert "[Figure could not be rendered: Динамика]" in [p.text for p in doc.paragraphs]

    def test_corrupt_template_falls_back(self, tmp_path):
        agent = self._agent(tmp_path)
        request = ExportRequest.from_dict(_payload(), template=b"not a docx")
        result = agent.export_sync(request, save=False)
        assert any("模板" in w for w in result.warnings)
        doc = Document(io.BytesIO(result.data))
        assert doc.paragraphs[0].text == "МГУ"

    def test_serialization_failure_is_categorized(self, tmp_path, monkeypatch):
        def explode(self, document):
            raise MemoryError()

        monkeypatch.setattr("DocxEngine.agent.DocxRenderer.render", explode)
        agent = self._agent(tmp_path)
        with pytest.raises(ExportSerializationError) as exc_info:
            agent.export_sync(ExportRequest.from_dict(_payload()))
        assert exc_info.value.category == "memory"
        assert exc_info.value.hint

    def test_preview(self, tmp_path):
        agent = self._agent(tmp_path)
        result = agent.export_sync(ExportRequest.from_dict(_payload()), save=False)
        preview = agent.render_preview(result.document)
        assert "# 2. Анализ" in preview
        assert "- Рост продаж" in preview


def test_build_filename():
    assert build_filename("Анализ рынка: 2024/25") == "Анализ_рынка_202425.docx"
    assert build_filename("   ") == "document.docx"
    assert build_filename("Отчёт", ".md") == "Отчёт.md"
