"""
Docx Engine配置。

所有可调参数集中在这里：输出目录、日志、图表栅格尺寸、
题注文字以及参考文献识别启发式。版式常量（页边距、字体、
标题样式）属于排版规范，固定在DOCX渲染器中，不在此暴露。
"""

from __future__ import annotations

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """从环境变量与 .env 读取的引擎配置。"""

    # 输出与日志
    OUTPUT_DIR: str = "final_reports/docx"
    LOG_FILE: str = "logs/docx_engine.log"
    LOG_ROTATION: str = "10 MB"

    # 默认文档风格：gost / business / free
    DEFAULT_STYLE: str = "gost"

    # 题名页必填字段（为空时在任何处理开始前拒绝导出）
    REQUIRED_TITLE_FIELDS: List[str] = ["organization", "title", "author"]

    # 图表栅格化
    CHART_WIDTH_PX: int = 800
    CHART_HEIGHT_PX: int = 500
    CHART_DPI: int = 100
    CHART_FONT_PATH: str = ""

    # 题注与占位文字
    TABLE_CAPTION_LABEL: str = "Table"
    FIGURE_CAPTION_LABEL: str = "Figure"
    TABLE_CAPTION_FALLBACK: str = "Table description"
    FIGURE_FAILURE_TEMPLATE: str = "[{label} could not be rendered: {title}]"
    MISSING_SOURCE_TEMPLATE: str = "Source {index}. Missing"
    TOC_TITLE: str = "Содержание"
    DEFAULT_BIBLIOGRAPHY_TITLE: str = "Список литературы"

    # 参考文献识别（可调启发式，不是严格契约）
    BIBLIOGRAPHY_TITLE_PATTERNS: List[str] = [
        "литератур",
        "источник",
        "библиограф",
        "references",
        "bibliography",
        "sources",
    ]
    FILLER_PREFIXES: List[str] = [
        "Рассмотрим",
        "Важно",
        "Следует",
        "Таким образом",
        "Необходимо",
        "Кроме того",
        "Стоит отметить",
        "Let us",
        "It is important",
        "Thus",
        "Therefore",
        "Note that",
    ]
    BIBLIOGRAPHY_MAX_ENTRY_LENGTH: int = 400
    BIBLIOGRAPHY_DEDUPE: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# 全局配置实例
settings = Settings()


__all__ = ["Settings", "settings"]
