"""
Docx Engine 命令行版本。

读取内容生成器交付的章节JSON（可选题名页模板），装订并导出
.docx 文档；``--preview`` 同时输出一份Markdown预览。

输入JSON结构::

    {
        "sections": [{"id": "...", "title": "...", "content": "...",
                      "tables": [...], "charts": [...]}],
        "title": {"organization": "...", "title": "...", "author": "..."},
        "style": "gost"
    }
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from DocxEngine import ExportAgent, ExportRequest, build_filename
from DocxEngine.state import DOCUMENT_STYLES
from DocxEngine.utils.config import Settings, settings as global_settings
from DocxEngine.utils.errors import ExportSerializationError, TitleFieldsError


def setup_logger(verbose: bool = False):
    """设置日志配置"""
    logger.remove()  # 移除默认处理器
    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level="DEBUG" if verbose else "INFO",
    )


def parse_arguments(argv=None):
    """解析命令行参数"""
    parser = argparse.ArgumentParser(
        description="Docx Engine 命令行版本 - 把章节JSON导出为 .docx 文档",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  python export_docx.py --input sections.json
  python export_docx.py --input sections.json --template title.docx --style business
  python export_docx.py --input sections.json --output-dir out --preview --verbose
        """,
    )
    parser.add_argument('--input', required=True, help='章节JSON文件路径')
    parser.add_argument('--template', default=None, help='题名页模板 (.docx)，可选')
    parser.add_argument(
        '--style',
        choices=DOCUMENT_STYLES,
        default=None,
        help='文档风格，仅影响默认题名页上的文档类型文字',
    )
    parser.add_argument('--output-dir', default=None, help='输出目录（默认遵循 .env 中的 OUTPUT_DIR）')
    parser.add_argument('--preview', action='store_true', help='同时输出Markdown预览')
    parser.add_argument('--verbose', action='store_true', help='显示详细日志信息')
    return parser.parse_args(argv)


def build_agent_config(args) -> Settings:
    """基于 .env 配置并融合命令行覆盖项生成最终配置"""
    overrides: Dict[str, Any] = {}
    if args.output_dir:
        overrides['OUTPUT_DIR'] = args.output_dir
    if not overrides:
        return global_settings
    return global_settings.model_copy(update=overrides)


def load_request(input_path: Path, template_path: Optional[Path], style: Optional[str], default_style: str) -> ExportRequest:
    """读取输入JSON与模板字节，组装导出请求。"""
    payload = json.loads(input_path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("输入JSON的顶层必须是对象")
    if style:
        payload["style"] = style
    else:
        payload.setdefault("style", default_style)

    template = template_path.read_bytes() if template_path else None
    return ExportRequest.from_dict(payload, template=template)


def main(argv=None) -> int:
    """主函数"""
    args = parse_arguments(argv)
    setup_logger(verbose=args.verbose)

    config = build_agent_config(args)
    input_path = Path(args.input)
    template_path = Path(args.template) if args.template else None

    try:
        request = load_request(input_path, template_path, args.style, config.DEFAULT_STYLE)
    except (OSError, ValueError) as exc:
        logger.error(f"读取输入失败: {exc}")
        return 1

    agent = ExportAgent(config)
    try:
        result = agent.export_sync(request)
    except TitleFieldsError as exc:
        for name, message in exc.field_errors.items():
            logger.error(f"题名页字段 {name}: {message}")
        return 1
    except ExportSerializationError as exc:
        logger.error(f"导出失败: {exc}")
        logger.error(f"提示: {exc.hint}")
        return 1

    logger.info(f"DOCX 文件: {result.path}")
    if args.preview:
        preview_path = Path(config.OUTPUT_DIR) / build_filename(request.title_fields.title, ".md")
        preview_path.write_text(agent.render_preview(result.document), encoding="utf-8")
        logger.info(f"Markdown 预览: {preview_path}")

    for warning in result.warnings:
        logger.warning(f"告警: {warning}")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logger.warning("\n用户中断程序")
        sys.exit(0)
