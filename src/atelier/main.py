"""Atelier CLI 入口：网文稿件质量检查。"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from atelier.agents.setting_extractor import SettingExtractionError, SettingExtractor
from atelier.config.settings import AnalysisConfig, load_config
from atelier.graph.pipeline import analyze
from atelier.llm.adapter import create_adapter
from atelier.llm.utils import dump_json
from atelier.models.analysis import MAX_EXCERPT_CHARS, MIN_EXCERPT_CHARS, Analysis, AnalyzeOptions

console = Console()
logger = logging.getLogger("atelier")

VERDICT_STYLE = {"PASS": "green", "REVISE": "yellow", "BLOCK": "red"}
PRIORITY_STYLE = {"critical": "bold red", "high": "red", "medium": "yellow", "low": "dim"}


def _read_source(path: str) -> str:
    source = Path(path)
    if not source.exists():
        console.print(f"[red]文件不存在: {source}[/red]")
        sys.exit(1)
    return source.read_text(encoding="utf-8")


def _load_config(args: argparse.Namespace) -> AnalysisConfig:
    return load_config(getattr(args, "config", None))


def _print_report(analysis: Analysis) -> None:
    """打印结论、分数、修改事项与画像评估。"""
    report = analysis.aggregate_report
    style = VERDICT_STYLE.get(report.verdict, "white")

    console.print(
        Panel(
            report.executive_summary,
            title=f"[{style}]{report.verdict}[/{style}]  《{analysis.setting_note.title}》",
            border_style=style,
        )
    )

    scores = Table(title="评分", show_lines=True)
    scores.add_column("维度", style="cyan")
    scores.add_column("分数", justify="right")
    scores.add_row("连贯性 (0.40)", str(report.weighted_scores.continuity))
    scores.add_row("角色一致性 (0.35)", str(report.weighted_scores.character))
    scores.add_row("世界观规则 (0.25)", str(report.weighted_scores.world_rules))
    scores.add_row("[bold]总分[/bold]", f"[bold]{report.weighted_scores.total}[/bold]")
    scores.add_row("置信度", str(report.confidence_score))
    console.print(scores)

    if report.action_items:
        items = Table(title="修改事项", show_lines=True)
        items.add_column("#", justify="right", width=3)
        items.add_column("优先级")
        items.add_column("类型", style="magenta")
        items.add_column("范围", style="cyan")
        items.add_column("描述", style="white")
        for idx, item in enumerate(report.action_items, start=1):
            priority_style = PRIORITY_STYLE.get(item.priority, "white")
            items.add_row(
                str(idx),
                f"[{priority_style}]{item.priority}[/{priority_style}]",
                item.type,
                item.affected_area,
                item.description,
            )
        console.print(items)

    if analysis.persona_evaluations:
        personas = Table(title="读者画像", show_lines=True)
        personas.add_column("画像", style="cyan")
        personas.add_column("满意", justify="right")
        personas.add_column("沉浸", justify="right")
        personas.add_column("烦躁", justify="right")
        personas.add_column("反应", style="yellow")
        personas.add_column("评论", style="white")
        for p in analysis.persona_evaluations:
            personas.add_row(
                p.persona_name,
                f"{p.metrics.satisfaction:.0f}",
                f"{p.metrics.engagement:.0f}",
                f"{p.metrics.frustration:.0f}",
                p.overall_reaction,
                p.sample_comment or "-",
            )
        console.print(personas)

    console.print(Panel(report.recommendation, title="建议", border_style="dim"))

    status_style = "green" if analysis.status == "success" else "yellow"
    console.print(
        f"状态: [{status_style}]{analysis.status}[/{status_style}]  "
        f"耗时: {analysis.processing_time_ms}ms  "
        f"模型调用: {analysis.llm_calls_count} 次  "
        f"tokens: {analysis.token_usage.total_tokens}"
    )
    if analysis.degraded_stages:
        console.print(f"[yellow]使用兜底结果的阶段: {', '.join(analysis.degraded_stages)}[/yellow]")


def cmd_analyze(args: argparse.Namespace) -> None:
    """执行稿件检查命令。"""
    text = _read_source(args.file)
    config = _load_config(args)

    request = {
        "text": text,
        "options": AnalyzeOptions(
            skip_personas=args.skip_personas,
            skip_setting_note=args.skip_setting,
            temperature=args.temperature,
        ).model_dump(),
    }
    console.print(
        f"检查 [cyan]{args.file}[/cyan]（{len(text)} 字），模型 "
        f"[cyan]{config.model.provider}:{config.model.model_name or 'default'}[/cyan]"
    )

    with console.status("正在分析..."):
        response = analyze(request, config=config)

    if not response.success or response.data is None:
        console.print(f"[red]分析失败: {response.error}[/red]")
        sys.exit(1)

    _print_report(response.data)

    if args.json_out:
        out = Path(args.json_out)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(response.data.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        console.print(f"结果已写入 [cyan]{out}[/cyan]")


def cmd_extract_setting(args: argparse.Namespace) -> None:
    """仅执行设定抽取，输出 JSON。"""
    text = _read_source(args.file)
    config = _load_config(args)
    if not MIN_EXCERPT_CHARS <= len(text) <= MAX_EXCERPT_CHARS:
        console.print(
            f"[red]正文长度需在 {MIN_EXCERPT_CHARS}-{MAX_EXCERPT_CHARS} 字之间（当前 {len(text)} 字）[/red]"
        )
        sys.exit(1)

    extractor = SettingExtractor(create_adapter(config.model))
    try:
        setting = extractor.extract_setting_model(text)
    except SettingExtractionError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    console.print_json(dump_json(setting))


def main() -> None:
    """CLI 主入口。"""
    from dotenv import load_dotenv
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="atelier",
        description="Atelier - 网文稿件一致性与读者反应检查",
    )
    subparsers = parser.add_subparsers(dest="command", help="可用命令")

    analyze_parser = subparsers.add_parser("analyze", help="完整检查：设定抽取、一致性、读者画像、综合报告")
    analyze_parser.add_argument("file", help="正文文件路径（UTF-8 文本）")
    analyze_parser.add_argument("--skip-personas", action="store_true", help="跳过读者画像评估")
    analyze_parser.add_argument("--skip-setting", action="store_true", help="跳过设定抽取，使用兜底设定")
    analyze_parser.add_argument("--temperature", type=float, default=None, help="本次生成温度（0-1）")
    analyze_parser.add_argument("--config", "-c", default=None, help="YAML 配置文件路径")
    analyze_parser.add_argument("--json-out", default=None, help="将完整结果写入 JSON 文件")
    analyze_parser.add_argument("--verbose", "-v", action="store_true", help="详细日志输出")

    extract_parser = subparsers.add_parser("extract-setting", help="仅抽取设定模型并输出 JSON")
    extract_parser.add_argument("file", help="正文文件路径（UTF-8 文本）")
    extract_parser.add_argument("--config", "-c", default=None, help="YAML 配置文件路径")
    extract_parser.add_argument("--verbose", "-v", action="store_true", help="详细日志输出")

    args = parser.parse_args()

    # 配置日志
    log_level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
    )

    if args.command == "analyze":
        cmd_analyze(args)
    elif args.command == "extract-setting":
        cmd_extract_setting(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
