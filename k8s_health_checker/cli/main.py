#!/usr/bin/env python3
"""
Kubernetes 集群健康检查 - 命令行入口

流程:
- 加载配置: 默认值 < 环境变量 (.env) < YAML 配置文件 < 命令行参数
- 执行检查: 顺序或并发，单个检查失败不影响其他检查
- 输出报告: html / json / log 三选一，写入 reports 目录
- 退出码: 0 全部成功, 1 存在失败, 2 仅有警告
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from jinja2 import TemplateError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from k8s_health_checker.collectors.health_collector import HealthCheckRunner
from k8s_health_checker.collectors.k8s_client import KubectlWrapper
from k8s_health_checker.collectors.models import CHECK_ORDER, CheckResult, Status, check_title
from k8s_health_checker.config import HealthCheckConfig, load_config
from k8s_health_checker.report import ReportData, load_json_report, render, write_report
from k8s_health_checker.utils.errors import ConfigError


load_dotenv()

logger = logging.getLogger(__name__)

console = Console()

STATUS_STYLES = {
    Status.SUCCESS: "green",
    Status.WARNING: "yellow",
    Status.FAILED: "red",
}


def setup_logging(verbose: bool = False):
    """日志输出到 rich 控制台"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


def print_header(title: str):
    """打印标题"""
    console.print()
    console.print(Panel(f"[bold cyan]{title}[/bold cyan]", expand=False))
    console.print()


def print_check_result(result: CheckResult):
    """单个检查完成时的进度输出"""
    style = STATUS_STYLES[result.status]
    console.print(
        f"  {result.status.icon} [{style}]{check_title(result.name)}[/{style}] "
        f"[dim]{result.details}[/dim]"
    )


def print_summary(data: ReportData, report_path: Optional[Path] = None):
    """打印汇总表"""
    summary = data.summary

    table = Table(title="检查结果", show_lines=False)
    table.add_column("检查项")
    table.add_column("状态")
    table.add_column("详情", overflow="fold")

    for result in data.results:
        style = STATUS_STYLES[result.status]
        table.add_row(
            check_title(result.name),
            f"[{style}]{result.status.icon} {result.status.value}[/{style}]",
            result.details,
        )

    console.print(table)
    console.print()

    overall_style = STATUS_STYLES[summary.overall_status]
    console.print(
        f"[bold]📊 总计 {summary.total_checks} 项:[/bold] "
        f"[green]成功 {summary.success_count}[/green] / "
        f"[yellow]警告 {summary.warning_count}[/yellow] / "
        f"[red]失败 {summary.failed_count}[/red]"
    )
    console.print(
        f"[bold]🎯 总体状态:[/bold] "
        f"[{overall_style}]{summary.overall_status.icon} {summary.overall_status.value}[/{overall_style}]"
    )

    if report_path:
        console.print(f"[bold]💾 报告:[/bold] {report_path}")
    console.print()


def build_client(config: HealthCheckConfig) -> KubectlWrapper:
    return KubectlWrapper(
        kubeconfig=config.kubeconfig,
        context=config.context,
        timeout=config.kubectl_timeout,
    )


async def run_checks(
    config: HealthCheckConfig,
    client: Optional[KubectlWrapper] = None,
    show_progress: bool = True
) -> ReportData:
    """执行一次完整检查并返回渲染数据"""
    if client is None:
        client = build_client(config)
    runner = HealthCheckRunner(
        client,
        config,
        progress_callback=print_check_result if show_progress else None,
    )
    outcome = await runner.run()

    try:
        context_result = await client.current_context()
    except Exception as e:
        logger.warning("获取当前 context 失败: %s", e, exc_info=True)
        context_result = {}
    context = context_result.get("data") if context_result.get("success") else None

    return ReportData.from_store(
        outcome.store,
        timestamp=outcome.started_at,
        context=context if isinstance(context, str) else None,
        duration_seconds=outcome.duration_seconds,
    )


def save_report(data: ReportData, fmt: str, output_dir: str) -> Optional[Path]:
    """渲染并保存报告，失败时返回 None"""
    console.print("[bold]💾 保存报告...[/bold]")
    try:
        content = render(data, fmt)
    except (TemplateError, TypeError, ValueError) as e:
        logger.debug("渲染报告失败", exc_info=True)
        console.print(f"[red]❌ 渲染报告失败: {e}[/red]")
        return None

    try:
        path = write_report(content, fmt, output_dir, data.timestamp)
    except (OSError, TimeoutError) as e:
        console.print(f"[red]❌ 保存报告失败: {e}[/red]")
        return None

    console.print(f"[green]✅ 已保存: {path}[/green]")
    console.print()
    return path


def rerender_from_json(path: str, fmt: str, output_dir: str) -> int:
    """把已有的 JSON 报告重新渲染为指定格式"""
    print_header("📄 从 JSON 报告重新生成")

    try:
        text = Path(path).read_text(encoding="utf-8")
        data = load_json_report(text)
    except (OSError, ValueError) as e:
        console.print(f"[red]❌ 无法读取 JSON 报告 {path}: {e}[/red]")
        return 1

    report_path = save_report(data, fmt, output_dir)
    print_summary(data, report_path)
    if report_path is None:
        return 1
    return data.summary.exit_code


async def main_async(args: argparse.Namespace) -> int:
    """异步主函数"""
    try:
        config = load_config(config_file=args.config, overrides=build_overrides(args))
    except ConfigError as e:
        console.print(f"[red]❌ 配置错误: {e}[/red]")
        return 1

    if args.from_json:
        return rerender_from_json(args.from_json, config.output_format, config.output_dir)

    print_header("🚀 Kubernetes 集群健康检查")

    if config.context:
        console.print(f"[dim]Context: {config.context}[/dim]")
    if config.target_url:
        console.print(f"[dim]URL: {config.target_url}[/dim]")
    console.print(f"[dim]模式: {'并发' if config.parallel else '顺序'} | 格式: {config.output_format}[/dim]")
    console.print()

    data = await run_checks(config)
    console.print()

    report_path = save_report(data, config.output_format, config.output_dir)
    print_summary(data, report_path)

    if report_path is None:
        return 1
    return data.summary.exit_code


def build_overrides(args: argparse.Namespace) -> dict:
    """命令行参数 → 配置覆盖项 (未指定的参数为 None，不覆盖)"""
    return {
        "target_url": args.url_option or args.url,
        "output_format": args.output,
        "output_dir": args.output_dir,
        "kubeconfig": args.kubeconfig,
        "context": args.context,
        "parallel": True if args.parallel else None,
        "parallel_jobs": args.jobs,
        "skip_checks": args.skip,
        "verify_tls": False if args.insecure else None,
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="k8s-health-checker",
        description="Kubernetes 集群健康检查工具",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  %(prog)s
  %(prog)s https://app.example.com --output json
  %(prog)s --context prod --parallel --skip rook_ceph minio_disk
  %(prog)s --from-json reports/k8s_health_report_20240101_120000.json --output html

退出码:
  0  全部检查成功
  1  至少一项检查失败
  2  没有失败，但存在警告
        """
    )

    parser.add_argument("url", nargs="?", help="需要检查连通性的 URL (可选)")
    parser.add_argument("--url", dest="url_option", help="需要检查连通性的 URL")
    parser.add_argument("-o", "--output", choices=["html", "json", "log"], help="报告格式 (默认 html)")
    parser.add_argument("--output-dir", help="报告输出目录 (默认 reports)")
    parser.add_argument("--kubeconfig", help="kubeconfig 文件路径")
    parser.add_argument("--context", help="kubeconfig context")
    parser.add_argument("-c", "--config", help="YAML 配置文件")
    parser.add_argument("-p", "--parallel", action="store_true", help="并发执行检查")
    parser.add_argument("-j", "--jobs", type=int, help="并发数 (默认 5)")
    parser.add_argument("--skip", nargs="+", choices=CHECK_ORDER, metavar="CHECK",
                        help=f"跳过的检查项: {', '.join(CHECK_ORDER)}")
    parser.add_argument("--from-json", metavar="FILE", help="从已有 JSON 报告重新生成报告，不访问集群")
    parser.add_argument("-k", "--insecure", action="store_true", help="URL 检查时不校验 TLS 证书")
    parser.add_argument("-v", "--verbose", action="store_true", help="输出调试日志")

    return parser


def main(argv: Optional[List[str]] = None):
    """CLI 主入口"""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        exit_code = asyncio.run(main_async(args))
        sys.exit(exit_code)
    except KeyboardInterrupt:
        console.print("\n[yellow]⚠️  用户中断[/yellow]")
        sys.exit(1)


if __name__ == "__main__":
    main()
