#!/usr/bin/env python3
"""
Kubernetes 集群健康检查 - 终端仪表盘

默认执行一次并输出；--watch 模式按间隔刷新，Ctrl+C 退出。
除检查结果与节点资源外，还展示命名空间 Pod 概况和最近事件。
"""

import argparse
import asyncio
import sys
from typing import Dict, List, NamedTuple, Optional, Tuple

from rich.console import Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from k8s_health_checker.cli.main import (
    STATUS_STYLES,
    build_client,
    console,
    run_checks,
    setup_logging,
)
from k8s_health_checker.collectors.models import check_title
from k8s_health_checker.config import HealthCheckConfig, load_config
from k8s_health_checker.report import ReportData
from k8s_health_checker.utils.errors import ConfigError

DEFAULT_INTERVAL = 30
BAR_WIDTH = 20
TOP_NAMESPACES = 10
RECENT_EVENTS = 5

EVENT_STYLES = {
    "Normal": "green",
    "Warning": "yellow",
}


class DashboardSnapshot(NamedTuple):
    """一次刷新的全部数据"""
    report: ReportData
    namespaces: List[Tuple[str, int, int]]
    events: List[Dict[str, str]]


def bar_color(percent: float) -> str:
    """进度条颜色: ≥90 红, ≥80 黄, ≥50 蓝, 其余绿"""
    if percent >= 90:
        return "red"
    if percent >= 80:
        return "yellow"
    if percent >= 50:
        return "blue"
    return "green"


def render_bar(percent: float, width: int = BAR_WIDTH) -> Text:
    filled = int(round(min(max(percent, 0), 100) * width / 100))
    bar = Text("█" * filled, style=bar_color(percent))
    bar.append("░" * (width - filled), style="dim")
    bar.append(f" {percent:5.1f}%")
    return bar


def namespace_summary(pods_json, limit: int = TOP_NAMESPACES) -> List[Tuple[str, int, int]]:
    """按 Pod 数量排序的 (命名空间, Running 数, 总数)"""
    totals: Dict[str, List[int]] = {}
    items = pods_json.get("items", []) if isinstance(pods_json, dict) else []
    for pod in items:
        namespace = pod.get("metadata", {}).get("namespace", "")
        counts = totals.setdefault(namespace, [0, 0])
        counts[1] += 1
        if pod.get("status", {}).get("phase") == "Running":
            counts[0] += 1

    ordered = sorted(totals.items(), key=lambda item: (-item[1][1], item[0]))
    return [(namespace, running, total) for namespace, (running, total) in ordered[:limit]]


def recent_events(events_json, limit: int = RECENT_EVENTS) -> List[Dict[str, str]]:
    """最近的事件 (按时间升序，取最后 limit 条)"""
    items = events_json.get("items", []) if isinstance(events_json, dict) else []

    def event_time(event: Dict) -> str:
        return (
            event.get("lastTimestamp")
            or event.get("eventTime")
            or event.get("firstTimestamp")
            or event.get("metadata", {}).get("creationTimestamp")
            or ""
        )

    events = []
    for event in sorted(items, key=event_time)[-limit:]:
        involved = event.get("involvedObject", {})
        events.append({
            "time": event_time(event),
            "type": event.get("type", ""),
            "namespace": event.get("metadata", {}).get("namespace", ""),
            "object": f"{involved.get('kind', '')}/{involved.get('name', '')}",
            "reason": event.get("reason", ""),
            "message": (event.get("message") or "").strip(),
        })
    return events


async def collect_snapshot(config: HealthCheckConfig) -> DashboardSnapshot:
    """执行检查并收集仪表盘附加数据 (每次刷新使用新的客户端，避免读到缓存)"""
    client = build_client(config)
    report = await run_checks(config, client=client, show_progress=False)

    pods = await client.get_pods()
    events = await client.get_events()

    return DashboardSnapshot(
        report=report,
        namespaces=namespace_summary(pods.get("data")) if pods.get("success") else [],
        events=recent_events(events.get("data")) if events.get("success") else [],
    )


def build_dashboard(snapshot: DashboardSnapshot, interval: Optional[int] = None) -> Group:
    """组装仪表盘内容"""
    data = snapshot.report
    summary = data.summary
    overall_style = STATUS_STYLES[summary.overall_status]

    header = Text()
    header.append("Kubernetes 集群健康仪表盘", style="bold cyan")
    header.append(f"  {data.timestamp.strftime('%Y-%m-%d %H:%M:%S')}", style="dim")
    if data.context:
        header.append(f"  Context: {data.context}", style="dim")
    if interval:
        header.append(f"  每 {interval}s 刷新，Ctrl+C 退出", style="dim")

    totals = Text()
    totals.append(f"{summary.overall_status.icon} {summary.overall_status.value}  ", style=f"bold {overall_style}")
    totals.append(f"成功 {summary.success_count}  ", style="green")
    totals.append(f"警告 {summary.warning_count}  ", style="yellow")
    totals.append(f"失败 {summary.failed_count}", style="red")

    checks = Table(title="检查项", expand=True)
    checks.add_column("检查项", no_wrap=True)
    checks.add_column("状态", no_wrap=True)
    checks.add_column("详情", overflow="fold")
    for result in data.results:
        style = STATUS_STYLES[result.status]
        checks.add_row(
            check_title(result.name),
            Text(f"{result.status.icon} {result.status.value}", style=style),
            result.details,
        )

    nodes = Table(title="节点资源 (requests / allocatable)", expand=True)
    nodes.add_column("节点", no_wrap=True)
    nodes.add_column("Pod")
    nodes.add_column("CPU")
    nodes.add_column("内存")
    has_gpu = any(sample.has_gpu for sample in data.node_samples)
    if has_gpu:
        nodes.add_column("GPU")

    for sample in data.node_samples:
        row = [
            sample.name,
            render_bar(sample.pod_percent),
            render_bar(sample.cpu_percent),
            render_bar(sample.memory_percent),
        ]
        if has_gpu:
            row.append(render_bar(sample.gpu_percent) if sample.has_gpu else Text("-", style="dim"))
        nodes.add_row(*row)

    namespaces = Table(title="命名空间 Pod (Running / 总数)", expand=True)
    namespaces.add_column("命名空间", no_wrap=True)
    namespaces.add_column("Running")
    for namespace, running, total in snapshot.namespaces:
        bar = render_bar(running * 100.0 / total if total else 0.0)
        bar.append(f" ({running}/{total})")
        namespaces.add_row(namespace, bar)

    events = Table(title="最近事件", expand=True)
    events.add_column("类型", no_wrap=True)
    events.add_column("对象", no_wrap=True)
    events.add_column("原因", no_wrap=True)
    events.add_column("消息", overflow="fold")
    for event in snapshot.events:
        style = EVENT_STYLES.get(event["type"], "red")
        events.add_row(
            Text(event["type"], style=style),
            f"{event['namespace']}/{event['object']}",
            event["reason"],
            event["message"],
        )
    if not snapshot.events:
        events.add_row(Text("-", style="dim"), "", "", "没有最近事件")

    return Group(Panel(Group(header, totals), expand=True), checks, nodes, namespaces, events)


async def watch(config: HealthCheckConfig, interval: int):
    """循环刷新，直到被中断"""
    with Live(console=console, refresh_per_second=2, transient=False) as live:
        live.update(Text("⏳ 正在执行检查...", style="dim"))
        while True:
            snapshot = await collect_snapshot(config)
            live.update(build_dashboard(snapshot, interval))
            await asyncio.sleep(interval)


async def main_async(args: argparse.Namespace) -> int:
    overrides = {
        "kubeconfig": args.kubeconfig,
        "context": args.context,
        "target_url": args.url,
        "parallel": True if args.parallel else None,
    }
    try:
        config = load_config(config_file=args.config, overrides=overrides)
    except ConfigError as e:
        console.print(f"[red]❌ 配置错误: {e}[/red]")
        return 1

    if args.watch:
        await watch(config, args.interval)
        return 0

    with console.status("正在执行检查..."):
        snapshot = await collect_snapshot(config)
    console.print(build_dashboard(snapshot))
    return snapshot.report.summary.exit_code


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="k8s-health-dashboard",
        description="Kubernetes 集群健康仪表盘",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  %(prog)s
  %(prog)s --watch --interval 10
  %(prog)s --context prod --parallel
        """
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("-w", "--watch", action="store_true", help="持续刷新")
    mode.add_argument("--once", action="store_true", help="只执行一次 (默认)")
    parser.add_argument("-i", "--interval", type=int, default=DEFAULT_INTERVAL,
                        help=f"刷新间隔秒数 (默认 {DEFAULT_INTERVAL})")
    parser.add_argument("--url", help="需要检查连通性的 URL")
    parser.add_argument("--kubeconfig", help="kubeconfig 文件路径")
    parser.add_argument("--context", help="kubeconfig context")
    parser.add_argument("-c", "--config", help="YAML 配置文件")
    parser.add_argument("-p", "--parallel", action="store_true", help="并发执行检查")
    parser.add_argument("-v", "--verbose", action="store_true", help="输出调试日志")
    return parser


def main(argv: Optional[List[str]] = None):
    """仪表盘入口"""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        exit_code = asyncio.run(main_async(args))
        sys.exit(exit_code)
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 已退出仪表盘[/yellow]")
        sys.exit(0)


if __name__ == "__main__":
    main()
