"""
纯文本日志报告
"""

from ..collectors.models import check_title
from .data import ReportData

SEPARATOR = "=" * 70
SUB_SEPARATOR = "-" * 70


def render_log(data: ReportData) -> str:
    summary = data.summary
    lines = [
        SEPARATOR,
        "Kubernetes 集群健康检查报告",
        SEPARATOR,
        f"检查时间: {data.timestamp.strftime('%Y-%m-%d %H:%M:%S %z').strip()}",
    ]
    if data.context:
        lines.append(f"集群 Context: {data.context}")
    if data.duration_seconds is not None:
        lines.append(f"耗时: {data.duration_seconds:.1f}s")

    lines += [
        "",
        "[汇总]",
        SUB_SEPARATOR,
        f"总检查项: {summary.total_checks}",
        f"成功: {summary.success_count}",
        f"警告: {summary.warning_count}",
        f"失败: {summary.failed_count}",
        f"总体状态: {summary.overall_status.value}",
        "",
        "[节点资源]",
        SUB_SEPARATOR,
    ]

    if not data.node_samples:
        lines.append("(无数据)")
    for sample in data.node_samples:
        line = (
            f"{sample.name}: Pod {sample.pod_count}/{sample.max_pods} ({sample.pod_percent}%), "
            f"CPU {sample.cpu_requests}m/{sample.cpu_allocatable}m ({sample.cpu_percent}%), "
            f"内存 {sample.memory_requests}Ki/{sample.memory_allocatable}Ki ({sample.memory_percent}%)"
        )
        if sample.has_gpu:
            line += f", GPU {sample.gpu_requests}/{sample.gpu_allocatable} ({sample.gpu_percent}%)"
        lines.append(line)

    lines += ["", "[检查详情]", SUB_SEPARATOR]
    for result in data.results:
        lines.append(f"[{result.status.value}] {check_title(result.name)} ({result.name})")
        lines.append(f"    {result.details}")
        if result.explanation:
            lines.append(f"    建议: {result.explanation}")

    lines += [SEPARATOR, ""]
    return "\n".join(lines)
