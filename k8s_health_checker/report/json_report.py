"""
JSON 报告

结构:
{
    "timestamp": ISO-8601,
    "summary": {"total_checks", "success_count", "warning_count", "failed_count"},
    "overall_status": "SUCCESS" | "WARNING" | "FAILED",
    "node_resources": {节点名: {...}},
    "check_results": {检查名: {"status", "details", "explanation"?}}
}
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict

from ..collectors.models import CheckResult, NodeResourceSample, Status, Summary
from .data import ReportData

logger = logging.getLogger(__name__)


def build_json_document(data: ReportData) -> Dict[str, Any]:
    summary = data.summary

    check_results = {}
    for result in data.results:
        entry = {"status": result.status.value, "details": result.details}
        if result.explanation:
            entry["explanation"] = result.explanation
        check_results[result.name] = entry

    return {
        "timestamp": data.timestamp.isoformat(),
        "summary": {
            "total_checks": summary.total_checks,
            "success_count": summary.success_count,
            "warning_count": summary.warning_count,
            "failed_count": summary.failed_count,
        },
        "overall_status": summary.overall_status.value,
        "node_resources": {
            sample.name: sample.to_report_dict() for sample in data.node_samples
        },
        "check_results": check_results,
    }


def render_json(data: ReportData) -> str:
    return json.dumps(build_json_document(data), ensure_ascii=False, indent=2)


def load_json_report(text: str) -> ReportData:
    """
    解析 JSON 报告 (用于重新渲染为其他格式)

    缺失的部分按空处理，未知状态的检查项会被跳过并记录警告。

    Raises:
        ValueError: 不是合法的 JSON 对象
    """
    document = json.loads(text)
    if not isinstance(document, dict):
        raise ValueError("JSON 报告顶层必须是对象")

    results = []
    for name, entry in (document.get("check_results") or {}).items():
        if not isinstance(entry, dict):
            continue
        try:
            status = Status(entry.get("status"))
        except ValueError:
            logger.warning("跳过未知状态的检查项 %s: %s", name, entry.get("status"))
            continue
        results.append(CheckResult(
            name=name,
            status=status,
            details=entry.get("details") or "",
            explanation=entry.get("explanation"),
        ))

    samples = []
    for name, entry in (document.get("node_resources") or {}).items():
        if isinstance(entry, dict):
            samples.append(NodeResourceSample(**{"name": name, **entry}))

    raw_summary = document.get("summary")
    if isinstance(raw_summary, dict):
        summary = Summary(
            total_checks=raw_summary.get("total_checks", len(results)),
            success_count=raw_summary.get("success_count", 0),
            warning_count=raw_summary.get("warning_count", 0),
            failed_count=raw_summary.get("failed_count", 0),
            overall_status=document.get("overall_status") or Summary.from_statuses(
                r.status for r in results
            ).overall_status,
        )
    else:
        summary = Summary.from_statuses(r.status for r in results)

    raw_timestamp = document.get("timestamp")
    try:
        timestamp = datetime.fromisoformat(raw_timestamp) if raw_timestamp else datetime.now().astimezone()
    except ValueError:
        logger.warning("无法解析报告时间戳: %s", raw_timestamp)
        timestamp = datetime.now().astimezone()

    return ReportData(
        summary=summary,
        results=results,
        node_samples=sorted(samples, key=lambda s: s.name),
        timestamp=timestamp,
    )
