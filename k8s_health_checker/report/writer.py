"""
报告文件写入

文件名: k8s_health_report_<YYYYmmdd_HHMMSS>.<html|json|log>
同一目录的并发写入通过 FileLock 串行化，同名文件追加数字后缀。
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Union

from filelock import FileLock

from .data import ReportData
from .html_report import render_html
from .json_report import render_json
from .log_report import render_log

logger = logging.getLogger(__name__)

REPORT_PREFIX = "k8s_health_report"
LOCK_NAME = ".k8s_health_report.lock"
LOCK_TIMEOUT = 30

RENDERERS: Dict[str, Callable[[ReportData], str]] = {
    "html": render_html,
    "json": render_json,
    "log": render_log,
}


def render(data: ReportData, fmt: str) -> str:
    """按格式渲染报告"""
    if fmt not in RENDERERS:
        raise ValueError(f"不支持的报告格式: {fmt}")
    return RENDERERS[fmt](data)


def report_filename(fmt: str, timestamp: datetime, suffix: int = 0) -> str:
    name = f"{REPORT_PREFIX}_{timestamp.strftime('%Y%m%d_%H%M%S')}"
    if suffix:
        name += f"_{suffix}"
    return f"{name}.{fmt}"


def write_report(
    content: str,
    fmt: str,
    output_dir: Union[str, Path],
    timestamp: datetime
) -> Path:
    """
    写入报告文件

    Args:
        content: 渲染好的报告内容
        fmt: html | json | log
        output_dir: 输出目录 (不存在时自动创建)
        timestamp: 用于文件名的时间

    Returns:
        写入的文件路径
    """
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)

    with FileLock(str(directory / LOCK_NAME), timeout=LOCK_TIMEOUT):
        suffix = 0
        path = directory / report_filename(fmt, timestamp)
        while path.exists():
            suffix += 1
            path = directory / report_filename(fmt, timestamp, suffix)

        path.write_text(content, encoding="utf-8")

    logger.info("报告已写入: %s", path)
    return path
