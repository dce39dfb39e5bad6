"""
报告模块 - HTML / JSON / 日志三种格式
"""

from .data import ReportData
from .json_report import render_json, load_json_report
from .log_report import render_log
from .html_report import render_html, usage_level
from .writer import write_report, report_filename, RENDERERS, render

__all__ = [
    "ReportData",
    "render_json",
    "load_json_report",
    "render_log",
    "render_html",
    "usage_level",
    "write_report",
    "report_filename",
    "render",
    "RENDERERS",
]
