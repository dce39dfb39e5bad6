"""
HTML 报告 (Jinja2 模板)
"""

from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape

from ..collectors.models import Status, check_title
from .data import ReportData

TEMPLATE_NAME = "report.html.j2"

STATUS_CLASSES = {
    Status.SUCCESS: "success",
    Status.WARNING: "warning",
    Status.FAILED: "danger",
}


def usage_level(percent: float) -> str:
    """使用率 → 颜色等级: <50 low, <70 medium, <85 high, 其余 critical"""
    if percent < 50:
        return "low"
    if percent < 70:
        return "medium"
    if percent < 85:
        return "high"
    return "critical"


def build_jinja_env() -> Environment:
    env = Environment(
        loader=PackageLoader("k8s_health_checker", "report/templates"),
        autoescape=select_autoescape(["html", "j2"]),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["usage_level"] = usage_level
    env.filters["status_class"] = lambda status: STATUS_CLASSES[status]
    env.filters["check_title"] = check_title
    return env


def render_html(data: ReportData) -> str:
    template = build_jinja_env().get_template(TEMPLATE_NAME)
    return template.render(
        summary=data.summary,
        results=data.results,
        node_samples=data.node_samples,
        timestamp=data.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
        context=data.context,
        duration=data.duration_seconds,
    )
