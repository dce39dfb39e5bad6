"""
收集器模块 - 集群探测与数据模型

编排器位于 health_collector，需要时单独导入
"""

from .k8s_client import KubectlWrapper
from .cache import K8sCache
from .http_probe import UrlProbeResult, probe_url
from .node_resources import build_node_samples
from .models import (
    Status,
    CheckName,
    CheckResult,
    NodeResourceSample,
    Summary,
    CHECK_ORDER,
    CHECK_TITLES,
    check_title,
    worst_status,
)

__all__ = [
    # K8s 客户端
    "KubectlWrapper",
    # 缓存
    "K8sCache",
    # URL 探测
    "UrlProbeResult",
    "probe_url",
    # 节点资源
    "build_node_samples",
    # 模型
    "Status",
    "CheckName",
    "CheckResult",
    "NodeResourceSample",
    "Summary",
    "CHECK_ORDER",
    "CHECK_TITLES",
    "check_title",
    "worst_status",
]
