"""
分析器模块 - 状态分类规则
"""

from .classifiers import (
    classify_nodes,
    classify_pods,
    classify_coredns,
    classify_deployments,
    classify_services,
    classify_storage,
    classify_ingress,
    classify_url,
    classify_ceph,
    classify_disk_usage,
    classify_node_resources,
    parse_ceph_health,
    parse_df_usage,
)

__all__ = [
    "classify_nodes",
    "classify_pods",
    "classify_coredns",
    "classify_deployments",
    "classify_services",
    "classify_storage",
    "classify_ingress",
    "classify_url",
    "classify_ceph",
    "classify_disk_usage",
    "classify_node_resources",
    "parse_ceph_health",
    "parse_df_usage",
]
