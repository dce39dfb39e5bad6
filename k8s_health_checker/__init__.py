"""
Kubernetes 集群健康检查工具

对节点、Pod、Deployment、Service、存储、Ingress、外部 URL 以及
Rook-Ceph / Harbor / Minio 等组件执行固定的健康检查，
并将结果汇总为 HTML / JSON / 日志报告。
"""

__version__ = "1.0.0"
