"""
节点资源快照

根据 `kubectl get nodes` 与 `kubectl get pods -A` 的 JSON 计算每个节点的
Pod 数量、CPU / 内存 requests 占 allocatable 的百分比，以及可选的 GPU 使用情况。
"""

from typing import Dict, List

from ..utils.quantity import parse_cpu, parse_memory, percent
from .models import NodeResourceSample

GPU_RESOURCE = "nvidia.com/gpu"

# 已结束的 Pod 不再占用节点资源
TERMINATED_PHASES = ("Succeeded", "Failed")


def _items(data) -> List[Dict]:
    if isinstance(data, dict) and isinstance(data.get("items"), list):
        return data["items"]
    return []


def _int_quantity(value) -> int:
    try:
        return int(str(value))
    except (TypeError, ValueError):
        return 0


def _pod_requests(pod: Dict) -> Dict[str, int]:
    """累加 Pod 内所有容器的 requests"""
    totals = {"cpu": 0, "memory": 0, "gpu": 0}
    for container in pod.get("spec", {}).get("containers") or []:
        requests = (container.get("resources") or {}).get("requests") or {}
        totals["cpu"] += parse_cpu(requests.get("cpu"))
        totals["memory"] += parse_memory(requests.get("memory"))
        totals["gpu"] += _int_quantity(requests.get(GPU_RESOURCE))
    return totals


def build_node_samples(nodes_json, pods_json, include_gpu: bool = True) -> List[NodeResourceSample]:
    """
    计算节点资源快照

    Args:
        nodes_json: kubectl get nodes -o json 的结果
        pods_json: kubectl get pods -A -o json 的结果
        include_gpu: 是否输出 GPU 字段 (仅对 GPU 容量 > 0 的节点生效)

    Returns:
        按节点名排序的 NodeResourceSample 列表
    """
    usage: Dict[str, Dict[str, int]] = {}
    for pod in _items(pods_json):
        node_name = pod.get("spec", {}).get("nodeName")
        if not node_name:
            continue
        if pod.get("status", {}).get("phase") in TERMINATED_PHASES:
            continue

        node_usage = usage.setdefault(node_name, {"pods": 0, "cpu": 0, "memory": 0, "gpu": 0})
        node_usage["pods"] += 1
        for key, value in _pod_requests(pod).items():
            node_usage[key] += value

    samples = []
    for node in _items(nodes_json):
        name = node.get("metadata", {}).get("name")
        if not name:
            continue

        status = node.get("status", {})
        allocatable = status.get("allocatable") or {}
        capacity = status.get("capacity") or {}
        node_usage = usage.get(name, {"pods": 0, "cpu": 0, "memory": 0, "gpu": 0})

        max_pods = _int_quantity(allocatable.get("pods") or capacity.get("pods"))
        cpu_allocatable = parse_cpu(allocatable.get("cpu"))
        memory_allocatable = parse_memory(allocatable.get("memory"))

        fields = dict(
            name=name,
            pod_count=node_usage["pods"],
            max_pods=max_pods,
            pod_percent=percent(node_usage["pods"], max_pods),
            cpu_allocatable=cpu_allocatable,
            cpu_requests=node_usage["cpu"],
            cpu_percent=percent(node_usage["cpu"], cpu_allocatable),
            memory_allocatable=memory_allocatable,
            memory_requests=node_usage["memory"],
            memory_percent=percent(node_usage["memory"], memory_allocatable),
        )

        gpu_capacity = _int_quantity(capacity.get(GPU_RESOURCE))
        if include_gpu and gpu_capacity > 0:
            gpu_allocatable = _int_quantity(allocatable.get(GPU_RESOURCE))
            fields.update(
                gpu_capacity=gpu_capacity,
                gpu_allocatable=gpu_allocatable,
                gpu_requests=node_usage["gpu"],
                gpu_percent=percent(node_usage["gpu"], gpu_allocatable),
            )

        samples.append(NodeResourceSample(**fields))

    return sorted(samples, key=lambda s: s.name)
