#!/usr/bin/env python3
"""
测试节点资源快照与 Quantity 解析
"""

from k8s_health_checker.collectors.node_resources import build_node_samples
from k8s_health_checker.utils.quantity import parse_cpu, parse_memory, percent

from conftest import items, make_node, make_pod


def test_parse_cpu():
    assert parse_cpu("250m") == 250
    assert parse_cpu("2") == 2000
    assert parse_cpu("1.5") == 1500
    assert parse_cpu(3) == 3000
    assert parse_cpu(None) == 0
    assert parse_cpu("bogus") == 0


def test_parse_memory():
    assert parse_memory("1Gi") == 1048576
    assert parse_memory("512Mi") == 524288
    assert parse_memory("128974848") == 125952
    assert parse_memory("1G") == 976562
    assert parse_memory("") == 0


def test_percent():
    assert percent(1, 3) == 33.3
    assert percent(5, 0) == 0.0
    assert percent(110, 110) == 100.0


def test_build_samples_sums_requests_per_node():
    nodes = items(make_node("n1"), make_node("n2", cpu="2", memory="4Gi", pods="10"))
    pods = items(
        make_pod("default", "a", node="n1", cpu="1", memory="2Gi"),
        make_pod("default", "b", node="n1", cpu="1", memory="2Gi"),
        make_pod("default", "c", node="n2", cpu="500m", memory="1Gi"),
        make_pod("default", "done", node="n2", phase="Succeeded", cpu="2", memory="4Gi"),
        make_pod("default", "unscheduled", node=None, phase="Pending"),
    )

    samples = build_node_samples(nodes, pods)
    assert [s.name for s in samples] == ["n1", "n2"]

    n1, n2 = samples
    assert n1.pod_count == 2
    assert n1.cpu_requests == 2000
    assert n1.cpu_percent == 50.0
    assert n1.memory_percent == 50.0

    assert n2.pod_count == 1, "已结束的 Pod 不计入"
    assert n2.pod_percent == 10.0
    assert n2.cpu_percent == 25.0
    assert n2.memory_allocatable == 4194304
    assert not n2.has_gpu


def test_gpu_fields_only_for_gpu_nodes():
    nodes = items(make_node("gpu-1", gpu=4), make_node("cpu-1"))
    pods = items(make_pod("ml", "train", node="gpu-1", gpu=3))

    samples = {s.name: s for s in build_node_samples(nodes, pods)}
    assert samples["gpu-1"].gpu_capacity == 4
    assert samples["gpu-1"].gpu_requests == 3
    assert samples["gpu-1"].gpu_percent == 75.0
    assert "gpu_percent" not in samples["cpu-1"].to_report_dict()


def test_gpu_monitoring_disabled():
    nodes = items(make_node("gpu-1", gpu=4))
    samples = build_node_samples(nodes, items(), include_gpu=False)
    assert samples[0].gpu_capacity is None
