#!/usr/bin/env python3
"""
测试结果存储与汇总统计
"""

from k8s_health_checker.collectors.models import (
    CHECK_ORDER,
    NodeResourceSample,
    Status,
    Summary,
    worst_status,
)
from k8s_health_checker.result_store import ResultStore


def test_record_last_write_wins():
    store = ResultStore()
    store.record("nodes", Status.FAILED, "n2 NotReady", "检查 kubelet")
    store.record("nodes", Status.SUCCESS, "全部 Ready")

    assert len(store) == 1
    assert store.get("nodes").status == Status.SUCCESS
    assert store.get("nodes").explanation is None


def test_results_follow_canonical_order():
    """写入顺序与渲染顺序无关，渲染始终按规范顺序"""
    store = ResultStore()
    for name in reversed(CHECK_ORDER):
        store.record(name, Status.SUCCESS, name)

    assert [r.name for r in store.results()] == CHECK_ORDER


def test_unknown_names_appended_after_canonical():
    store = ResultStore()
    store.record("custom_check", Status.WARNING, "x")
    store.record("pods", Status.SUCCESS, "y")

    assert [r.name for r in store.results()] == ["pods", "custom_check"]


def test_summary_counts_sum_to_total():
    store = ResultStore()
    store.record("nodes", Status.SUCCESS)
    store.record("pods", Status.WARNING)
    store.record("deployments", Status.FAILED)
    store.record("services", Status.SUCCESS)

    summary = store.summary()
    assert summary.total_checks == 4
    assert summary.success_count + summary.warning_count + summary.failed_count == summary.total_checks
    assert summary.overall_status == Status.FAILED
    assert summary.exit_code == 1


def test_overall_status_rules():
    assert Summary.from_statuses([]).overall_status == Status.SUCCESS
    assert Summary.from_statuses([Status.SUCCESS, Status.SUCCESS]).exit_code == 0

    warning_only = Summary.from_statuses([Status.SUCCESS, Status.WARNING])
    assert warning_only.overall_status == Status.WARNING
    assert warning_only.exit_code == 2

    failed = Summary.from_statuses([Status.WARNING, Status.FAILED])
    assert failed.overall_status == Status.FAILED
    assert failed.exit_code == 1


def test_worst_status():
    assert worst_status([]) == Status.SUCCESS
    assert worst_status([Status.WARNING, Status.SUCCESS]) == Status.WARNING
    assert worst_status([Status.WARNING, Status.FAILED, Status.SUCCESS]) == Status.FAILED


def test_names_with_status():
    store = ResultStore()
    store.record("storage", Status.WARNING)
    store.record("nodes", Status.WARNING)
    store.record("pods", Status.SUCCESS)

    assert store.names_with_status(Status.WARNING) == ["nodes", "storage"]
    assert store.names_with_status(Status.FAILED) == []


def test_record_accepts_status_string():
    store = ResultStore()
    result = store.record("nodes", "FAILED", "x")
    assert result.status is Status.FAILED


def test_node_samples_last_write_wins_and_sorted():
    store = ResultStore()
    store.record_node_sample(NodeResourceSample(name="worker-2", cpu_percent=10.0))
    store.record_node_sample(NodeResourceSample(name="worker-1", cpu_percent=20.0))
    store.record_node_sample(NodeResourceSample(name="worker-2", cpu_percent=30.0))

    samples = store.node_samples()
    assert [s.name for s in samples] == ["worker-1", "worker-2"]
    assert samples[1].cpu_percent == 30.0
