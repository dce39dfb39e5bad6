#!/usr/bin/env python3
"""
测试命令行入口与终端仪表盘

集群访问使用 FakeKubectl 替代
"""

import json
from datetime import datetime, timezone

import pytest
from rich.console import Console

from k8s_health_checker.cli import dashboard
from k8s_health_checker.cli import main as cli_main
from k8s_health_checker.collectors.models import NodeResourceSample, Status
from k8s_health_checker.config import ENV_VARS
from k8s_health_checker.report import ReportData
from k8s_health_checker.result_store import ResultStore

from conftest import FakeKubectl, fail


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """避免宿主机环境变量影响配置"""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _use_fake(monkeypatch, client):
    monkeypatch.setattr(cli_main, "KubectlWrapper", lambda **kwargs: client)


def _exit_code(argv, entry=cli_main.main):
    with pytest.raises(SystemExit) as exc_info:
        entry(argv)
    return exc_info.value.code


def test_healthy_run_writes_json_report(monkeypatch, tmp_path):
    _use_fake(monkeypatch, FakeKubectl())

    code = _exit_code(["--output", "json", "--output-dir", str(tmp_path)])

    assert code == 0
    reports = list(tmp_path.glob("k8s_health_report_*.json"))
    assert len(reports) == 1, "每次运行恰好生成一份报告"
    document = json.loads(reports[0].read_text(encoding="utf-8"))
    assert document["overall_status"] == "SUCCESS"
    assert "url_check" not in document["check_results"]


def test_failed_probe_exit_code_and_report(monkeypatch, tmp_path):
    """探测失败时依然生成报告，退出码为 1"""
    _use_fake(monkeypatch, FakeKubectl(
        responses={"deployments": fail("the server has asked for the client to provide credentials")},
    ))

    code = _exit_code(["--output", "log", "--output-dir", str(tmp_path), "--parallel"])

    assert code == 1
    reports = list(tmp_path.glob("k8s_health_report_*.log"))
    assert len(reports) == 1
    assert "[FAILED]" in reports[0].read_text(encoding="utf-8")


def test_warning_only_exit_code(monkeypatch, tmp_path):
    _use_fake(monkeypatch, FakeKubectl(pods={("rook-ceph", "app=rook-ceph-tools"): None}))

    code = _exit_code(["-o", "html", "--output-dir", str(tmp_path)])

    assert code == 2
    assert len(list(tmp_path.glob("*.html"))) == 1


def test_skip_option(monkeypatch, tmp_path):
    client = FakeKubectl()
    _use_fake(monkeypatch, client)

    code = _exit_code(["-o", "json", "--output-dir", str(tmp_path), "--skip", "rook_ceph", "harbor_disk"])

    assert code == 0
    document = json.loads(next(tmp_path.glob("*.json")).read_text(encoding="utf-8"))
    assert "rook_ceph" not in document["check_results"]
    assert "harbor_disk" not in document["check_results"]
    assert document["summary"]["total_checks"] == 9


def test_invalid_url_is_config_error(monkeypatch, tmp_path):
    _use_fake(monkeypatch, FakeKubectl())

    code = _exit_code(["ftp://example.com", "--output-dir", str(tmp_path)])

    assert code == 1
    assert list(tmp_path.iterdir()) == [], "配置错误时不访问集群也不生成报告"


def test_from_json_rerender(tmp_path):
    source = tmp_path / "source.json"
    source.write_text(json.dumps({
        "timestamp": "2024-05-17T09:30:05+09:00",
        "summary": {"total_checks": 2, "success_count": 1, "warning_count": 1, "failed_count": 0},
        "overall_status": "WARNING",
        "node_resources": {},
        "check_results": {
            "nodes": {"status": "SUCCESS", "details": "ok"},
            "minio_disk": {"status": "WARNING", "details": "磁盘使用率 82%"},
        },
    }), encoding="utf-8")
    output_dir = tmp_path / "out"

    code = _exit_code(["--from-json", str(source), "-o", "html", "--output-dir", str(output_dir)])

    assert code == 2
    html_files = list(output_dir.glob("k8s_health_report_20240517_093005*.html"))
    assert len(html_files) == 1
    assert "磁盘使用率 82%" in html_files[0].read_text(encoding="utf-8")


def test_from_json_missing_file(tmp_path):
    code = _exit_code(["--from-json", str(tmp_path / "missing.json"), "--output-dir", str(tmp_path)])
    assert code == 1


def test_dashboard_bar_colors():
    assert dashboard.bar_color(95) == "red"
    assert dashboard.bar_color(90) == "red"
    assert dashboard.bar_color(80) == "yellow"
    assert dashboard.bar_color(50) == "blue"
    assert dashboard.bar_color(49.9) == "green"


def test_dashboard_render():
    store = ResultStore()
    store.record("nodes", Status.SUCCESS, "全部 1 个节点 Ready")
    store.record("harbor_disk", Status.WARNING, "磁盘使用率 83%")
    store.record_node_sample(NodeResourceSample(name="worker-1", cpu_percent=91.0, memory_percent=40.0))
    data = ReportData.from_store(store, datetime(2024, 1, 1, tzinfo=timezone.utc), context="prod")
    snapshot = dashboard.DashboardSnapshot(
        report=data,
        namespaces=[("kube-system", 9, 10)],
        events=[{
            "time": "2024-01-01T00:00:00Z", "type": "Warning", "namespace": "default",
            "object": "Pod/web-1", "reason": "BackOff", "message": "Back-off restarting failed container",
        }],
    )

    console = Console(record=True, width=160)
    console.print(dashboard.build_dashboard(snapshot, interval=30))
    text = console.export_text()

    assert "worker-1" in text
    assert "磁盘使用率 83%" in text
    assert "WARNING" in text
    assert "Context: prod" in text
    assert "kube-system" in text
    assert "(9/10)" in text
    assert "BackOff" in text


def test_dashboard_once(monkeypatch):
    _use_fake(monkeypatch, FakeKubectl())
    assert _exit_code(["--once"], entry=dashboard.main) == 0


def test_namespace_summary():
    pods = {"items": [
        {"metadata": {"namespace": "a"}, "status": {"phase": "Running"}},
        {"metadata": {"namespace": "b"}, "status": {"phase": "Running"}},
        {"metadata": {"namespace": "b"}, "status": {"phase": "Pending"}},
    ]}
    assert dashboard.namespace_summary(pods) == [("b", 1, 2), ("a", 1, 1)]
    assert dashboard.namespace_summary(pods, limit=1) == [("b", 1, 2)]
    assert dashboard.namespace_summary(None) == []


def test_recent_events_keeps_latest():
    events = {"items": [
        {
            "metadata": {"namespace": "default"},
            "involvedObject": {"kind": "Pod", "name": f"web-{i}"},
            "type": "Warning" if i % 2 else "Normal",
            "reason": "BackOff",
            "message": f"event {i}",
            "lastTimestamp": f"2024-01-01T00:00:0{i}Z",
        }
        for i in (3, 1, 4, 2, 0, 5)
    ]}

    recent = dashboard.recent_events(events, limit=2)
    assert [e["message"] for e in recent] == ["event 4", "event 5"]
    assert recent[1]["object"] == "Pod/web-5"
    assert recent[1]["type"] == "Warning"


def test_preflight_and_context_errors_still_write_report(monkeypatch, tmp_path):
    """预检与 context 查询抛出异常时仍然生成报告"""
    _use_fake(monkeypatch, FakeKubectl(raise_on={"cluster_info", "current_context"}))

    code = _exit_code(["--output", "json", "--output-dir", str(tmp_path)])

    assert code == 0
    reports = list(tmp_path.glob("k8s_health_report_*.json"))
    assert len(reports) == 1
    document = json.loads(reports[0].read_text(encoding="utf-8"))
    assert document["overall_status"] == "SUCCESS"


def test_from_json_with_partial_gpu_fields(tmp_path):
    source = tmp_path / "partial.json"
    source.write_text(json.dumps({
        "node_resources": {"n1": {"gpu_capacity": 2}},
        "check_results": {"nodes": {"status": "SUCCESS", "details": "ok"}},
    }), encoding="utf-8")
    output_dir = tmp_path / "out"

    code = _exit_code(["--from-json", str(source), "-o", "html", "--output-dir", str(output_dir)])

    assert code == 0
    assert len(list(output_dir.glob("*.html"))) == 1


def test_render_error_exits_with_failure(monkeypatch, tmp_path):
    """渲染报告出错时退出码为 1，不抛出异常"""
    source = tmp_path / "source.json"
    source.write_text(json.dumps({"check_results": {"nodes": {"status": "SUCCESS"}}}), encoding="utf-8")

    def broken_render(data, fmt):
        raise TypeError("'<' not supported between instances of 'NoneType' and 'int'")

    monkeypatch.setattr(cli_main, "render", broken_render)

    code = _exit_code(["--from-json", str(source), "-o", "html", "--output-dir", str(tmp_path / "out")])

    assert code == 1
    assert not (tmp_path / "out").exists() or not list((tmp_path / "out").glob("*.html"))
