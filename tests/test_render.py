import json
from datetime import datetime

from cluster_probe.models import Report, StepResult, StepStatus
from cluster_probe.render import render_json, render_text


def make_report(*steps):
    return Report(endpoint="a:1", steps=tuple(steps), started_at=datetime(2024, 1, 1, 12, 0, 0))


def test_connect_failure_report():
    report = make_report(
        StepResult("connect", StepStatus.FAILED, "ConnectivityError: Cannot connect", 0.0125, "ConnectivityError"),
        StepResult("ping", StepStatus.SKIPPED, "skipped after earlier failure"),
        StepResult("cluster_info", StepStatus.SKIPPED, "skipped after earlier failure"),
        StepResult("write_read", StepStatus.SKIPPED, "skipped after earlier failure"),
        StepResult("cleanup", StepStatus.SKIPPED, "no connection to clean up through"),
    )

    text = render_text(report)

    assert report.status is StepStatus.FAILED
    assert "❌ Connecting to Redis cluster (12.5 ms): ConnectivityError: Cannot connect" in text
    assert "Testing PING: skipped" in text
    assert text.endswith("💥 Redis cluster check failed: connect")


def test_missing_verdict_step_is_not_ok():
    report = make_report(StepResult("connect", StepStatus.OK, "connected", 0.001))

    assert report.status is StepStatus.FAILED
    assert render_text(report).endswith("💥 Redis cluster check failed: incomplete")


def test_json_report():
    report = make_report(
        StepResult("connect", StepStatus.OK, "connected via 1 seed node", 0.002),
        StepResult("ping", StepStatus.OK, "PONG", 0.001),
        StepResult("cluster_info", StepStatus.OK, "cluster_state=ok", 0.001),
        StepResult("write_read", StepStatus.OK, "Redis Cluster Works!", 0.002),
        StepResult("cleanup", StepStatus.FAILED, "CommandError: READONLY", 0.001, "CommandError"),
    )

    data = json.loads(render_json(report))

    assert data["status"] == "ok"
    assert data["started_at"] == "2024-01-01T12:00:00"
    assert data["duration_ms"] == 7.0
    assert data["steps"][4] == {
        "name": "cleanup",
        "status": "failed",
        "detail": "CommandError: READONLY",
        "duration_ms": 1.0,
        "error": "CommandError",
    }
