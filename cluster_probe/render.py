"""Console and JSON rendering of probe reports"""

import json

from cluster_probe.models import Report, StepStatus

STATUS_SYMBOLS = {
    StepStatus.OK: "✅",
    StepStatus.FAILED: "❌",
    StepStatus.SKIPPED: "⏭️ ",
}

STEP_TITLES = {
    "connect": "Connecting to Redis cluster",
    "ping": "Testing PING",
    "cluster_info": "Getting cluster info",
    "write_read": "Testing SET/GET",
    "cleanup": "Cleaning up test key",
}


def render_text(report: Report) -> str:
    """Emoji-per-step console rendering of a report"""
    lines = [
        "🔴 Redis Cluster Connection Test",
        "=" * 33,
        f"Cluster nodes: {report.endpoint}",
        "",
    ]
    for step in report.steps:
        title = STEP_TITLES.get(step.name, step.name)
        symbol = STATUS_SYMBOLS[step.status]
        if step.status is StepStatus.SKIPPED:
            lines.append(f"{symbol} {title}: skipped")
            continue
        lines.append(f"{symbol} {title} ({step.duration * 1000:.1f} ms): {step.detail}")

    lines.append("")
    if report.ok:
        lines.append("🎉 All tests passed! Redis cluster is working correctly.")
    else:
        failed = [s.name for s in report.steps if s.status is StepStatus.FAILED]
        lines.append(f"💥 Redis cluster check failed: {', '.join(failed) or 'incomplete'}")
    return "\n".join(lines)


def render_json(report: Report) -> str:
    """Report as indented JSON"""
    return json.dumps(report.to_dict(), indent=2)
