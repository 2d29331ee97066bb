import json

import pytest

from cluster_probe import cli
from cluster_probe.runner import ProbeRunner


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("REDIS_CLUSTER_NODES", "REDIS_CLUSTER_TLS", "REDIS_USERNAME", "REDIS_PASSWORD"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def patched_runner(monkeypatch, connector):
    created = []

    def factory(**kwargs):
        runner = ProbeRunner(connector=connector, **kwargs)
        created.append(runner)
        return runner

    monkeypatch.setattr(cli, "ProbeRunner", factory)
    return created


def test_success_exit_code_and_output(patched_runner, capsys):
    code = cli.probe(["--node", "10.0.0.11:7001"])

    out = capsys.readouterr().out
    assert code == cli.EXIT_OK
    assert "✅ Testing SET/GET" in out
    assert "Redis Cluster Works!" in out
    assert "🎉 All tests passed!" in out


def test_failure_exit_code(patched_runner, fake_cluster, capsys):
    fake_cluster.info["cluster_state"] = "fail"

    code = cli.probe(["--node", "10.0.0.11:7001"])

    out = capsys.readouterr().out
    assert code == cli.EXIT_FAILED
    assert "❌ Getting cluster info" in out
    assert "Redis cluster check failed: cluster_info" in out


def test_allow_degraded(patched_runner, fake_cluster):
    fake_cluster.info["cluster_state"] = "fail"

    assert cli.probe(["--node", "10.0.0.11:7001", "--allow-degraded"]) == cli.EXIT_OK
    assert patched_runner[0].require_cluster_ok is False


def test_json_output(patched_runner, capsys):
    code = cli.probe(["--node", "a:1,b:2", "--json", "--key", "probe:k", "--value", "hi"])

    report = json.loads(capsys.readouterr().out)
    assert code == cli.EXIT_OK
    assert report["status"] == "ok"
    assert report["endpoint"] == "a:1, b:2"
    assert [s["name"] for s in report["steps"]] == [
        "connect", "ping", "cluster_info", "write_read", "cleanup",
    ]
    assert report["steps"][3]["detail"] == "hi"


def test_nodes_from_environment(patched_runner, fake_cluster, monkeypatch):
    monkeypatch.setenv("REDIS_CLUSTER_NODES", "10.0.0.11:7001,10.0.0.12:7002")
    monkeypatch.setenv("REDIS_CLUSTER_TLS", "1")

    assert cli.probe([]) == cli.EXIT_OK
    assert len(fake_cluster.kwargs["startup_nodes"]) == 2
    assert fake_cluster.kwargs["ssl"] is True


def test_runner_options(patched_runner):
    cli.probe(["--node", "a:1", "--timeout", "2.5", "--unique-key"])

    runner = patched_runner[0]
    assert runner.step_timeout == 2.5
    assert runner.unique_key is True


@pytest.mark.parametrize("argv", [
    ["--node", "no-port"],
    ["--node", "a:1", "--timeout", "0"],
    ["--node", "a:1", "--tls-insecure"],
])
def test_configuration_errors(patched_runner, capsys, argv):
    code = cli.probe(argv)

    captured = capsys.readouterr()
    assert code == cli.EXIT_CONFIG
    assert "Configuration error" in captured.err
    assert captured.out == ""
    assert patched_runner == []


def test_main_exits_with_probe_code(monkeypatch):
    monkeypatch.setattr(cli, "probe", lambda: 1)

    with pytest.raises(SystemExit) as excinfo:
        cli.main()
    assert excinfo.value.code == 1
