import json

import pytest

from pdns_metrics import cli
from pdns_metrics.output import META_HEADER


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    monkeypatch.delenv(cli.META_ENV, raising=False)
    for name in ("PREFIX", "CONTROL_COMMAND", "DATABASE_URL"):
        monkeypatch.delenv(f"PDNS_METRICS_{name}", raising=False)


def test_version(capsys):
    assert cli.main(["--version"]) == cli.STATUS_OK
    assert capsys.readouterr().out.startswith("pdns-metrics ")


def test_meta_mode_prints_graph_definition(monkeypatch, capsys):
    monkeypatch.setenv(cli.META_ENV, "1")
    assert cli.main(["--prefix", "auth"]) == cli.STATUS_OK
    header, body = capsys.readouterr().out.split("\n", 1)
    assert header == META_HEADER
    graphs = json.loads(body)["graphs"]
    assert len(graphs) == 16
    assert graphs["auth.cpu"]["label"] == "Auth: CPU Usage (milliseconds)"


def test_collection_prints_values(control_command, database_url, capsys):
    command = control_command()
    argv = ["--control-command", command, "--database-url", database_url]

    assert cli.main(argv) == cli.STATUS_OK
    lines = capsys.readouterr().out.splitlines()
    values = {line.split("\t")[0]: line.split("\t")[1] for line in lines}

    assert values == {
        "pdns.cache-size.packetcache-size": "7",
        "pdns.latency.latency": "12",
        "pdns.qsize.qsize-q": "0",
        "pdns.memory.real-memory-usage": "52428800",
    }

    # second run has previous samples, but every counter is unchanged
    assert cli.main(argv) == cli.STATUS_OK
    lines = capsys.readouterr().out.splitlines()
    rates = {line.split("\t")[0]: line.split("\t")[1] for line in lines}
    assert rates["pdns.packetcache.packetcache-hit"] == "0"
    assert rates["pdns.answers.udp4-answers"] == "0"


def test_settings_from_environment(monkeypatch, control_command, database_url, capsys):
    monkeypatch.setenv("PDNS_METRICS_PREFIX", "ns1")
    monkeypatch.setenv("PDNS_METRICS_CONTROL_COMMAND", control_command("latency=3"))
    monkeypatch.setenv("PDNS_METRICS_DATABASE_URL", database_url)

    assert cli.main([]) == cli.STATUS_OK
    assert capsys.readouterr().out.startswith("ns1.latency.latency\t3\t")


def test_command_failure_exits_with_warning(control_command, database_url, capsys):
    command = control_command("latency=3", status=1)
    argv = ["--control-command", command, "--database-url", database_url]
    assert cli.main(argv) == cli.STATUS_WARNING
    assert capsys.readouterr().out == ""


def test_missing_command_exits_with_warning(tmp_path, database_url, capsys):
    argv = ["--control-command", str(tmp_path / "nope"), "--database-url", database_url]
    assert cli.main(argv) == cli.STATUS_WARNING
    assert capsys.readouterr().out == ""


def test_flags_override_environment(monkeypatch, control_command, database_url, capsys):
    monkeypatch.setenv("PDNS_METRICS_PREFIX", "env")
    argv = [
        "--prefix",
        "flag",
        "--control-command",
        control_command("latency=3"),
        "--database-url",
        database_url,
    ]

    assert cli.main(argv) == cli.STATUS_OK
    lines = capsys.readouterr().out.splitlines()
    assert lines
    assert all(line.startswith("flag.") for line in lines)
