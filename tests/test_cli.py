import pytest

from recordcat import cli
from recordcat.kafka_helpers import match_topic_partitions
from recordcat.services.produce import ProduceError


def _no_client(*args, **kwargs):
    raise AssertionError("client must not be built")


@pytest.mark.parametrize("fmt", ["%z", "abc%", "\\q", "%T{strftime[x}"])
def test_bad_format_fails_before_consuming(monkeypatch, capsys, fmt):
    monkeypatch.setattr(cli, "build_consumer", _no_client)
    assert cli.main(["-Z", "consume", "foo", "-f", fmt]) == 1
    assert "[FAIL]" in capsys.readouterr().err


def test_bad_offset_fails_before_consuming(monkeypatch, capsys):
    monkeypatch.setattr(cli, "build_consumer", _no_client)
    assert cli.main(["-Z", "consume", "foo", "-o", "sideways"]) == 1
    assert "offset" in capsys.readouterr().err


def test_group_and_partitions_conflict(monkeypatch):
    monkeypatch.setattr(cli, "build_consumer", _no_client)
    with pytest.raises(SystemExit, match="incompatible"):
        cli.main(["-Z", "consume", "foo", "-g", "grp", "-p", "0,1"])


def test_bad_delimiter_fails_before_producing(monkeypatch, capsys):
    monkeypatch.setattr(cli, "build_producer", _no_client)
    assert cli.main(["-Z", "produce", "foo", "-D", "\\x4"]) == 1
    assert "malformed escape" in capsys.readouterr().err


def test_match_topic_partitions():
    available = {"orders": [0, 1, 2], "order-audit": [0], "payments": [0, 1]}
    assert match_topic_partitions(available, ["orders", "missing"]) == {"orders": [0, 1, 2]}
    assert match_topic_partitions(available, ["^order"], regex=True) == {
        "order-audit": [0],
        "orders": [0, 1, 2],
    }
    assert match_topic_partitions(available, ["orders", "payments"], partitions=[1]) == {
        "orders": [1],
        "payments": [1],
    }
    assert match_topic_partitions(available, ["payments"], partitions=[7]) == {}


def test_produce_failure_reported_on_stderr(monkeypatch, capsys):
    def failing_produce(*args, **kwargs):
        raise ProduceError("unable to produce record: broker down")

    monkeypatch.setattr(cli, "build_producer", lambda settings: object())
    monkeypatch.setattr(cli, "run_produce", failing_produce)
    assert cli.main(["-Z", "produce", "foo"]) == 1
    assert "[FAIL] unable to produce record: broker down" in capsys.readouterr().err


def test_consume_help_states_utc():
    assert "formatted in UTC" in cli.CONSUME_HELP
