import pytest

from recordcat.config import ConfigError, get_kafka_settings, load_config_file, parse_overrides


def test_local_defaults():
    settings = get_kafka_settings(config_path=None, env={})
    assert settings.profile == "local"
    assert settings.client_conf()["bootstrap.servers"] == "localhost:9092"
    assert "security.protocol" not in settings.client_conf()


def test_cloud_requires_bootstrap():
    with pytest.raises(ConfigError, match="KAFKA_BOOTSTRAP_SERVERS"):
        get_kafka_settings(config_path=None, env={"KAFKA_PROFILE": "cloud"})


def test_cloud_profile_conf():
    env = {
        "KAFKA_PROFILE": "cloud",
        "KAFKA_BOOTSTRAP_SERVERS": "pkc-1:9092",
        "KAFKA_SASL_USERNAME": "key",
        "KAFKA_SASL_PASSWORD": "secret",
    }
    conf = get_kafka_settings(config_path=None, env=env).client_conf()
    assert conf["security.protocol"] == "SASL_SSL"
    assert conf["sasl.mechanisms"] == "PLAIN"
    assert conf["sasl.username"] == "key"
    assert conf["sasl.password"] == "secret"


def test_layering_file_env_overrides(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "bootstrap_servers:\n  - a:9092\n  - b:9092\n"
        "client_id: from-file\n"
        "timeout_ms: 2500\n"
        "overrides:\n  fetch.max.bytes: 1024\n",
        encoding="utf-8",
    )
    settings = get_kafka_settings(
        config_path=path,
        overrides=["fetch.max.bytes=2048", "linger.ms=5"],
        env={"KAFKA_CLIENT_ID": "from-env"},
    )
    conf = settings.client_conf()
    assert conf["bootstrap.servers"] == "a:9092,b:9092"
    assert conf["client.id"] == "from-env"
    assert conf["socket.timeout.ms"] == 2500
    assert conf["fetch.max.bytes"] == "2048"
    assert conf["linger.ms"] == "5"


def test_missing_file_is_ignored(tmp_path):
    assert load_config_file(tmp_path / "nope.yaml") == {}


def test_unknown_file_keys(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("seed_brokers: [x]\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="unknown keys"):
        load_config_file(path)


def test_file_must_be_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config_file(path)


def test_bad_override():
    with pytest.raises(ConfigError):
        parse_overrides(["novalue"])


def test_kafka_python_conf():
    settings = get_kafka_settings(
        config_path=None,
        env={"KAFKA_BOOTSTRAP_SERVERS": "a:1,b:2", "KAFKA_SSL_CA_LOCATION": "/ca.pem"},
    )
    conf = settings.kafka_python_conf()
    assert conf["bootstrap_servers"] == ["a:1", "b:2"]
    assert conf["ssl_cafile"] == "/ca.pem"
