from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "recordcat" / "config.yaml"


class ConfigError(ValueError):
    pass


@dataclass
class KafkaSettings:
    profile: str
    bootstrap_servers: str
    security_protocol: str | None = None
    sasl_mechanism: str | None = None
    sasl_username: str | None = None
    sasl_password: str | None = None

    ssl_ca_location: str | None = None
    ssl_certificate_location: str | None = None
    ssl_key_location: str | None = None

    client_id: str = "recordcat"
    timeout_ms: int = 10000

    # Raw librdkafka properties, applied last.
    overrides: Dict[str, str] = field(default_factory=dict)

    def client_conf(self) -> Dict[str, Any]:
        conf: Dict[str, Any] = {
            "bootstrap.servers": self.bootstrap_servers,
            "client.id": self.client_id,
            "socket.timeout.ms": self.timeout_ms,
        }
        optional = {
            "security.protocol": self.security_protocol,
            "sasl.mechanisms": self.sasl_mechanism,
            "sasl.username": self.sasl_username,
            "sasl.password": self.sasl_password,
            "ssl.ca.location": self.ssl_ca_location,
            "ssl.certificate.location": self.ssl_certificate_location,
            "ssl.key.location": self.ssl_key_location,
        }
        conf.update({k: v for k, v in optional.items() if v})
        conf.update(self.overrides)
        return conf

    def kafka_python_conf(self) -> Dict[str, Any]:
        conf: Dict[str, Any] = {
            "bootstrap_servers": self.bootstrap_servers.split(","),
            "client_id": self.client_id,
        }
        optional = {
            "security_protocol": self.security_protocol,
            "sasl_mechanism": self.sasl_mechanism,
            "sasl_plain_username": self.sasl_username,
            "sasl_plain_password": self.sasl_password,
            "ssl_cafile": self.ssl_ca_location,
            "ssl_certfile": self.ssl_certificate_location,
            "ssl_keyfile": self.ssl_key_location,
        }
        conf.update({k: v for k, v in optional.items() if v})
        return conf


# YAML keys map one-to-one onto these settings fields.
_FILE_KEYS = {f.name for f in fields(KafkaSettings)} - {"profile"}

_ENV_KEYS = {
    "bootstrap_servers": "KAFKA_BOOTSTRAP_SERVERS",
    "security_protocol": "KAFKA_SECURITY_PROTOCOL",
    "sasl_mechanism": "KAFKA_SASL_MECHANISM",
    "sasl_username": "KAFKA_SASL_USERNAME",
    "sasl_password": "KAFKA_SASL_PASSWORD",
    "ssl_ca_location": "KAFKA_SSL_CA_LOCATION",
    "ssl_certificate_location": "KAFKA_SSL_CERTIFICATE_LOCATION",
    "ssl_key_location": "KAFKA_SSL_KEY_LOCATION",
    "client_id": "KAFKA_CLIENT_ID",
}


def _load_env(name: str, default: str | None = None, env: Mapping[str, str] | None = None) -> str | None:
    value = (os.environ if env is None else env).get(name)
    if value is None or value == "":
        return default
    return value


def _profile_defaults(profile: str) -> Dict[str, Any]:
    if profile == "docker":
        return {"bootstrap_servers": "kafka:9092"}
    if profile == "cloud":
        return {"bootstrap_servers": "", "security_protocol": "SASL_SSL", "sasl_mechanism": "PLAIN"}
    return {"bootstrap_servers": "localhost:9092"}


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Read settings from a YAML mapping. A missing file is not an error.

    Example:
        bootstrap_servers: broker1:9092,broker2:9092
        security_protocol: SASL_SSL
        timeout_ms: 5000
        overrides:
          fetch.max.bytes: "1048576"
    """
    if not path.exists():
        return {}

    with open(path, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"unable to decode config file {str(path)!r}: {exc}") from exc

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"config file {str(path)!r} must be a mapping at the top level")

    unknown = sorted(str(k) for k in raw if k not in _FILE_KEYS)
    if unknown:
        raise ConfigError(f"unknown keys in config file {str(path)!r}: {', '.join(unknown)}")

    out: Dict[str, Any] = {}
    for key, value in raw.items():
        if key == "timeout_ms":
            if not isinstance(value, int) or value <= 0:
                raise ConfigError("timeout_ms must be a positive integer")
            out[key] = value
        elif key == "overrides":
            if not isinstance(value, dict):
                raise ConfigError("overrides must be a mapping")
            out[key] = {str(k): str(v) for k, v in value.items()}
        elif key == "bootstrap_servers" and isinstance(value, list):
            out[key] = ",".join(str(v).strip() for v in value)
        else:
            out[key] = None if value is None else str(value)
    return out


def parse_overrides(pairs: List[str]) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigError(f"invalid config option {pair!r}, expected key=value")
        overrides[key] = value
    return overrides


def get_kafka_settings(
    *,
    config_path: Optional[Path] = DEFAULT_CONFIG_PATH,
    overrides: Optional[List[str]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> KafkaSettings:
    """
    Resolve settings from, lowest priority first: the profile defaults,
    the YAML config file, KAFKA_* environment variables and ``-X`` overrides.
    """
    profile = _load_env("KAFKA_PROFILE", "local", env) or "local"

    values: Dict[str, Any] = _profile_defaults(profile)
    if config_path is not None:
        values.update(load_config_file(config_path))

    for name, var in _ENV_KEYS.items():
        value = _load_env(var, env=env)
        if value is not None:
            values[name] = value

    if overrides:
        merged = dict(values.get("overrides") or {})
        merged.update(parse_overrides(overrides))
        values["overrides"] = merged

    if not values.get("bootstrap_servers"):
        raise ConfigError(f"KAFKA_BOOTSTRAP_SERVERS must be set for {profile} profile")

    return KafkaSettings(profile=profile, **values)
