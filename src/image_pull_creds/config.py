"""Settings loaded from the environment and an optional YAML file.

Keys are dotted (``provider.gcp.registries``). The matching environment
variable is the key upper-cased with dots replaced by underscores
(``PROVIDER_GCP_REGISTRIES``). Environment variables win over the file, and
the file wins over the defaults below.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import yaml

from . import constants as C
from .exceptions import ConfigError

LOG_LEVEL = "log.level"
LOG_FORMAT = "log.format"

PROVIDER_TYPE = "provider.type"
PROVIDER_GCP_CREDS_JSON = "provider.gcp.creds_json"
PROVIDER_GCP_REGISTRIES = "provider.gcp.registries"

SERVER_HOST = "server.host"
SERVER_PORT = "server.port"

KUBE_REQUEST_TIMEOUT = "kube.request_timeout"
RECONCILE_LOCK_TIMEOUT = "reconcile.lock_timeout"

DEFAULTS: Dict[str, Any] = {
    LOG_LEVEL: "info",
    LOG_FORMAT: "human",
    PROVIDER_TYPE: "gcp",
    PROVIDER_GCP_CREDS_JSON: "",
    PROVIDER_GCP_REGISTRIES: C.DEFAULT_GCP_REGISTRIES,
    SERVER_HOST: C.DEFAULT_HOST,
    SERVER_PORT: C.DEFAULT_PORT,
    KUBE_REQUEST_TIMEOUT: None,
    RECONCILE_LOCK_TIMEOUT: None,
}

LOG_FORMATS = ("human", "json")


def env_key(key: str) -> str:
    """Map a dotted settings key to its environment variable name."""
    return key.replace(".", "_").upper()


@dataclass(frozen=True)
class Settings:
    """Resolved service settings."""

    log_level: str = "info"
    log_format: str = "human"
    provider_type: str = "gcp"
    gcp_creds_json: bytes = b""
    gcp_registries: List[str] = field(default_factory=lambda: [C.DEFAULT_GCP_REGISTRIES])
    host: str = C.DEFAULT_HOST
    port: int = C.DEFAULT_PORT
    request_timeout: Optional[float] = None
    lock_timeout: Optional[float] = None


def _flatten(data: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flatten nested YAML mappings into dotted keys."""
    flat = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, Mapping) and dotted not in DEFAULTS:
            flat.update(_flatten(value, f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def read_config_file(path: str) -> Dict[str, Any]:
    """Read a YAML settings file into dotted keys."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"error reading config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"error parsing config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"config file {path} must contain a mapping")
    return _flatten(data)


def _split_registries(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = str(value).split(",")
    return [str(item).strip() for item in items if str(item).strip()]


def _optional_float(key: str, value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be a number, got {value!r}") from e


def load_settings(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Resolve settings from defaults, an optional YAML file and the environment."""
    if environ is None:
        environ = os.environ

    values = dict(DEFAULTS)
    if path:
        values.update(read_config_file(path))
    for key in DEFAULTS:
        name = env_key(key)
        if name in environ:
            values[key] = environ[name]

    log_format = str(values[LOG_FORMAT]).lower()
    if log_format not in LOG_FORMATS:
        raise ConfigError(f"{LOG_FORMAT} must be one of {', '.join(LOG_FORMATS)}, got {log_format!r}")

    try:
        port = int(values[SERVER_PORT])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{SERVER_PORT} must be an integer, got {values[SERVER_PORT]!r}") from e

    creds = values[PROVIDER_GCP_CREDS_JSON]
    if creds is None:
        creds = ""
    if isinstance(creds, Mapping):
        # Inline YAML mapping in the config file
        creds = json.dumps(dict(creds))
    if not isinstance(creds, (str, bytes)):
        raise ConfigError(f"{PROVIDER_GCP_CREDS_JSON} must be a JSON string or mapping, got {type(creds).__name__}")

    return Settings(
        log_level=str(values[LOG_LEVEL]).lower(),
        log_format=log_format,
        provider_type=str(values[PROVIDER_TYPE]).lower(),
        gcp_creds_json=creds.encode("utf-8") if isinstance(creds, str) else creds,
        gcp_registries=_split_registries(values[PROVIDER_GCP_REGISTRIES]),
        host=str(values[SERVER_HOST]),
        port=port,
        request_timeout=_optional_float(KUBE_REQUEST_TIMEOUT, values[KUBE_REQUEST_TIMEOUT]),
        lock_timeout=_optional_float(RECONCILE_LOCK_TIMEOUT, values[RECONCILE_LOCK_TIMEOUT]),
    )
