
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

DEFAULT_COLLECTOR_URL = "http://localhost:8000"
DEFAULT_RETRY_INTERVAL_SECONDS = 5.0
DEFAULT_MAX_RETRIES = 10
DEFAULT_RECENT_CAPACITY = 5
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10.0
DEFAULT_APP_VERSION = "1.0.0"

CONFIG_FILE = Path("_issuerelay/config.json")


@dataclass(frozen=True)
class ClientConfig:
  """
  Configuration for the issue report client.

  Values are sourced from explicit parameters, environment variables and
  the project config file, with sensible defaults.
  """

  collector_url: str = DEFAULT_COLLECTOR_URL
  app_version: str = DEFAULT_APP_VERSION
  storage_dir: Path = Path.home() / ".issuerelay"
  retry_interval_seconds: float = DEFAULT_RETRY_INTERVAL_SECONDS
  max_retries: int = DEFAULT_MAX_RETRIES
  recent_capacity: int = DEFAULT_RECENT_CAPACITY
  request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
  enabled: bool = True
  chaos_mode: bool = False

  @classmethod
  def from_env(cls) -> "ClientConfig":
    """
    Load configuration from environment variables.

    Optional:
      - ISSUERELAY_COLLECTOR_URL (default: http://localhost:8000)
      - ISSUERELAY_APP_VERSION
      - ISSUERELAY_STORAGE_DIR (default: ~/.issuerelay)
      - ISSUERELAY_RETRY_INTERVAL, ISSUERELAY_MAX_RETRIES,
        ISSUERELAY_RECENT_CAPACITY, ISSUERELAY_REQUEST_TIMEOUT
      - ISSUERELAY_ENABLED, ISSUERELAY_CHAOS_MODE
    """
    return cls.from_params_or_env()

  @classmethod
  def from_params_or_env(
    cls,
    collector_url: Optional[str] = None,
    app_version: Optional[str] = None,
    storage_dir: Optional[str | Path] = None,
    retry_interval_seconds: Optional[float] = None,
    max_retries: Optional[int] = None,
    recent_capacity: Optional[int] = None,
  ) -> "ClientConfig":
    """
    Build configuration from explicit parameters, falling back to environment variables.

    Priority:
      1. Explicit function arguments
      2. Environment variables
      3. Config file (_issuerelay/config.json)
      4. Defaults
    """
    file_config = _read_config_file()

    def pick(explicit: Any, env_name: str, *file_keys: str) -> Any:
      if explicit is not None:
        return explicit
      raw = os.getenv(env_name)
      if raw is not None and raw.strip():
        return raw
      for key in file_keys:
        if file_config.get(key) is not None:
          return file_config[key]
      return None

    url = pick(collector_url, "ISSUERELAY_COLLECTOR_URL", "collector_url", "collectorUrl")
    url = str(url or DEFAULT_COLLECTOR_URL).rstrip("/")
    _validate_collector_url(url)

    version = pick(app_version, "ISSUERELAY_APP_VERSION", "app_version", "appVersion")
    store_dir = pick(storage_dir, "ISSUERELAY_STORAGE_DIR", "storage_dir", "storageDir")

    return cls(
      collector_url=url,
      app_version=str(version or DEFAULT_APP_VERSION),
      storage_dir=Path(store_dir).expanduser() if store_dir else Path.home() / ".issuerelay",
      retry_interval_seconds=_as_positive(
        pick(retry_interval_seconds, "ISSUERELAY_RETRY_INTERVAL", "retry_interval_seconds", "retryIntervalSeconds"),
        float,
        DEFAULT_RETRY_INTERVAL_SECONDS,
      ),
      max_retries=_as_positive(
        pick(max_retries, "ISSUERELAY_MAX_RETRIES", "max_retries", "maxRetries"),
        int,
        DEFAULT_MAX_RETRIES,
      ),
      recent_capacity=_as_positive(
        pick(recent_capacity, "ISSUERELAY_RECENT_CAPACITY", "recent_capacity", "recentCapacity"),
        int,
        DEFAULT_RECENT_CAPACITY,
      ),
      request_timeout_seconds=_as_positive(
        pick(None, "ISSUERELAY_REQUEST_TIMEOUT", "request_timeout_seconds", "requestTimeoutSeconds"),
        float,
        DEFAULT_REQUEST_TIMEOUT_SECONDS,
      ),
      enabled=_get_flag("ISSUERELAY_ENABLED", file_config.get("enabled"), default=True),
      chaos_mode=_get_flag("ISSUERELAY_CHAOS_MODE", file_config.get("chaos_mode", file_config.get("chaosMode")), default=False),
    )

  @property
  def reports_url(self) -> str:
    return f"{self.collector_url}/reports"


def _read_config_file() -> Dict[str, Any]:
  if not CONFIG_FILE.exists():
    return {}
  try:
    data = json.loads(CONFIG_FILE.read_text())
  except (OSError, ValueError):
    return {}
  if not isinstance(data, dict):
    return {}
  # Accept both a flat file and one nested under an "issuerelay" section.
  section = data.get("issuerelay")
  if isinstance(section, dict):
    return section
  return data


def _validate_collector_url(url: str) -> None:
  parsed = urlparse(url)
  if parsed.scheme not in ("http", "https") or not parsed.netloc:
    raise ValueError(
      f"Invalid ISSUERELAY_COLLECTOR_URL '{url}'. "
      "Expected an http(s) URL like http://localhost:8000."
    )


def _as_positive(raw: Any, kind: type, default: Any) -> Any:
  if raw is None:
    return default
  try:
    value = kind(raw)
  except (TypeError, ValueError):
    return default
  return value if value > 0 else default


def _get_flag(env_name: str, file_value: Any, default: bool) -> bool:
  """
  Read a boolean flag from the environment, then the config file.

  Accepts common truthy/falsey strings. An unrecognised value is treated as
  disabled.
  """
  raw = os.getenv(env_name)
  if raw is None:
    if isinstance(file_value, bool):
      return file_value
    return default

  value = raw.strip().lower()
  if value in ("1", "true", "yes", "on"):
    return True
  if value in ("0", "false", "no", "off"):
    return False

  return False
