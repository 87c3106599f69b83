"""
# Configuration Management Module

Settings for the EventStore cluster checks, built on **Pydantic Settings**.

## Loading Hierarchy

Higher layers override lower layers:

1. **Environment variables** (highest priority)
2. **`EVENTSTORE_MONITOR_CONFIG_PATH`**: custom config file path from env var
3. **`.esmon` file** in the project root
4. **`.env` file** in the project root
5. **Default values** hardcoded in `Settings` (lowest priority)

If no configuration file is found the checks run in **environment-only mode**,
which is what a Sensu or Nagios agent normally does.

Command-line options always win over these settings; the CLIs only fall back to
`settings` for values that were not passed explicitly.

## Self-Contained Logging

This module does not log. The logging manager reads `settings.LOG_LEVEL`, so
importing the logging manager here would create a cycle.
"""

import os
import socket
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Constants ---
ESMON_FILENAME: str = ".esmon"
DEFAULT_ENV_FILENAME: str = ".env"
CONFIG_ENV_VAR: str = "EVENTSTORE_MONITOR_CONFIG_PATH"
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent.parent

GOSSIP_FORMATS = ("xml", "json")


# --- Config file discovery (no logging) ---
def get_config_path() -> Optional[str]:
    """
    Determines the configuration file path based on a predefined precedence order.

    1.  **Environment Variable**: `EVENTSTORE_MONITOR_CONFIG_PATH` (if set and file exists).
    2.  **Monitor Config**: `.esmon` file in the project root directory.
    3.  **Dotenv Config**: `.env` file in the project root directory.
    4.  **Fallback**: `None`, triggering environment-variable-only mode.

    Returns:
        Optional[str]: The absolute path to the configuration file, or `None` if not found.
    """
    env_path: Optional[str] = os.environ.get(CONFIG_ENV_VAR)
    if env_path and os.path.exists(env_path):
        return env_path
    esmon_path: Path = PROJECT_ROOT / ESMON_FILENAME
    if esmon_path.exists():
        return str(esmon_path)
    env_path_file: Path = PROJECT_ROOT / DEFAULT_ENV_FILENAME
    if env_path_file.exists():
        return str(env_path_file)
    return None


CONFIG_PATH: Optional[str] = get_config_path()
if CONFIG_PATH:
    load_dotenv(dotenv_path=CONFIG_PATH, override=True)


def _default_metric_path() -> str:
    return f"{socket.gethostname()}.eventstore"


class Settings(BaseSettings):
    """
    Settings model for the gossip check and the stream-count metrics.

    **Configuration Groups:**
    *   **Connection**: EventStore address, gossip and HTTP ports, credentials, timeout.
    *   **Discovery**: Whether to resolve the local node and cluster size through DNS.
    *   **Gossip Check**: Expected node count and epoch lag threshold.
    *   **Stream Metrics**: Metric path, instance identifier, stream list source, concurrency.
    *   **Logging**: Log level for the stderr logger.
    """

    model_config = SettingsConfigDict(
        env_file=CONFIG_PATH if CONFIG_PATH else None,
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",
    )

    # Connection
    EVENTSTORE_ADDRESS: str = "localhost"
    EVENTSTORE_GOSSIP_PORT: int = 2113
    EVENTSTORE_HTTP_PORT: int = 2114
    EVENTSTORE_GOSSIP_FORMAT: str = "xml"  # xml, json
    EVENTSTORE_USERNAME: str = "admin"
    EVENTSTORE_PASSWORD: Optional[SecretStr] = None  # Basic auth is only sent when set
    REQUEST_TIMEOUT: float = 10.0  # Seconds

    # Discovery
    CLUSTER_DISCOVER_VIA_DNS: bool = True
    CLUSTER_DNS: str = "localhost"

    # Gossip check
    CLUSTER_EXPECTED_NODES: int = 4
    CLUSTER_EPOCH_THRESHOLD: int = 0  # -1 disables the epoch position check

    # Stream metrics
    METRIC_PATH: str = _default_metric_path()
    EVENTSTORE_IDENTIFIER: Optional[str] = None
    STREAMS: Optional[str] = None  # Comma-separated stream names
    STREAMS_CONFIG_FILE: Optional[str] = None  # JSON settings file with per-check stream lists
    STREAM_MAX_CONCURRENCY: int = 4

    # Logging
    LOG_LEVEL: str = "WARNING"

    @field_validator("CLUSTER_EXPECTED_NODES", "STREAM_MAX_CONCURRENCY", mode="before")
    @classmethod
    def validate_positive_integers(cls, v, info) -> int:
        """
        Validate that count-like settings are at least 1.

        Raises:
            ValueError: If the value is not a positive integer.
        """
        value = int(v)
        if value < 1:
            raise ValueError(f"{info.field_name} must be at least 1, got {value}")
        return value

    @field_validator("EVENTSTORE_GOSSIP_PORT", "EVENTSTORE_HTTP_PORT", mode="before")
    @classmethod
    def validate_port(cls, v, info) -> int:
        """Validate that ports fall within 1-65535."""
        value = int(v)
        if not 1 <= value <= 65535:
            raise ValueError(f"{info.field_name} must be between 1 and 65535, got {value}")
        return value

    @field_validator("REQUEST_TIMEOUT", mode="before")
    @classmethod
    def validate_timeout(cls, v) -> float:
        value = float(v)
        if value <= 0:
            raise ValueError(f"REQUEST_TIMEOUT must be positive, got {value}")
        return value

    @field_validator("EVENTSTORE_GOSSIP_FORMAT", mode="before")
    @classmethod
    def validate_gossip_format(cls, v) -> str:
        value = str(v).lower()
        if value not in GOSSIP_FORMATS:
            raise ValueError(f"EVENTSTORE_GOSSIP_FORMAT must be one of {', '.join(GOSSIP_FORMATS)}, got {v}")
        return value

    @property
    def streams_list(self) -> List[str]:
        """
        Parse the comma-separated `STREAMS` into a list of stream names.

        Empty entries are dropped, so `"a,,b "` yields `["a", "b"]`.
        """
        if not self.STREAMS:
            return []
        return [stream.strip() for stream in self.STREAMS.split(",") if stream.strip()]

    @property
    def eventstore_password(self) -> Optional[str]:
        """Plain-text password, or `None` when basic auth is disabled."""
        if self.EVENTSTORE_PASSWORD is None:
            return None
        return self.EVENTSTORE_PASSWORD.get_secret_value()


# Global settings instance
settings: Settings = Settings()
