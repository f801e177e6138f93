from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
    ValidationInfo,
)

from . import config_constants


# Load .env file if it exists (APPLE_BEARER_TOKEN, LOG_FILE).
# SKIP .env loading in test environments - tests should use Config objects and
# environment variables directly, never rely on .env files
def _is_test_environment() -> bool:
    """Check if we're running in a test environment."""
    import sys

    if "pytest" in sys.modules or "PYTEST_CURRENT_TEST" in os.environ:
        return True
    if os.environ.get("TESTING", "").lower() in ("1", "true", "yes"):
        return True
    return False


if not _is_test_environment():
    try:
        load_dotenv(override=False)
    except (PermissionError, OSError):
        # If loading fails, continue without .env file
        pass

DEFAULT_LOG_LEVEL = config_constants.DEFAULT_LOG_LEVEL
DEFAULT_USER_AGENT = config_constants.DEFAULT_USER_AGENT
DEFAULT_METADATA_TIMEOUT_SECONDS = config_constants.DEFAULT_METADATA_TIMEOUT_SECONDS
DEFAULT_TRANSCRIPT_TIMEOUT_SECONDS = config_constants.DEFAULT_TRANSCRIPT_TIMEOUT_SECONDS
DEFAULT_API_TIMEOUT_SECONDS = config_constants.DEFAULT_API_TIMEOUT_SECONDS
DIRECT_ENDPOINT = config_constants.DIRECT_ENDPOINT
DEFAULT_FETCH_ENDPOINTS = config_constants.DEFAULT_FETCH_ENDPOINTS
DEFAULT_ALLOWED_HOSTS = config_constants.DEFAULT_ALLOWED_HOSTS
MIN_TIMEOUT_SECONDS = config_constants.MIN_TIMEOUT_SECONDS
VALID_LOG_LEVELS = config_constants.VALID_LOG_LEVELS


class Config(BaseModel):
    """Configuration model for episode transcript resolution.

    The configuration is organized into several categories:

    - **HTTP**: User agent, per-purpose timeouts and the fetch endpoint rotation
    - **Input**: Hosts accepted as episode URLs
    - **Catalog**: Public lookup service used to find the RSS feed
    - **Vendor API**: Optional authenticated transcript API
    - **Transcripts**: Preferred transcript types when a feed lists several
    - **Logging**: Log levels and output destinations

    The model is immutable (frozen) after creation.

    Attributes:
        user_agent: HTTP User-Agent header for catalog, feed and transcript requests.
        metadata_timeout: Timeout in seconds for catalog lookups and feed fetches.
        transcript_timeout: Timeout in seconds for transcript payload downloads.
        api_timeout: Timeout in seconds for the vendor API metadata request.
        fetch_endpoints: Ordered endpoint prefixes tried in rotation. An empty string
            means a direct request; anything else is a proxy prefix that receives the
            percent-encoded target URL.
        allowed_hosts: Hosts accepted in episode URLs (subdomains match too).
        prefer_types: Preferred transcript MIME types or extensions (e.g., ["srt"]).
        catalog_lookup_url: Lookup endpoint of the public podcast catalog.
        apple_bearer_token: Bearer token for the vendor transcript API (loaded from
            APPLE_BEARER_TOKEN when not provided). Never logged.
        use_vendor_api: Try the vendor API before the RSS feed when a token is set.
        vendor_api_base: Base URL of the vendor API.
        vendor_storefront: Storefront segment of vendor API paths.
        vendor_language: Language parameter sent to the vendor API.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional log file path for file output.

    Example:
        >>> from podcast_transcript import Config
        >>> cfg = Config(metadata_timeout=5, fetch_endpoints=[""])

    Example:
        Load configuration from file:

        >>> from podcast_transcript import Config, load_config_file
        >>> cfg = Config(**load_config_file("config.yaml"))
    """

    user_agent: str = Field(default=DEFAULT_USER_AGENT, alias="user_agent")
    metadata_timeout: int = Field(
        default=DEFAULT_METADATA_TIMEOUT_SECONDS, alias="metadata_timeout"
    )
    transcript_timeout: int = Field(
        default=DEFAULT_TRANSCRIPT_TIMEOUT_SECONDS, alias="transcript_timeout"
    )
    api_timeout: int = Field(default=DEFAULT_API_TIMEOUT_SECONDS, alias="api_timeout")
    fetch_endpoints: List[str] = Field(
        default_factory=lambda: list(DEFAULT_FETCH_ENDPOINTS),
        alias="proxy",
        description="Endpoint prefixes tried in order; '' is a direct request.",
    )
    allowed_hosts: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_HOSTS), alias="allowed_hosts"
    )
    prefer_types: List[str] = Field(default_factory=list, alias="prefer_type")
    catalog_lookup_url: str = Field(
        default=config_constants.DEFAULT_CATALOG_LOOKUP_URL, alias="catalog_lookup_url"
    )
    apple_bearer_token: Optional[str] = Field(
        default=None,
        alias="apple_bearer_token",
        description="Vendor API bearer token. Can be set via APPLE_BEARER_TOKEN "
        "environment variable.",
        repr=False,
    )
    use_vendor_api: bool = Field(default=True, alias="use_vendor_api")
    vendor_api_base: str = Field(
        default=config_constants.DEFAULT_VENDOR_API_BASE, alias="vendor_api_base"
    )
    vendor_storefront: str = Field(
        default=config_constants.DEFAULT_VENDOR_STOREFRONT, alias="vendor_storefront"
    )
    vendor_language: str = Field(
        default=config_constants.DEFAULT_VENDOR_LANGUAGE, alias="vendor_language"
    )
    log_level: str = Field(default=DEFAULT_LOG_LEVEL, alias="log_level")
    log_file: Optional[str] = Field(
        default=None,
        alias="log_file",
        description="Path to log file (logs will be written to both console and file). "
        "Can be set via LOG_FILE environment variable.",
    )

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _load_from_environment(cls, data: Any) -> Any:
        """Fill the bearer token and log file from environment variables when unset."""
        if not isinstance(data, dict):
            return data

        # APPLE_BEARER_TOKEN: Only set from env if not in config
        if data.get("apple_bearer_token") is None:
            env_token = os.getenv("APPLE_BEARER_TOKEN")
            if env_token and env_token.strip():
                data = {**data, "apple_bearer_token": env_token.strip()}

        # LOG_FILE: Only set from env if not in config
        if data.get("log_file") is None:
            env_log_file = os.getenv("LOG_FILE")
            if env_log_file and env_log_file.strip():
                data = {**data, "log_file": env_log_file.strip()}

        return data

    @field_validator("user_agent", mode="before")
    @classmethod
    def _coerce_user_agent(cls, value: Any) -> str:
        if value is None:
            return DEFAULT_USER_AGENT
        value_str = str(value).strip()
        if not value_str:
            return DEFAULT_USER_AGENT
        return value_str

    @field_validator("metadata_timeout", "transcript_timeout", "api_timeout", mode="before")
    @classmethod
    def _ensure_timeout(cls, value: Any, info: ValidationInfo) -> int:
        defaults = {
            "metadata_timeout": DEFAULT_METADATA_TIMEOUT_SECONDS,
            "transcript_timeout": DEFAULT_TRANSCRIPT_TIMEOUT_SECONDS,
            "api_timeout": DEFAULT_API_TIMEOUT_SECONDS,
        }
        if value is None or value == "":
            return defaults[info.field_name]
        try:
            timeout = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{info.field_name} must be an integer") from exc
        return max(MIN_TIMEOUT_SECONDS, timeout)

    @field_validator("fetch_endpoints", mode="before")
    @classmethod
    def _coerce_fetch_endpoints(cls, value: Any) -> List[str]:
        if value is None:
            return list(DEFAULT_FETCH_ENDPOINTS)
        if isinstance(value, str):
            value = [value]
        endpoints = []
        for endpoint in value:
            endpoint_str = "" if endpoint is None else str(endpoint).strip()
            if endpoint_str not in endpoints:
                endpoints.append(endpoint_str)
        return endpoints

    @field_validator("fetch_endpoints", mode="after")
    @classmethod
    def _validate_fetch_endpoints(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("fetch_endpoints must contain at least one endpoint")
        for endpoint in value:
            if endpoint and not endpoint.lower().startswith(("http://", "https://")):
                raise ValueError(f"fetch endpoint must be http or https: {endpoint}")
        return value

    @field_validator("allowed_hosts", mode="before")
    @classmethod
    def _coerce_allowed_hosts(cls, value: Any) -> List[str]:
        if value is None:
            return list(DEFAULT_ALLOWED_HOSTS)
        if isinstance(value, str):
            value = value.split(",")
        hosts = [str(h).strip().lower() for h in value if str(h).strip()]
        if not hosts:
            raise ValueError("allowed_hosts must contain at least one host")
        return hosts

    @field_validator("prefer_types", mode="before")
    @classmethod
    def _coerce_prefer_types(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        return [str(v).strip() for v in value if str(v).strip()]

    @field_validator("apple_bearer_token", mode="before")
    @classmethod
    def _strip_bearer_token(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value).strip() or None

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Any) -> str:
        """Normalize log level value."""
        if value is None:
            return DEFAULT_LOG_LEVEL
        return str(value).strip().upper() or DEFAULT_LOG_LEVEL

    @field_validator("log_level", mode="after")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        """Validate log level is one of the valid levels."""
        if value not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {VALID_LOG_LEVELS}, got: {value}")
        return value

    @field_validator("log_file", mode="before")
    @classmethod
    def _strip_log_file(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value).strip() or None

    @property
    def vendor_api_enabled(self) -> bool:
        """True when the vendor API should be attempted."""
        return self.use_vendor_api and bool(self.apple_bearer_token)


def load_config_file(path: str) -> Dict[str, Any]:
    """Load configuration from a JSON or YAML file.

    The file format is auto-detected from the file extension (`.json`, `.yaml`, or
    `.yml`). The returned dictionary can be unpacked into the `Config` constructor.

    Args:
        path: Path to configuration file. Supports tilde expansion.

    Returns:
        Dict[str, Any]: Configuration values keyed by `Config` field names or aliases.

    Raises:
        ValueError: If the path is empty or missing, the format is unsupported, or
            the content cannot be parsed into a mapping.

    Example:
        >>> cfg = Config(**load_config_file("config.yaml"))

    Supported Formats:
        **YAML** (`.yaml`, `.yml`):

            metadata_timeout: 10
            proxy:
              - ""
              - "https://corsproxy.io/?"
            prefer_type: [srt]
    """
    if not path:
        raise ValueError("Config path cannot be empty")

    cfg_path = Path(path).expanduser()
    try:
        resolved = cfg_path.resolve()
    except (OSError, RuntimeError) as exc:
        raise ValueError(f"Invalid config path: {path} ({exc})") from exc

    if not resolved.exists():
        raise ValueError(f"Config file not found: {resolved}")

    suffix = resolved.suffix.lower()
    try:
        text = resolved.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Failed to read config file {resolved}: {exc}") from exc

    if suffix == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON config file {resolved}: {exc}") from exc
    elif suffix in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML config file {resolved}: {exc}") from exc
    else:
        raise ValueError(f"Unsupported config file type: {resolved.suffix}")

    if not isinstance(data, dict):
        raise ValueError("Config file must contain a mapping/object at the top level")

    return data
