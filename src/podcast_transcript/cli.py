"""Command-line interface for podcast_transcript."""

from __future__ import annotations

import argparse
import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, cast, Dict, Iterator, List, Optional, Sequence, TYPE_CHECKING
from urllib.parse import urlparse

from pydantic import ValidationError

from . import __version__, config, identifiers, models, progress, workflow

if TYPE_CHECKING:  # pragma: no cover - typing only
    import tqdm

_LOGGER = logging.getLogger(__name__)

# Progress bar constants
TQDM_NCOLS = 80
TQDM_MIN_INTERVAL = 0.5
TQDM_MIN_ITERS = 1
BYTES_PER_KB = 1024

EXIT_OK = 0
EXIT_FAILURE = 1


class _TqdmProgress:
    """Simple adapter that exposes tqdm's update interface."""

    def __init__(self, bar: "tqdm.tqdm") -> None:
        self._bar = bar

    def update(self, advance: int) -> None:
        self._bar.update(advance)


@contextmanager
def _tqdm_progress(total: Optional[int], description: str) -> Iterator[_TqdmProgress]:
    """Create a tqdm progress context matching the shared progress API."""
    from tqdm import tqdm

    kwargs: Dict[str, Any] = {"desc": description}
    if total is None:
        kwargs.update(
            total=None,
            unit="",
            leave=False,
            miniters=TQDM_MIN_ITERS,
            mininterval=TQDM_MIN_INTERVAL,
            bar_format="{desc}: {elapsed}",
            ncols=TQDM_NCOLS,
            dynamic_ncols=False,
        )
    else:
        kwargs.update(
            total=total,
            unit="B",
            unit_scale=True,
            unit_divisor=BYTES_PER_KB,
            leave=False,
        )

    with tqdm(**kwargs) as bar:
        yield _TqdmProgress(bar)


def _validate_episode_url(url_value: str, allowed_hosts: Sequence[str], errors: List[str]) -> None:
    """Validate the episode URL format and host.

    Args:
        url_value: Episode URL string
        allowed_hosts: Hosts accepted as episode URLs
        errors: List to append validation errors to
    """
    if not url_value:
        errors.append("Episode URL is required")
        return

    parsed_obj = urlparse(url_value)
    if parsed_obj.scheme not in ("http", "https"):
        errors.append(f"Episode URL must be http or https: {url_value}")
        return
    if not parsed_obj.netloc:
        errors.append(f"Episode URL must have a valid hostname: {url_value}")
        return
    if not identifiers.is_allowed_host(parsed_obj.hostname or "", allowed_hosts):
        errors.append(
            f"Episode URL host must be one of {', '.join(allowed_hosts)}: {parsed_obj.hostname}"
        )


def validate_args(args: argparse.Namespace) -> None:
    """Validate parsed CLI arguments and raise ValueError when invalid."""
    errors: List[str] = []

    allowed_hosts = getattr(args, "allowed_hosts", None) or list(config.DEFAULT_ALLOWED_HOSTS)
    _validate_episode_url((args.url or "").strip(), allowed_hosts, errors)

    for option, value in (
        ("--metadata-timeout", args.metadata_timeout),
        ("--transcript-timeout", args.transcript_timeout),
        ("--api-timeout", args.api_timeout),
    ):
        if value is not None and value <= 0:
            errors.append(f"{option} must be positive, got: {value}")

    if args.proxy:
        for endpoint in args.proxy:
            if endpoint and urlparse(endpoint).scheme not in ("http", "https"):
                errors.append(f"--proxy must be an http or https prefix, got: {endpoint}")

    if errors:
        raise ValueError("Invalid input parameters:\n  " + "\n  ".join(errors))


def _add_arguments(parser: argparse.ArgumentParser) -> None:
    """Add all arguments to parser.

    Args:
        parser: Argument parser to add arguments to
    """
    parser.add_argument("--config", default=None, help="Path to configuration file (JSON or YAML)")
    parser.add_argument("url", nargs="?", default=None, help="Podcast episode URL")
    parser.add_argument("--user-agent", default=config.DEFAULT_USER_AGENT, help="User-Agent header")
    parser.add_argument(
        "--metadata-timeout",
        type=int,
        default=config.DEFAULT_METADATA_TIMEOUT_SECONDS,
        help="Timeout in seconds for catalog lookups and feed fetches",
    )
    parser.add_argument(
        "--transcript-timeout",
        type=int,
        default=config.DEFAULT_TRANSCRIPT_TIMEOUT_SECONDS,
        help="Timeout in seconds for transcript downloads",
    )
    parser.add_argument(
        "--api-timeout",
        type=int,
        default=config.DEFAULT_API_TIMEOUT_SECONDS,
        help="Timeout in seconds for the vendor transcript API",
    )
    parser.add_argument(
        "--proxy",
        nargs="+",
        default=None,
        help="Fetch endpoint prefixes tried in order; use '' for a direct request",
    )
    parser.add_argument(
        "--direct-only",
        action="store_true",
        help="Only make direct requests (no proxy fallback)",
    )
    parser.add_argument(
        "--prefer-type",
        nargs="+",
        default=None,
        help="Preferred transcript types or extensions, most preferred first",
    )
    parser.add_argument(
        "--no-vendor-api",
        dest="use_vendor_api",
        action="store_false",
        default=True,
        help="Do not use the vendor transcript API even if a token is configured",
    )
    parser.add_argument(
        "--output", default=None, help="Write the JSON result to this file instead of stdout"
    )
    parser.add_argument("--version", action="store_true", help="Show program version and exit")
    parser.add_argument(
        "--log-file",
        default=None,
        help="Path to log file (logs will be written to both console and file)",
    )
    parser.add_argument(
        "--log-level",
        default=config.DEFAULT_LOG_LEVEL,
        type=str.upper,
        help="Logging level (e.g., DEBUG, INFO)",
    )


def _config_keys() -> set:
    keys = set()
    for name, field in config.Config.model_fields.items():
        keys.add(name)
        if field.alias:
            keys.add(field.alias)
    return keys


def _load_and_merge_config(
    parser: argparse.ArgumentParser, config_path: str, argv: Optional[Sequence[str]]
) -> argparse.Namespace:
    """Load configuration file and merge with CLI arguments.

    Values from the file become parser defaults, so explicit CLI options win.

    Args:
        parser: Argument parser
        config_path: Path to configuration file
        argv: Command-line arguments

    Returns:
        Parsed arguments with config merged

    Raises:
        ValueError: If config is invalid
    """
    config_data = config.load_config_file(config_path)
    unknown_keys = [key for key in config_data.keys() if key not in _config_keys()]
    if unknown_keys:
        raise ValueError("Unknown config option(s): " + ", ".join(sorted(unknown_keys)))

    try:
        config_model = config.Config.model_validate(config_data)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc

    defaults_updates: Dict[str, Any] = config_model.model_dump(
        exclude_none=True,
        by_alias=True,
    )
    parser.set_defaults(**defaults_updates)
    return parser.parse_args(argv)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments, optionally merging configuration file defaults."""
    parser = argparse.ArgumentParser(
        description="Resolve a podcast episode URL into its transcript and metadata (JSON)."
    )
    _add_arguments(parser)

    initial_args, _ = parser.parse_known_args(argv)

    if initial_args.version:
        print(f"podcast_transcript {__version__}")
        raise SystemExit(0)

    if initial_args.config:
        args = _load_and_merge_config(parser, initial_args.config, argv)
    else:
        args = parser.parse_args(argv)

    validate_args(args)
    return args


def _build_config(args: argparse.Namespace) -> config.Config:
    """Materialize a Config object from already-validated CLI arguments."""
    payload: Dict[str, Any] = {
        "user_agent": args.user_agent,
        "metadata_timeout": args.metadata_timeout,
        "transcript_timeout": args.transcript_timeout,
        "api_timeout": args.api_timeout,
        "prefer_types": args.prefer_type,
        "use_vendor_api": args.use_vendor_api,
        "log_level": args.log_level,
        "log_file": args.log_file,
    }
    if args.direct_only:
        payload["fetch_endpoints"] = [config.DIRECT_ENDPOINT]
    elif args.proxy:
        payload["fetch_endpoints"] = args.proxy
    # File-only settings arrive as extra namespace attributes
    for key in (
        "allowed_hosts",
        "catalog_lookup_url",
        "apple_bearer_token",
        "vendor_api_base",
        "vendor_storefront",
        "vendor_language",
    ):
        value = getattr(args, key, None)
        if value is not None:
            payload[key] = value
    # Pydantic's model_validate returns the correct type, but mypy needs help
    return cast(config.Config, config.Config.model_validate(payload))


def _log_configuration(cfg: config.Config, logger: logging.Logger) -> None:
    """Log configuration values at debug level (the bearer token is never logged)."""
    logger.debug("Configuration:")
    logger.debug("  Metadata Timeout: %ss", cfg.metadata_timeout)
    logger.debug("  Transcript Timeout: %ss", cfg.transcript_timeout)
    logger.debug("  API Timeout: %ss", cfg.api_timeout)
    logger.debug(
        "  Fetch Endpoints: %s",
        ", ".join(e or "direct" for e in cfg.fetch_endpoints),
    )
    logger.debug("  Prefer Types: %s", cfg.prefer_types if cfg.prefer_types else "none")
    logger.debug(
        "  Vendor API: %s",
        "enabled" if cfg.vendor_api_enabled else "disabled",
    )
    logger.debug("  Log File: %s", cfg.log_file or "console only")


def _write_outcome(outcome: models.ResolutionOutcome, output: Optional[str]) -> None:
    payload = json.dumps(outcome.to_dict(), indent=2, ensure_ascii=False)
    if output:
        out_path = Path(output).expanduser()
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(payload + "\n", encoding="utf-8")
        _LOGGER.info("Wrote result to %s", out_path)
    else:
        print(payload)


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    apply_log_level_fn: Optional[Callable[[str, Optional[str]], None]] = None,
    resolve_fn: Optional[Callable[[str, config.Config], models.ResolutionOutcome]] = None,
    logger: Optional[logging.Logger] = None,
) -> int:
    """Entry point for the CLI; returns an exit status code."""
    progress.set_progress_factory(_tqdm_progress)
    log = logger or _LOGGER
    if apply_log_level_fn is None:
        apply_log_level_fn = workflow.apply_log_level
    if resolve_fn is None:
        resolve_fn = workflow.resolve_episode

    try:
        args = parse_args(argv)
    except ValueError as exc:
        log.error("Error: %s", exc)
        return EXIT_FAILURE

    try:
        cfg = _build_config(args)
    except ValidationError as exc:
        log.error("Invalid configuration: %s", exc)
        return EXIT_FAILURE

    apply_log_level_fn(cfg.log_level, cfg.log_file)
    _log_configuration(cfg, log)

    outcome = resolve_fn(args.url.strip(), cfg)

    try:
        _write_outcome(outcome, args.output)
    except OSError as exc:
        log.error("Failed to write result: %s", exc)
        return EXIT_FAILURE

    if outcome.status is models.ResolutionStatus.FAILURE:
        log.error("Failed to fetch transcript: %s", outcome.message)
        return EXIT_FAILURE
    if outcome.status is models.ResolutionStatus.NO_TRANSCRIPT:
        log.warning("%s", outcome.message)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry
    raise SystemExit(main())
