"""HTTP session management and endpoint-rotating fetch helpers for podcast_transcript."""

from __future__ import annotations

import atexit
import logging
import threading
from typing import Callable, cast, List, Mapping, Optional, Sequence, Tuple, TypeVar
from urllib.parse import quote

import requests
from requests.utils import requote_uri

from . import config, progress
from .exceptions import EndpointsExhaustedError
from .progress import ProgressReporter

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Track if we've suppressed urllib3 logs (lazy initialization)
_urllib3_logs_suppressed = False


def _suppress_urllib3_debug_logs() -> None:
    """Suppress verbose urllib3 debug logs when root logger is DEBUG.

    Called lazily when the downloader is first used, so the root logger is already
    configured. Our own debug logs stay visible.
    """
    global _urllib3_logs_suppressed
    if _urllib3_logs_suppressed:
        return

    root_logger = logging.getLogger()
    root_level = root_logger.level if root_logger.level else logging.INFO
    if root_level <= logging.DEBUG:
        for logger_name in ("urllib3", "urllib3.connectionpool", "urllib3.connection"):
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    _urllib3_logs_suppressed = True


DOWNLOAD_CHUNK_SIZE = 1024 * 64

_THREAD_LOCAL = threading.local()
_SESSION_REGISTRY: List[requests.Session] = []
_SESSION_REGISTRY_LOCK = threading.Lock()


class EndpointRotation:
    """Ordered fetch endpoints plus the index of the one to try first.

    An empty endpoint is a direct request. Any other endpoint is a proxy prefix
    that receives the percent-encoded target URL. The preferred index only
    reorders attempts; it never decides whether a fetch succeeds, so sharing one
    rotation between requests is harmless.

    Example:
        >>> rotation = EndpointRotation(["", "https://corsproxy.io/?"])
        >>> [i for i, _ in rotation.attempt_order()]
        [0, 1]
        >>> rotation.prefer(1)
        >>> [i for i, _ in rotation.attempt_order()]
        [1, 0]
    """

    def __init__(self, endpoints: Sequence[str], start_index: int = 0) -> None:
        if not endpoints:
            raise ValueError("EndpointRotation requires at least one endpoint")
        self._endpoints: Tuple[str, ...] = tuple(endpoints)
        self._preferred = start_index % len(self._endpoints)

    @classmethod
    def from_config(cls, cfg: config.Config) -> "EndpointRotation":
        return cls(cfg.fetch_endpoints)

    @property
    def endpoints(self) -> Tuple[str, ...]:
        return self._endpoints

    @property
    def preferred_index(self) -> int:
        return self._preferred

    def attempt_order(self) -> List[Tuple[int, str]]:
        """Return (index, endpoint) pairs starting at the preferred endpoint."""
        count = len(self._endpoints)
        return [
            ((self._preferred + offset) % count, self._endpoints[(self._preferred + offset) % count])
            for offset in range(count)
        ]

    def prefer(self, index: int) -> None:
        """Make the endpoint at index the first one tried next time."""
        self._preferred = index % len(self._endpoints)

    def __repr__(self) -> str:
        return f"EndpointRotation(endpoints={len(self._endpoints)}, preferred={self._preferred})"


def normalize_url(url: str) -> str:
    """Normalize URLs while preserving already-encoded segments."""
    normalized = requote_uri(url)
    if normalized != url:
        logger.debug("Normalized URL %s -> %s", url, normalized)
    return cast(str, normalized)


def build_request_url(endpoint: str, url: str) -> str:
    """Return the URL to request for url through endpoint."""
    if not endpoint:
        return normalize_url(url)
    return f"{endpoint}{quote(url, safe='')}"


def _get_thread_request_session() -> requests.Session:
    _suppress_urllib3_debug_logs()

    session = getattr(_THREAD_LOCAL, "session", None)
    if session is None:
        session = requests.Session()
        setattr(_THREAD_LOCAL, "session", session)
        with _SESSION_REGISTRY_LOCK:
            _SESSION_REGISTRY.append(session)
        logger.debug("Created new thread-local HTTP session %s", hex(id(session)))
    return session


def _close_all_sessions() -> None:
    with _SESSION_REGISTRY_LOCK:
        for session in _SESSION_REGISTRY:
            try:
                session.close()
            # Best-effort cleanup; ignore shutdown errors
            except Exception:  # pragma: no cover  # nosec B110
                pass
        _SESSION_REGISTRY.clear()


atexit.register(_close_all_sessions)


def http_get(
    url: str,
    user_agent: str,
    timeout: int,
    *,
    headers: Optional[Mapping[str, str]] = None,
    stream: bool = False,
    raise_for_status: bool = True,
) -> requests.Response:
    """Execute a single HTTP GET request.

    Raises:
        requests.RequestException: On transport failure or, when raise_for_status is
            set, on an HTTP error status
    """
    request_headers = {"User-Agent": user_agent}
    if headers:
        request_headers.update(headers)
    session = _get_thread_request_session()
    logger.debug("GET %s (timeout=%s, stream=%s)", url, timeout, stream)
    resp = session.get(url, headers=request_headers, timeout=timeout, stream=stream)
    if raise_for_status:
        try:
            resp.raise_for_status()
        except requests.HTTPError:
            resp.close()
            raise
    return resp


def fetch_with_rotation(
    url: str,
    cfg: config.Config,
    rotation: EndpointRotation,
    timeout: int,
    decode: Callable[[requests.Response], T],
) -> T:
    """Fetch url through the rotation's endpoints until one succeeds.

    Each endpoint is tried once, starting with the preferred one. A transport
    error, HTTP error status, or a decode failure (ValueError) moves on to the
    next endpoint. The endpoint that succeeds becomes the preferred one.

    Args:
        url: Target URL
        cfg: Configuration (user agent)
        rotation: Endpoint rotation to use and update
        timeout: Request timeout in seconds
        decode: Callable turning the response into the returned value

    Returns:
        Whatever decode returns for the first successful response

    Raises:
        EndpointsExhaustedError: If every endpoint failed
    """
    last_error: Optional[str] = None
    attempts = 0
    for index, endpoint in rotation.attempt_order():
        attempts += 1
        request_url = build_request_url(endpoint, url)
        label = "direct" if not endpoint else f"proxy {index + 1}/{len(rotation.endpoints)}"
        try:
            resp = http_get(request_url, cfg.user_agent, timeout, stream=True)
            try:
                value = decode(resp)
            finally:
                resp.close()
        except (requests.RequestException, ValueError) as exc:
            last_error = str(exc)
            logger.debug("Fetch via %s failed for %s: %s", label, url, exc)
            continue
        if index != rotation.preferred_index:
            logger.debug("Switching preferred fetch endpoint to %s", label)
        rotation.prefer(index)
        logger.debug("Fetched %s via %s", url, label)
        return value

    logger.warning("All %s fetch endpoint(s) failed for %s", attempts, url)
    raise EndpointsExhaustedError(url, attempts, last_error)


def read_body(resp: requests.Response, description: str = "Downloading") -> bytes:
    """Read a streamed response body while reporting progress."""
    content_length = resp.headers.get("Content-Length")
    try:
        total_size = int(content_length) if content_length else None
    except (TypeError, ValueError):
        total_size = None

    body_parts: List[bytes] = []
    with progress.progress_context(total_size, description) as reporter:
        for chunk in resp.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
            if not chunk:
                continue
            body_parts.append(chunk)
            cast(ProgressReporter, reporter).update(len(chunk))
    return b"".join(body_parts)


def decode_text(resp: requests.Response, body: bytes) -> str:
    """Decode body using the declared charset, defaulting to UTF-8."""
    ctype = resp.headers.get("Content-Type", "") or ""
    encoding = resp.encoding if "charset" in ctype.lower() and resp.encoding else "utf-8"
    try:
        return body.decode(encoding, errors="replace")
    except LookupError:
        return body.decode("utf-8", errors="replace")


def fetch_json(url: str, cfg: config.Config, rotation: EndpointRotation) -> object:
    """Fetch and decode a JSON document using the metadata timeout."""

    def _decode(resp: requests.Response) -> object:
        return resp.json()

    return fetch_with_rotation(url, cfg, rotation, cfg.metadata_timeout, _decode)


def fetch_bytes(url: str, cfg: config.Config, rotation: EndpointRotation) -> bytes:
    """Fetch a small document (e.g., an RSS feed) using the metadata timeout."""

    def _decode(resp: requests.Response) -> bytes:
        return read_body(resp, "Fetching feed")

    return fetch_with_rotation(url, cfg, rotation, cfg.metadata_timeout, _decode)


def fetch_text(url: str, cfg: config.Config, rotation: EndpointRotation) -> str:
    """Fetch a transcript payload as text using the transcript timeout."""

    def _decode(resp: requests.Response) -> str:
        return decode_text(resp, read_body(resp, "Downloading transcript"))

    return fetch_with_rotation(url, cfg, rotation, cfg.transcript_timeout, _decode)
