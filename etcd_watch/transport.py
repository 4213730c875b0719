"""Blocking HTTP transport used by the client and the watch controller.

One ``Transport`` wraps one ``requests.Session``. It is not safe to share
between threads; give each watcher its own instance.
"""
from __future__ import annotations

from typing import Mapping, Optional, Tuple, Union
from urllib.parse import quote, unquote

import requests
from requests.adapters import HTTPAdapter
from requests.structures import CaseInsensitiveDict
from urllib3.util.retry import Retry

from etcd_watch import config
from etcd_watch.logger import TransportError, get_logger

logger = get_logger(__name__)

TimeoutSpec = Union[float, Tuple[float, Optional[float]], None]


class Transport:
    """Issue GET and mutation requests and return the raw body text.

    Non-2xx responses with a body are returned as-is so the reply decoder can
    turn etcd's ``{"errorCode": ...}`` objects into ``ReplyException``.
    Network failures and timeouts raise ``TransportError``.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        connect_timeout: Optional[float] = None,
        watch_timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = config.TIMEOUT_SECS if timeout is None else timeout
        self.connect_timeout = config.CONNECT_TIMEOUT_SECS if connect_timeout is None else connect_timeout
        # None here means "take the env default", which itself may be None
        self.watch_timeout = config.watch_timeout() if watch_timeout is None else (watch_timeout or None)
        retries = config.HTTP_RETRIES if max_retries is None else max_retries

        self._enable_header = False
        self._headers: CaseInsensitiveDict = CaseInsensitiveDict()

        # a caller-supplied session keeps its own default headers
        self.session = session if session is not None else requests.Session()
        if retries > 0:
            retry_strategy = Retry(total=retries, connect=retries, read=0, status=0, backoff_factor=0.5)
            adapter = HTTPAdapter(max_retries=retry_strategy)
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        self.session.close()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    def get(self, url: str, wait: bool = False) -> str:
        """GET ``url``; long-polls (``wait=True``) use the watch read timeout."""
        timeout = self._timeout_for(wait)
        logger.debug(f"[transport] GET {url} timeout={timeout}")
        return self._perform("GET", url, timeout=timeout, headers={"User-Agent": config.USER_AGENT})

    def set(self, url: str, method: str, options: Optional[Mapping[str, object]] = None) -> str:
        """Send a mutation with an ordered ``name=value;`` form body."""
        body = self.encode_options(options or {})
        headers = {"User-Agent": config.USER_AGENT}
        if body:
            headers["Content-Type"] = "application/x-www-form-urlencoded"
        logger.debug(f"[transport] {method.upper()} {url}")
        return self._perform(
            method.upper(),
            url,
            timeout=self._timeout_for(False),
            data=body.encode("utf-8") if body else None,
            headers=headers,
        )

    def encode_options(self, options: Mapping[str, object]) -> str:
        return "".join(f"{name}={self.url_encode(str(value))};" for name, value in options.items())

    def _timeout_for(self, wait: bool) -> TimeoutSpec:
        if wait:
            return (self.connect_timeout, self.watch_timeout)
        return (self.connect_timeout, self.timeout)

    def _perform(self, method: str, url: str, timeout: TimeoutSpec, **kwargs) -> str:
        if self._enable_header:
            self._headers = CaseInsensitiveDict()
        try:
            response = self.session.request(method, url, timeout=timeout, allow_redirects=True, **kwargs)
        except requests.exceptions.Timeout as e:
            raise TransportError(f"{method} {url} timed out: {e}") from e
        except requests.exceptions.ConnectionError as e:
            raise TransportError(f"{method} {url} connection error: {e}") from e
        except requests.exceptions.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        if self._enable_header:
            self._headers = CaseInsensitiveDict(response.headers)

        text = response.text
        if not response.ok and not text.strip():
            raise TransportError(
                f"{method} {url} returned HTTP {response.status_code} with empty body",
                status_code=response.status_code,
            )
        return text

    # ------------------------------------------------------------------
    # Header capture
    # ------------------------------------------------------------------
    def enable_header(self, on_off: bool) -> None:
        """Capture response headers of subsequent requests while enabled."""
        self._enable_header = bool(on_off)

    def get_header(self) -> Mapping[str, str]:
        """Headers of the last request made with capture enabled."""
        return CaseInsensitiveDict(self._headers)

    # ------------------------------------------------------------------
    # Encoding helpers
    # ------------------------------------------------------------------
    @staticmethod
    def url_encode(value: str) -> str:
        return quote(value, safe="")

    @staticmethod
    def url_decode(value: str) -> str:
        return unquote(value)
