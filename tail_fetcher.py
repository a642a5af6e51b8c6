"""
Download the tail PDF with bounded retries and exponential backoff.

Each attempt has its own deadline covering the connection and the body
download. The attempt runs on a worker thread and the caller stops waiting
when the deadline passes, even if a single socket read is still blocked.
Attempt ``n`` failing waits ``backoff_ms * 2 ** (n - 1)`` before attempt
``n + 1``. There is no wait after the final attempt.
"""

from __future__ import annotations

import concurrent.futures
import threading
import time
from typing import Callable

import requests

from errors import TailFetchError
from logging_setup import get_logger
from settings import Settings

logger = get_logger(__name__)

USER_AGENT = "HickmetPDF/1.0 (+python-requests)"
CHUNK_SIZE = 64 * 1024


class AttemptTimeout(TimeoutError):
    pass


class _Download:
    """One streamed GET. ``cancel`` closes the response from another thread."""

    def __init__(self, session: requests.Session, url: str, timeout_s: float) -> None:
        self.session = session
        self.url = url
        self.timeout_s = timeout_s
        self.cancelled = threading.Event()
        self._response: requests.Response | None = None
        self._lock = threading.Lock()

    def run(self) -> bytes:
        response = self.session.get(
            self.url,
            headers={"User-Agent": USER_AGENT},
            timeout=self.timeout_s,
            allow_redirects=True,
            stream=True,
        )
        with self._lock:
            self._response = response
        try:
            response.raise_for_status()
            chunks: list[bytes] = []
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if self.cancelled.is_set():
                    raise AttemptTimeout(f"download of {self.url} was cancelled")
                if chunk:
                    chunks.append(chunk)
            return b"".join(chunks)
        finally:
            response.close()

    def cancel(self) -> None:
        self.cancelled.set()
        with self._lock:
            response = self._response
        if response is not None:
            response.close()


class RemoteTailFetcher:
    """Fetches a remote PDF. Every ``fetch`` call opens its own HTTP session."""

    def __init__(
        self,
        timeout_ms: int = 60000,
        retries: int = 3,
        backoff_ms: int = 1000,
        session_factory: Callable[[], requests.Session] = requests.Session,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if retries < 1:
            raise ValueError("retries must be at least 1")
        self.timeout_ms = timeout_ms
        self.retries = retries
        self.backoff_ms = backoff_ms
        self._session_factory = session_factory
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "RemoteTailFetcher":
        return cls(
            timeout_ms=settings.fetch_timeout_ms,
            retries=settings.fetch_retries,
            backoff_ms=settings.fetch_backoff_ms,
            **kwargs,
        )

    def backoff_ms_for(self, attempt: int) -> int:
        return self.backoff_ms * 2 ** (attempt - 1)

    def fetch(self, url: str) -> bytes:
        last_error: BaseException | None = None
        with self._session_factory() as session:
            for attempt in range(1, self.retries + 1):
                try:
                    data = self._attempt(session, url)
                    logger.info("Fetched tail PDF (%d bytes) on attempt %d/%d", len(data), attempt, self.retries)
                    return data
                except (requests.RequestException, AttemptTimeout) as exc:
                    last_error = exc
                    reason = "timeout" if isinstance(exc, (requests.Timeout, AttemptTimeout)) else str(exc)
                    if attempt < self.retries:
                        wait = self.backoff_ms_for(attempt)
                        logger.warning(
                            "Tail fetch attempt %d/%d failed (%s). Retrying in %dms...",
                            attempt,
                            self.retries,
                            reason,
                            wait,
                        )
                        self._sleep(wait / 1000.0)
                    else:
                        logger.error("Tail fetch attempt %d/%d failed (%s). Giving up.", attempt, self.retries, reason)

        raise TailFetchError(url, self.retries, last_error) from last_error

    def _attempt(self, session: requests.Session, url: str) -> bytes:
        timeout_s = self.timeout_ms / 1000.0
        download = _Download(session, url, timeout_s)
        pool = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="tail-fetch")
        try:
            future = pool.submit(download.run)
            try:
                return future.result(timeout=timeout_s)
            except concurrent.futures.TimeoutError as exc:
                download.cancel()
                raise AttemptTimeout(f"download exceeded {self.timeout_ms}ms") from exc
        finally:
            # A worker still blocked in a read is left to unwind on its own.
            pool.shutdown(wait=False)
