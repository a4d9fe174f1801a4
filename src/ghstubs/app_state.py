"""Process-wide application state read by the request pipeline.

* :class:`TokenProvider` -- the ambient auth token, used whenever a stub
  was built without a token override.
* :class:`VisitedUrlTracker` -- a short history of the URLs this process
  requested, kept for crash reports and the ``ghstubs visited`` command.

Both are owned by :class:`~ghstubs.factory.ServiceFactory` and handed to
every :class:`~ghstubs.pipeline.interceptors.RequestAugmenter` it builds.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Optional

from ghstubs.config import resolve_credential

logger = logging.getLogger(__name__)

VISITED_URL_LIMIT = 10


class TokenProvider:
    """Resolve and hold the ambient auth token.

    The token is looked up lazily from *source* (``env:VAR``,
    ``file:/path`` or ``prompt``) on first use and memoized. Tokens set
    with :meth:`set_token` take precedence over the source.

    Args:
        source: Credential source descriptor, or ``None`` for an
            anonymous process.
    """

    def __init__(self, source: Optional[str] = None) -> None:
        self._source = source
        self._token: Optional[str] = None
        self._resolved = False
        self._lock = threading.Lock()

    def get_auth_token(self) -> Optional[str]:
        """Return the current token, or ``None`` when the process is anonymous.

        Raises:
            ConfigError: If the configured source cannot be resolved.
        """
        with self._lock:
            if not self._resolved:
                if self._source is not None:
                    self._token = resolve_credential(self._source) or None
                self._resolved = True
            return self._token

    def set_token(self, token: Optional[str]) -> None:
        """Replace the ambient token (``None`` logs the process out)."""
        with self._lock:
            self._token = token or None
            self._resolved = True

    def clear(self) -> None:
        """Forget the current token; the next lookup consults the source again."""
        with self._lock:
            self._token = None
            self._resolved = False


class VisitedUrlTracker:
    """Thread-safe ring buffer of the most recently requested URLs."""

    def __init__(self, limit: int = VISITED_URL_LIMIT) -> None:
        self._urls: deque[str] = deque(maxlen=limit)
        self._lock = threading.Lock()

    def track(self, url: str) -> None:
        with self._lock:
            self._urls.append(url)
        logger.debug("Visited %s", url)

    def recent(self) -> list[str]:
        """Return the tracked URLs, oldest first."""
        with self._lock:
            return list(self._urls)
