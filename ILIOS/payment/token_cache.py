import time
from typing import Callable, Optional

DEFAULT_EXPIRES_IN = 3600
REFRESH_MARGIN_SECONDS = 60


class TokenCache:
    """
    Single-slot cache for the gateway's OAuth bearer token.
    A token is served until less than `margin_seconds` of its lifetime remain.
    """

    def __init__(self, margin_seconds: float = REFRESH_MARGIN_SECONDS, clock: Callable[[], float] = time.time):
        self.margin_seconds = margin_seconds
        self._clock = clock
        self._token: Optional[str] = None
        self._expires_at: float = 0.0

    def get(self) -> Optional[str]:
        if self._token and self._expires_at > self._clock() + self.margin_seconds:
            return self._token
        return None

    def put(self, token: str, expires_in: Optional[float] = None) -> None:
        self._token = token
        self._expires_at = self._clock() + float(expires_in or DEFAULT_EXPIRES_IN)

    def clear(self) -> None:
        self._token = None
        self._expires_at = 0.0

    @property
    def expires_at(self) -> float:
        return self._expires_at
