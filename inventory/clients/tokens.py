import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from django.utils import timezone

logger = logging.getLogger(__name__)

# Tokens are treated as expired this long before the server says they are
EXPIRY_MARGIN = timedelta(seconds=300)


@dataclass(frozen=True)
class CachedToken:
    token: str
    expires_at: datetime
    refresh_token: Optional[str] = None


class TokenCache:
    """Holds one access token for one marketplace client, in memory only.

    The token is replaced wholesale on every store; a failed call never
    purges it, it only goes away by expiring.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or timezone.now
        self._token: Optional[CachedToken] = None

    @property
    def current(self) -> Optional[CachedToken]:
        return self._token

    def get(self) -> Optional[str]:
        """Returns the access token if it has not expired yet."""
        if self._token and self.clock() < self._token.expires_at:
            return self._token.token
        return None

    def store(self, token: str, expires_in: int, refresh_token: Optional[str] = None) -> CachedToken:
        expires_at = self.clock() + timedelta(seconds=expires_in) - EXPIRY_MARGIN
        self._token = CachedToken(token=token, expires_at=expires_at, refresh_token=refresh_token)
        logger.debug("Cached access token until %s", expires_at)
        return self._token

    @property
    def refresh_token(self) -> Optional[str]:
        return self._token.refresh_token if self._token else None
