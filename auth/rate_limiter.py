"""Rate limiting for login attempts.

Uses Valkey with a fixed window: the TTL is set by the first attempt and
not extended by later ones, so a lockout always ends when the window does.
Counters are keyed by principal type and email, so a user and an admin
sharing an address are throttled independently.
"""

from clients.valkey_client import ValkeyClient
from auth.config import AuthConfig
from auth.exceptions import RateLimitedError
from auth.types import PrincipalType


class RateLimiter:
    """Rate limiting for login requests using Valkey."""

    KEY_PREFIX = "ratelimit:login:"

    def __init__(self, valkey: ValkeyClient, config: AuthConfig):
        self._valkey = valkey
        self._config = config
        self._window_seconds = config.rate_limit_window_minutes * 60

    def _key(self, principal_type: PrincipalType, email: str) -> str:
        """Generate rate limit key (email normalized to lowercase)."""
        return f"{self.KEY_PREFIX}{principal_type.value}:{email.strip().lower()}"

    def check_rate_limit(self, principal_type: PrincipalType, email: str) -> None:
        """Check rate limit and increment counter.

        Fixed window: the first attempt starts the window, later attempts only
        count against it.

        Raises:
            RateLimitedError: If rate limit exceeded.
        """
        key = self._key(principal_type, email)

        count = self._valkey.incr(key)

        if count == 1:
            self._valkey.expire(key, self._window_seconds)

        if count > self._config.rate_limit_attempts:
            ttl = self._valkey.ttl(key)
            retry_after = max(ttl, 1)  # At least 1 second
            raise RateLimitedError(retry_after_seconds=retry_after)

    def reset_rate_limit(self, principal_type: PrincipalType, email: str) -> None:
        """Reset rate limit after successful login."""
        self._valkey.delete(self._key(principal_type, email))

    def get_remaining_attempts(self, principal_type: PrincipalType, email: str) -> int:
        """Get remaining attempts before rate limit."""
        current = self._valkey.get(self._key(principal_type, email))

        if current is None:
            return self._config.rate_limit_attempts

        remaining = self._config.rate_limit_attempts - int(current)
        return max(remaining, 0)
