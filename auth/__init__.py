"""Authentication and authorization modules.

HTTP wiring (auth.api, auth.security_middleware) is imported by the app
directly so this package never depends on the api package.
"""

from auth.exceptions import (
    AuthError,
    InvalidTokenError,
    InvalidCredentialsError,
    SessionInvalidError,
    RateLimitedError,
)
from auth.types import (
    PrincipalType,
    PrincipalRecord,
    Principal,
    Session,
    SessionMeta,
    TokenPayload,
    IssuedTokens,
    AuthorizationToken,
    AuthorizedPrincipal,
)
from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.passwords import CredentialStore
from auth.tokens import TokenService
from auth.rate_limiter import RateLimiter
from auth.security_logger import SecurityLogger, SecurityEvent
from auth.session import SessionStore
from auth.guard import (
    AuthorizationGuard,
    AuthorizationDecision,
    authorize_ownership,
    require_ownership,
)
from auth.service import AuthService
