"""Authentication core package.

This namespace hosts the **HTTP-agnostic** building blocks of the façade:

Sub-modules
-----------
models
    Immutable ``User`` snapshot and its authentication status.
errors
    Domain exception taxonomy plus key-value storage errors.
provider
    Capability protocol implemented by authentication providers.
store
    Key-value storage protocol and the in-memory / on-disk implementations.
user_state
    Replay-latest cache of the current user.
service
    Sign-in services applying the uniform error-translation policy.
log_utils
    Structured logging helpers (thin wrapper around :pymod:`logging`).

All public objects are re-exported here for convenience.
"""

from __future__ import annotations

from .models import AuthenticationStatus, User  # noqa: F401
from .errors import (  # noqa: F401
    AnonymousSignInError,
    AuthenticationError,
    DeleteAccountError,
    GoogleSignInError,
    InvalidSignInLinkError,
    LogoutError,
    PasswordSignInError,
    PendingEmailCleanupError,
    SendSignInLinkError,
    StorageDeleteError,
    StorageError,
    StorageKeyNotFoundError,
    StorageReadError,
    StorageTypeError,
    StorageWriteError,
    UserNotFoundError,
)
from .provider import AuthProvider  # noqa: F401
from .store import (  # noqa: F401
    PENDING_EMAIL_KEY,
    DiskKeyValueStore,
    InMemoryKeyValueStore,
    KeyValueStore,
)
from .user_state import UserStateCache  # noqa: F401
from .service import (  # noqa: F401
    AuthService,
    BaseAuthService,
    EmailLinkAuthService,
    build_auth_service,
)
from .log_utils import get_auth_logger  # noqa: F401

__all__ = [
    # models
    "AuthenticationStatus",
    "User",
    # errors
    "AuthenticationError",
    "SendSignInLinkError",
    "InvalidSignInLinkError",
    "PendingEmailCleanupError",
    "UserNotFoundError",
    "PasswordSignInError",
    "GoogleSignInError",
    "AnonymousSignInError",
    "LogoutError",
    "DeleteAccountError",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    "StorageDeleteError",
    "StorageKeyNotFoundError",
    "StorageTypeError",
    # capabilities
    "AuthProvider",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "DiskKeyValueStore",
    "PENDING_EMAIL_KEY",
    # state & services
    "UserStateCache",
    "BaseAuthService",
    "AuthService",
    "EmailLinkAuthService",
    "build_auth_service",
    # logging helpers
    "get_auth_logger",
]
