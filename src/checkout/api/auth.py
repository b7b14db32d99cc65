"""Who is calling.

Sessions are issued and checked by the upstream auth layer; checkout only
needs an opaque user id. The resolver is swappable the same way the payment
gateway is.
"""

from abc import ABC, abstractmethod

from fastapi import Request

from checkout.errors import Unauthenticated


class SessionResolver(ABC):
    @abstractmethod
    def resolve(self, request: Request) -> str | None:
        """Return the authenticated user id, or None for anonymous requests."""
        ...


class HeaderSessionResolver(SessionResolver):
    """Trusts the ``X-User-Id`` header set by the gateway in front of this service."""

    header = "X-User-Id"

    def resolve(self, request: Request) -> str | None:
        value = request.headers.get(self.header, "").strip()
        return value or None


_current_resolver: SessionResolver | None = None


def get_session_resolver() -> SessionResolver:
    global _current_resolver
    if _current_resolver is None:
        _current_resolver = HeaderSessionResolver()
    return _current_resolver


def set_session_resolver(resolver: SessionResolver) -> None:
    global _current_resolver
    _current_resolver = resolver


def reset_session_resolver() -> None:
    global _current_resolver
    _current_resolver = None


def get_current_user(request: Request) -> str:
    """FastAPI dependency: the caller's user id, or 401."""
    user_id = get_session_resolver().resolve(request)
    if not user_id:
        raise Unauthenticated("Authentication required")
    return user_id
