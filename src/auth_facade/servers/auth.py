"""HTTP endpoints over the sign-in services.

Handlers are intentionally thin:

1. Parse and validate HTTP-layer parameters.
2. Delegate to the service stored in ``app.state.auth_service``.
3. Map domain exceptions to an appropriate Starlette ``Response``.

The base path is configurable (default: ``/auth``) so that reverse-proxies can
mount the application under arbitrary prefixes.

SECURITY NOTE
-------------
• Passwords and sign-in links are never logged; emails are masked.
• Correlation IDs, if present in ``request.state.correlation_id``, are included
  in INFO logs to aid troubleshooting.

This module is HTTP-only and MUST remain free from business logic.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from auth_facade.core.errors import (
    AuthenticationError,
    InvalidSignInLinkError,
    PendingEmailCleanupError,
    UserNotFoundError,
)
from auth_facade.core.service import AuthService, BaseAuthService
from auth_facade.utils.logging import mask_email

_LOG = logging.getLogger("auth-facade.auth.routes")


class _BadRequest(Exception):
    pass


def _service(request: Request) -> BaseAuthService:
    return request.app.state.auth_service


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", "-")


async def _json_body(request: Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise _BadRequest("invalid JSON body") from exc
    if not isinstance(payload, dict):
        raise _BadRequest("JSON body must be an object")
    return payload


def _required(payload: dict[str, Any], name: str) -> str:
    value = payload.get(name)
    if not isinstance(value, str) or not value.strip():
        raise _BadRequest(f"missing {name}")
    return value.strip()


def _error_response(exc: AuthenticationError) -> JSONResponse:
    if isinstance(exc, PendingEmailCleanupError):
        # Signed in at the provider; report success with a warning.
        return JSONResponse({"signed_in": True, "warning": exc.to_payload()})
    if isinstance(exc, InvalidSignInLinkError):
        return JSONResponse(exc.to_payload(), status_code=400)
    if isinstance(exc, UserNotFoundError):
        return JSONResponse(exc.to_payload(), status_code=404)
    return JSONResponse(exc.to_payload(), status_code=502)


Handler = Callable[[Request], Awaitable[Response]]


def _guarded(operation: str, handler: Handler) -> Handler:
    """Wrap *handler* with the shared error mapping."""

    async def _endpoint(request: Request) -> Response:
        try:
            return await handler(request)
        except _BadRequest as exc:
            return JSONResponse({"error": "bad_request", "message": str(exc)}, status_code=400)
        except AuthenticationError as exc:
            _LOG.info(
                "%s failed code=%s correlation_id=%s",
                operation,
                exc.code,
                _correlation_id(request),
            )
            return _error_response(exc)

    return _endpoint


# --------------------------------------------------------------------------- #
# Public API                                                                  #
# --------------------------------------------------------------------------- #
def register_auth_routes(app: Starlette, *, base_path: str = "/auth") -> None:
    """Attach the sign-in endpoints to *app* under *base_path*."""

    # ----- GET /auth/user -------------------------------------------------- #
    async def _current_user(request: Request) -> Response:
        return JSONResponse(_service(request).current_user.to_dict())

    # ----- POST /auth/email-link/send -------------------------------------- #
    async def _send_link(request: Request) -> Response:
        email = _required(await _json_body(request), "email")
        await _service(request).send_sign_in_link_to_email(email)
        _LOG.info(
            "Sign-in link requested for %s correlation_id=%s",
            mask_email(email),
            _correlation_id(request),
        )
        return Response(status_code=204)

    # ----- GET /auth/email-link/check -------------------------------------- #
    async def _check_link(request: Request) -> Response:
        link = request.query_params.get("link")
        if not link:
            raise _BadRequest("missing link")
        try:
            valid = await _service(request).is_sign_in_with_email_link(link)
        except Exception as exc:  # broad: provider errors are not translated
            _LOG.warning("Link check failed: %s", exc, exc_info=True)
            return JSONResponse(
                {
                    "error": "provider_error",
                    "message": "link check failed",
                    "cause": type(exc).__name__,
                },
                status_code=502,
            )
        return JSONResponse({"valid": bool(valid)})

    # ----- POST /auth/email-link/complete ---------------------------------- #
    async def _complete_link(request: Request) -> Response:
        payload = await _json_body(request)
        link = _required(payload, "link")
        svc = _service(request)
        if isinstance(svc, AuthService):
            await svc.sign_in_with_email_link(
                email=_required(payload, "email"), email_link=link
            )
        else:
            await svc.sign_in_with_email_link(email_link=link)  # type: ignore[attr-defined]
        _LOG.info("Email-link sign-in completed correlation_id=%s", _correlation_id(request))
        return Response(status_code=204)

    # ----- POST /auth/password --------------------------------------------- #
    async def _password(request: Request) -> Response:
        payload = await _json_body(request)
        await _service(request).sign_in_with_email_and_password(
            _required(payload, "email"), _required(payload, "password")
        )
        return Response(status_code=204)

    # ----- POST /auth/{google|anonymous|signout}, DELETE /auth/account ----- #
    async def _google(request: Request) -> Response:
        await _service(request).sign_in_with_google()
        return Response(status_code=204)

    async def _anonymous(request: Request) -> Response:
        await _service(request).sign_in_anonymously()
        return Response(status_code=204)

    async def _sign_out(request: Request) -> Response:
        await _service(request).sign_out()
        _LOG.info("Signed out correlation_id=%s", _correlation_id(request))
        return Response(status_code=204)

    async def _delete_account(request: Request) -> Response:
        await _service(request).delete_account()
        _LOG.info("Account deleted correlation_id=%s", _correlation_id(request))
        return Response(status_code=204)

    routes: list[tuple[str, str, Handler]] = [
        ("/user", "GET", _current_user),
        ("/email-link/send", "POST", _send_link),
        ("/email-link/check", "GET", _check_link),
        ("/email-link/complete", "POST", _complete_link),
        ("/password", "POST", _password),
        ("/google", "POST", _google),
        ("/anonymous", "POST", _anonymous),
        ("/signout", "POST", _sign_out),
        ("/account", "DELETE", _delete_account),
    ]
    for path, method, handler in routes:
        app.add_route(
            f"{base_path}{path}",
            _guarded(handler.__name__.lstrip("_"), handler),
            methods=[method],
        )
