"""Shared helpers for HTTP handlers."""

import json
from typing import Any

from aiohttp import web

from api.initialization.services import ServiceContainer
from app.services.blockchain.session import WalletSession
from app.services.remittance.models import SubmissionOutcome, SubmissionState
from app.utils.validation import normalize_address

SERVICES_KEY = web.AppKey("services", ServiceContainer)


def get_services(request: web.Request) -> ServiceContainer:
    return request.app[SERVICES_KEY]


def http_error(exc_class: type[web.HTTPException], message: str, **extra: Any) -> web.HTTPException:
    """aiohttp HTTP exception with a JSON body."""
    return exc_class(
        text=json.dumps({"error": message, **extra}),
        content_type="application/json",
    )


def require_address(value: Any, name: str = "address") -> str:
    """
    Checksummed address from a request parameter.

    Raises:
        web.HTTPBadRequest: If missing or malformed
    """
    if not value:
        raise http_error(web.HTTPBadRequest, f"{name} parameter required")
    try:
        return normalize_address(str(value))
    except ValueError as e:
        raise http_error(web.HTTPBadRequest, f"Invalid {name}: {e}") from e


def optional_int(request: web.Request, name: str, default: int) -> int:
    """
    Integer query parameter; out-of-range values are left for clamping.

    Raises:
        web.HTTPBadRequest: If present but not an integer
    """
    raw = request.query.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise http_error(web.HTTPBadRequest, f"{name} must be an integer") from e


async def read_json(request: web.Request) -> dict[str, Any]:
    """
    JSON object body.

    Raises:
        web.HTTPBadRequest: If the body is not a JSON object
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise http_error(web.HTTPBadRequest, "Request body must be JSON") from e
    if not isinstance(body, dict):
        raise http_error(web.HTTPBadRequest, "Request body must be a JSON object")
    return body


def require_session(services: ServiceContainer, address: str) -> WalletSession:
    """
    Wallet session able to sign for address.

    Raises:
        web.HTTPForbidden: If no session is connected for address
    """
    session = services.session_for(address)
    if session is None:
        raise http_error(web.HTTPForbidden, "No wallet session for this address")
    return session


def outcome_response(outcome: SubmissionOutcome) -> web.Response:
    """
    Map a submission outcome to a response.

    200 confirmed, 422 rejected by validation, 502 failed on chain.
    """
    if outcome.success:
        status = 200
    elif outcome.state == SubmissionState.PLAN_FAILED and outcome.validation is not None:
        status = 422
    else:
        status = 502
    return web.json_response(outcome.to_dict(), status=status)
