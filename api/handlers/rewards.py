"""
Rewards endpoints.

GET  /rewards/data      - cashback / referral summary
POST /rewards/withdraw  - withdraw through the submitter
"""

from aiohttp import web
from loguru import logger

from api.handlers.common import (
    get_services,
    http_error,
    outcome_response,
    read_json,
    require_address,
    require_session,
)
from app.services.remittance.models import CallTag
from app.utils.security import mask_address

WITHDRAWAL_KINDS = {
    "cashback": CallTag.WITHDRAW_CASHBACK,
    "referral": CallTag.WITHDRAW_REFERRAL_REWARDS,
}


async def rewards_data_handler(request: web.Request) -> web.Response:
    """Rewards summary. Query: address (required)."""
    services = get_services(request)
    address = require_address(request.query.get("address"))
    data = await services.accounts.get_rewards_data(address)
    return web.json_response(data)


async def withdraw_handler(request: web.Request) -> web.Response:
    """
    Withdraw cashback (default) or referral rewards.

    Body: {address, amount, type?: "cashback" | "referral"}
    """
    services = get_services(request)
    body = await read_json(request)

    address = require_address(body.get("address"))
    if body.get("amount") in (None, ""):
        raise http_error(web.HTTPBadRequest, "Missing required fields")
    kind = WITHDRAWAL_KINDS.get(str(body.get("type") or "cashback").lower())
    if kind is None:
        raise http_error(web.HTTPBadRequest, "type must be 'cashback' or 'referral'")

    session = require_session(services, address)
    logger.info(f"Withdrawal ({kind.value}) requested by {mask_address(address)}")

    outcome = await services.accounts.withdraw(
        session,
        body["amount"],
        services.planner,
        services.submitter,
        kind=kind,
    )
    if not outcome.success:
        return outcome_response(outcome)
    return web.json_response(
        {
            "success": True,
            "txHash": outcome.tx_hash,
            "message": "Withdrawal initiated successfully",
        }
    )
