"""
Transfer endpoints.

GET  /transfers/history  - reconciled transaction history
POST /transfers/create   - single remittance through the submitter
POST /transfers/group    - group payment (one batchTransfer)
"""

from decimal import Decimal

from aiohttp import web
from loguru import logger

from api.handlers.common import (
    get_services,
    http_error,
    optional_int,
    outcome_response,
    read_json,
    require_address,
    require_session,
)
from app.config.constants import HISTORY_DEFAULT_COUNT
from app.services.remittance.models import (
    GroupPaymentRequest,
    GroupRecipient,
    TransferRequest,
)
from app.utils.security import mask_address
from app.utils.validation import parse_amount


async def history_handler(request: web.Request) -> web.Response:
    """
    Transaction history for an address.

    Query: address (required), start (default 0), count (default 10).
    Out-of-range start/count are clamped, never rejected.
    """
    services = get_services(request)
    address = require_address(request.query.get("address"))
    start = optional_int(request, "start", 0)
    count = optional_int(request, "count", HISTORY_DEFAULT_COUNT)

    page = await services.history.get_history(address, start, count)
    return web.json_response(page.to_dict())


def _amount(value: object, field: str) -> Decimal:
    amount = parse_amount(value)
    if amount is None:
        raise http_error(web.HTTPBadRequest, f"{field} must be a number")
    return amount


async def create_transfer_handler(request: web.Request) -> web.Response:
    """
    Submit a single remittance.

    Body: {sender, recipient, token, amount, country, memo?}
    """
    services = get_services(request)
    body = await read_json(request)

    sender = require_address(body.get("sender"), "sender")
    if not body.get("recipient"):
        raise http_error(web.HTTPBadRequest, "recipient parameter required")
    session = require_session(services, sender)

    transfer = TransferRequest(
        sender=sender,
        recipient=str(body["recipient"]),
        token=str(body.get("token") or services.registry.default.symbol),
        amount=_amount(body.get("amount"), "amount"),
        country=str(body.get("country") or ""),
        memo=body.get("memo"),
    )
    logger.info(
        f"Transfer requested by {mask_address(sender)}: {transfer.amount} {transfer.token} "
        f"to {mask_address(transfer.recipient)} ({transfer.country})"
    )
    outcome = await services.submitter.submit_transfer(transfer, session)
    return outcome_response(outcome)


async def group_payment_handler(request: web.Request) -> web.Response:
    """
    Submit a group payment.

    Body: {sender, token, recipients: [{address, amount}, ...]}
    """
    services = get_services(request)
    body = await read_json(request)

    sender = require_address(body.get("sender"), "sender")
    entries = body.get("recipients")
    if not isinstance(entries, list) or not entries:
        raise http_error(web.HTTPBadRequest, "recipients must be a non-empty list")
    session = require_session(services, sender)

    recipients = []
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict) or not entry.get("address"):
            raise http_error(web.HTTPBadRequest, f"recipients[{i}].address required")
        recipients.append(
            GroupRecipient(
                address=str(entry["address"]),
                amount=_amount(entry.get("amount"), f"recipients[{i}].amount"),
            )
        )

    payment = GroupPaymentRequest(
        sender=sender,
        token=str(body.get("token") or services.registry.default.symbol),
        recipients=tuple(recipients),
    )
    outcome = await services.submitter.submit_group_payment(payment, session)
    return outcome_response(outcome)
