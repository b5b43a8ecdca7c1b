"""
Address book endpoints.

Contacts and saved recipients share one implementation; only the Redis
storage key differs.

GET    {prefix}?owner=[&address=]  - list, or look up one address
POST   {prefix}                    - create or update {owner, name, address, id?}
DELETE {prefix}/{contact_id}?owner=
"""

from aiohttp import web
from pydantic import ValidationError

from api.handlers.common import get_services, http_error, read_json, require_address
from app.config.constants import CONTACTS_STORAGE_KEY, RECIPIENTS_STORAGE_KEY
from app.services.contacts.contacts_service import ContactsService


def _service(request: web.Request, owner: str, storage_key: str) -> ContactsService:
    services = get_services(request)
    if services.redis is None:
        raise http_error(web.HTTPServiceUnavailable, "Contacts storage unavailable")
    return ContactsService(services.redis, owner, storage_key)


def address_book_routes(prefix: str, storage_key: str) -> list[web.RouteDef]:
    """
    Route table for one address book.

    Args:
        prefix: URL prefix (e.g. "/contacts")
        storage_key: Redis key prefix of the list

    Returns:
        List of aiohttp route definitions
    """

    async def list_handler(request: web.Request) -> web.Response:
        owner = require_address(request.query.get("owner"), "owner")
        service = _service(request, owner, storage_key)

        address = request.query.get("address")
        if address:
            contact = await service.get_contact_by_address(address)
            if contact is None:
                raise http_error(web.HTTPNotFound, "Contact not found")
            return web.json_response(contact.model_dump(by_alias=True))

        contacts = await service.get_contacts()
        return web.json_response({"contacts": [c.model_dump(by_alias=True) for c in contacts]})

    async def save_handler(request: web.Request) -> web.Response:
        body = await read_json(request)
        owner = require_address(body.get("owner"), "owner")
        try:
            contact = await _service(request, owner, storage_key).save_contact(
                name=str(body.get("name") or ""),
                address=str(body.get("address") or ""),
                contact_id=body.get("id"),
            )
        except ValidationError as e:
            errors = [
                {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                for err in e.errors()
            ]
            raise http_error(web.HTTPBadRequest, "Invalid contact", details=errors) from e
        return web.json_response(contact.model_dump(by_alias=True))

    async def delete_handler(request: web.Request) -> web.Response:
        owner = require_address(request.query.get("owner"), "owner")
        contact_id = request.match_info["contact_id"]
        if not await _service(request, owner, storage_key).delete_contact(contact_id):
            raise http_error(web.HTTPNotFound, "Contact not found")
        return web.json_response({"deleted": contact_id})

    return [
        web.get(prefix, list_handler),
        web.post(prefix, save_handler),
        web.delete(f"{prefix}/{{contact_id}}", delete_handler),
    ]


def contacts_routes() -> list[web.RouteDef]:
    return address_book_routes("/contacts", CONTACTS_STORAGE_KEY)


def recipients_routes() -> list[web.RouteDef]:
    return address_book_routes("/recipients", RECIPIENTS_STORAGE_KEY)
