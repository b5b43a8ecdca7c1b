"""Client-local address book."""

from .contacts_service import Contact, ContactsService


__all__ = ["Contact", "ContactsService"]
