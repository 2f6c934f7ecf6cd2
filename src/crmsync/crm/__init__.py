"""Contact directory helpers."""

from .contacts import Page, filter_contacts, paginate, CONTACTS_PER_PAGE

__all__ = ["Page", "filter_contacts", "paginate", "CONTACTS_PER_PAGE"]
