"""Search and paging over contact lists."""

import math
from dataclasses import dataclass
from typing import Generic, List, Sequence, TypeVar

from ..database import ContactResponse


T = TypeVar("T")

CONTACTS_PER_PAGE = 10


@dataclass
class Page(Generic[T]):
    items: List[T]
    page: int
    total_pages: int
    total: int

    def to_dict(self) -> dict:
        return {
            "items": [item.model_dump(mode="json") if hasattr(item, "model_dump") else item for item in self.items],
            "page": self.page,
            "total_pages": self.total_pages,
            "total": self.total,
        }


def filter_contacts(contacts: Sequence[ContactResponse], search: str) -> List[ContactResponse]:
    """Contacts whose name, email or company contains ``search``, ignoring case."""
    needle = (search or "").strip().lower()
    if not needle:
        return list(contacts)
    return [
        c for c in contacts
        if needle in c.name.lower() or needle in c.email.lower() or needle in c.company.lower()
    ]


def paginate(items: Sequence[T], page: int = 1, per_page: int = CONTACTS_PER_PAGE) -> Page[T]:
    """Slice one page out of ``items``; out-of-range pages clamp to the nearest valid one."""
    if per_page < 1:
        raise ValueError("per_page must be positive")

    total = len(items)
    total_pages = max(1, math.ceil(total / per_page))
    page = min(max(page, 1), total_pages)
    start = (page - 1) * per_page

    return Page(items=list(items[start:start + per_page]), page=page, total_pages=total_pages, total=total)
