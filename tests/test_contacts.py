"""Tests for contact search and paging."""

import pytest

from crmsync.crm import filter_contacts, paginate
from crmsync.database import ContactResponse


@pytest.fixture
def contacts():
    return [
        ContactResponse(id=1, name="Ada Lovelace", email="ada@engine.io", company="Analytical"),
        ContactResponse(id=2, name="Grace Hopper", email="grace@navy.mil", company="Navy"),
        ContactResponse(id=3, name="Alan Turing", email="alan@bletchley.uk", company="GC&CS"),
    ]


def test_search_matches_name_email_or_company_ignoring_case(contacts):
    assert [c.id for c in filter_contacts(contacts, "ADA")] == [1]
    assert [c.id for c in filter_contacts(contacts, "navy.mil")] == [2]
    assert [c.id for c in filter_contacts(contacts, "gc&cs")] == [3]
    assert [c.id for c in filter_contacts(contacts, "a")] == [1, 2, 3]


def test_blank_search_returns_everything(contacts):
    assert filter_contacts(contacts, "") == contacts
    assert filter_contacts(contacts, "   ") == contacts


def test_paginate_slices_pages():
    page = paginate(list(range(25)), page=3, per_page=10)

    assert page.items == [20, 21, 22, 23, 24]
    assert page.page == 3
    assert page.total_pages == 3
    assert page.total == 25


def test_paginate_clamps_out_of_range_pages():
    assert paginate(list(range(5)), page=9, per_page=2).page == 3
    assert paginate(list(range(5)), page=0, per_page=2).items == [0, 1]


def test_paginate_empty_list_has_one_page():
    page = paginate([], page=1)

    assert page.items == []
    assert page.total_pages == 1
    assert page.total == 0


def test_page_to_dict_serializes_models(contacts):
    data = paginate(contacts, per_page=2).to_dict()

    assert data["total"] == 3
    assert data["items"][0]["name"] == "Ada Lovelace"


def test_null_email_and_company_read_as_blank():
    contact = ContactResponse(id=4, name="Bob", email=None, company=None)

    assert contact.email == ""
    assert contact.company == ""
    assert filter_contacts([contact], "bob") == [contact]
    assert filter_contacts([contact], "acme") == []
