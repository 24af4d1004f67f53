from __future__ import annotations

import asyncio

import httpx
import pytest

from core.catalog import MEMBERSHIPS, ORGANIZATIONS
from core.domain.errors import ValidationUnmet
from core.domain.models import Organization
from core.services.resource_mirror import ResourceMirror
from core.services.selection import SelectionIndex, SubmitOutcome, filter_entities, find_exact

ORGS_PATH = "Organization/GetAll-organizations"


@pytest.fixture
def orgs(api, pipeline, session) -> ResourceMirror:
    api.on(
        "GET",
        ORGS_PATH,
        [{"id": 1, "name": "Acme Corp"}, {"id": 2, "name": "Acme Labs"}, {"id": 3, "name": "Beta"}],
    )
    mirror = ResourceMirror(ORGANIZATIONS, pipeline=pipeline, session=session)
    asyncio.run(mirror.load())
    return mirror


def test_filter_entities_is_case_insensitive_and_ordered() -> None:
    entities = [Organization(id="1", name="Acme Corp"), Organization(id="2", name="beta"), Organization(id="3", name="ACME Labs")]

    assert [e.id for e in filter_entities(entities, "acme")] == ["1", "3"]
    assert [e.id for e in filter_entities(entities, "")] == ["1", "2", "3"]
    assert filter_entities(entities, "zzz") == []


def test_find_exact_ignores_case_only() -> None:
    entities = [Organization(id="1", name="Acme Corp")]

    assert find_exact(entities, "ACME CORP").id == "1"
    assert find_exact(entities, "Acme Corp ") is None
    assert find_exact(entities, "") is None


def test_exact_typed_name_selects(orgs) -> None:
    picker = SelectionIndex(orgs)

    state = picker.type_text("acme corp")

    assert state.id == "1"
    assert state.display_name == "Acme Corp"
    assert not picker.dropdown_visible
    assert picker.candidates == []


def test_partial_text_offers_candidates_without_selecting(orgs) -> None:
    picker = SelectionIndex(orgs)
    picker.type_text("acme corp")

    picker.type_text("Acme Cor")

    assert picker.selection.is_empty
    assert picker.dropdown_visible
    assert [e.name for e in picker.candidates] == ["Acme Corp"]
    picker.type_text("acme")
    assert [e.name for e in picker.candidates] == ["Acme Corp", "Acme Labs"]


def test_pick_clears_the_query(orgs) -> None:
    picker = SelectionIndex(orgs)
    picker.type_text("lab")

    picker.pick("2")

    assert picker.query == ""
    assert picker.input_text == "Acme Labs"
    assert not picker.dropdown_visible


def test_pick_unknown_entity_is_rejected(orgs) -> None:
    picker = SelectionIndex(orgs)

    with pytest.raises(ValidationUnmet):
        picker.pick("99")
    assert picker.selection.is_empty


def test_selection_follows_deletion(api, orgs) -> None:
    api.on("DELETE", "Organization/1", lambda request: httpx.Response(200))
    picker = SelectionIndex(orgs)
    picker.pick("1")

    asyncio.run(orgs.delete("1"))

    assert picker.selection.is_empty
    assert picker.selected is None


def test_selection_tracks_renamed_entity(api, orgs) -> None:
    api.on("PUT", "Organization/1", lambda request: httpx.Response(204))
    picker = SelectionIndex(orgs)
    picker.pick("1")

    asyncio.run(orgs.update("1", {"name": "Acme Inc"}))

    assert picker.selection.display_name == "Acme Inc"


def test_submit_on_empty_collection_asks_for_a_parent(api, pipeline, session) -> None:
    api.on("GET", ORGS_PATH, [])
    mirror = ResourceMirror(ORGANIZATIONS, pipeline=pipeline, session=session)
    asyncio.run(mirror.load())

    assert SelectionIndex(mirror).require_selection() is SubmitOutcome.CREATE_PARENT_FIRST


def test_submit_without_selection_fails(orgs) -> None:
    picker = SelectionIndex(orgs)
    picker.type_text("Acme")

    with pytest.raises(ValidationUnmet) as excinfo:
        picker.require_selection()

    assert excinfo.value.message == "Please select an organization"
    picker.type_text("beta")
    assert picker.require_selection() is SubmitOutcome.SELECTED


def test_remember_writes_the_session_pointer(orgs, session) -> None:
    picker = SelectionIndex(orgs, session=session, remember=True)

    picker.type_text("beta")
    assert session.selected_organization.id == "3"
    assert session.selected_organization.name == "Beta"

    picker.clear()
    assert session.selected_organization is None


def test_remember_requires_a_session(orgs) -> None:
    with pytest.raises(ValueError):
        SelectionIndex(orgs, remember=True)


def test_membership_picker_remembers_the_organization(api, pipeline, session) -> None:
    api.on(
        "GET",
        "OrganizationUser/get-organization-withits-user",
        [{"id": 100, "organization": {"id": 7, "name": "Acme Corp"}}],
    )
    mirror = ResourceMirror(MEMBERSHIPS, pipeline=pipeline, session=session)
    asyncio.run(mirror.load())
    picker = SelectionIndex(mirror, session=session, remember=True)

    picker.type_text("ACME CORP")

    assert picker.selection.id == "100"
    assert session.selected_organization.id == "7"


def test_adopt_session_selection_prefers_persisted_pointer(orgs, session) -> None:
    session.select_organization("2", "Acme Labs")
    picker = SelectionIndex(orgs, session=session)

    assert picker.adopt_session_selection().id == "2"

    session.select_organization("99", "Gone")
    assert SelectionIndex(orgs, session=session).adopt_session_selection().id == "1"
