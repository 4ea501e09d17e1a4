"""Tests for the in-memory gift store: validation, references, scoping, review."""

import re
import sys
import os
import threading

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from bgts.errors import InvalidTransitionError, NotFoundError, ValidationError
from bgts.models.schemas import CallerScope, GiftStatus, Role
from bgts.store import InMemoryGiftStore, create_store

REFERENCE_PATTERN = re.compile(r"^BGTS-\d{4}-\d{4}$")

TASHI = CallerScope(user_id="u_tashi", name="Tashi Sherpa", agency="Ministry of Finance", role=Role.public_servant)
SONAM = CallerScope(user_id="u_sonam", name="Sonam Choden", agency="Ministry of Finance", role=Role.public_servant)
KARMA = CallerScope(user_id="u_karma", name="Karma Wangdi", agency="Ministry of Health", role=Role.public_servant)
MOF_ADMIN = CallerScope(user_id="u_pema", name="Pema Dorji", agency="Ministry of Finance", role=Role.gift_administrator)
ACC = CallerScope(user_id="u_acc", name="ACC Officer", agency="Anti-Corruption Commission", role=Role.commission)


def declaration(**overrides):
    data = {
        "description": "Traditional Thanka painting",
        "value": 5000,
        "receiptDate": "2023-10-15",
        "giver": {"name": "Local Artist", "agency": "Thimphu Crafts"},
        "relationship": "personal-friend",
        "circumstances": "Gift at a family wedding",
    }
    data.update(overrides)
    return data


@pytest.fixture
def store():
    return InMemoryGiftStore()


class TestSubmitValidation:

    @pytest.mark.parametrize("field, patch", [
        ("description", {"description": ""}),
        ("description", {"description": "   "}),
        ("value", {"value": None}),
        ("value", {"value": ""}),
        ("giver.name", {"giver": {"name": ""}}),
        ("giver.name", {"giver": None}),
        ("relationship", {"relationship": ""}),
    ])
    def test_blank_required_field_is_named(self, store, field, patch):
        with pytest.raises(ValidationError) as exc:
            store.submit(declaration(**patch))
        assert exc.value.fields == [field]
        assert field in exc.value.message
        assert store.list() == []

    def test_all_missing_fields_reported_together(self, store):
        with pytest.raises(ValidationError) as exc:
            store.submit({})
        assert exc.value.fields == ["description", "value", "giver.name", "relationship"]

    @pytest.mark.parametrize("value", ["lots", -10, True])
    def test_malformed_value(self, store, value):
        with pytest.raises(ValidationError) as exc:
            store.submit(declaration(value=value))
        assert exc.value.fields == ["value"]
        assert store.list() == []

    def test_malformed_receipt_date(self, store):
        with pytest.raises(ValidationError) as exc:
            store.submit(declaration(receiptDate="15/10/2023"))
        assert exc.value.fields == ["receiptDate"]

    def test_zero_value_is_accepted(self, store):
        assert store.submit(declaration(value=0)).value == 0


class TestSubmit:

    def test_new_record(self, store):
        gift = store.submit(declaration(), owner=TASHI)
        assert REFERENCE_PATTERN.match(gift.reference)
        assert gift.reference.split("-")[1] == str(gift.submitted_at.year)
        assert gift.status is GiftStatus.pending
        assert gift.owner_id == "u_tashi"
        assert gift.agency == "Ministry of Finance"
        assert gift.recipient.name == "Tashi Sherpa"
        assert gift.giver.name == "Local Artist"
        assert gift.id

    def test_numeric_string_value(self, store):
        assert store.submit(declaration(value="5,000")).value == 5000

    def test_prohibited_flag_derived_from_relationship(self, store):
        assert store.submit(declaration(relationship="does-business")).is_prohibited_source is True
        assert store.submit(declaration(relationship="immediate-relative")).is_prohibited_source is False
        assert store.submit(declaration(relationship="neighbour")).is_prohibited_source is False

    def test_explicit_prohibited_flag_is_kept(self, store):
        gift = store.submit(declaration(relationship="neighbour", isProhibitedSource=True))
        assert gift.is_prohibited_source is True

    def test_prohibited_flag_cannot_be_cleared(self, store):
        gift = store.submit(declaration(relationship="seeks-action", isProhibitedSource=False))
        assert gift.is_prohibited_source is True
        gift = store.submit(declaration(relationship="personal-friend", isProhibitedSource=False))
        assert gift.is_prohibited_source is False

    def test_client_cannot_set_status(self, store):
        assert store.submit(declaration(status="approved")).status is GiftStatus.pending

    def test_custom_prefix(self):
        gift = InMemoryGiftStore(reference_prefix="ACC").submit(declaration())
        assert gift.reference.startswith("ACC-")

    def test_references_unique(self, store):
        refs = [store.submit(declaration()).reference for _ in range(300)]
        assert len(set(refs)) == len(refs)
        assert all(REFERENCE_PATTERN.match(r) for r in refs)

    def test_references_unique_across_threads(self, store):
        def worker():
            for _ in range(25):
                store.submit(declaration())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        refs = [g.reference for g in store.list()]
        assert len(refs) == 200
        assert len(set(refs)) == 200


class TestListAndGet:

    @pytest.fixture
    def populated(self, store):
        store.submit(declaration(description="tashi 1"), owner=TASHI)
        store.submit(declaration(description="sonam 1"), owner=SONAM)
        store.submit(declaration(description="karma 1"), owner=KARMA)
        store.submit(declaration(description="tashi 2"), owner=TASHI)
        return store

    def test_insertion_order(self, populated):
        assert [g.description for g in populated.list()] == ["tashi 1", "sonam 1", "karma 1", "tashi 2"]

    def test_public_servant_sees_own_only(self, populated):
        for scope in (TASHI, SONAM, KARMA):
            visible = populated.list(scope)
            assert visible
            assert all(g.owner_id == scope.user_id for g in visible)
        assert [g.description for g in populated.list(TASHI)] == ["tashi 1", "tashi 2"]

    def test_administrator_sees_own_agency(self, populated):
        visible = populated.list(MOF_ADMIN)
        assert {g.description for g in visible} == {"tashi 1", "sonam 1", "tashi 2"}
        assert all(g.agency == "Ministry of Finance" for g in visible)

    def test_administrator_without_agency_sees_nothing(self, populated):
        orphan = CallerScope(user_id="u_x", name="X", role=Role.gift_administrator)
        assert populated.list(orphan) == []

    def test_commission_sees_everything(self, populated):
        assert len(populated.list(ACC)) == 4

    def test_status_filter(self, populated):
        first = populated.list()[0]
        populated.review(first.id, "approved", ACC)
        assert [g.id for g in populated.list(status="approved")] == [first.id]
        assert len(populated.list(status="pending")) == 3

    def test_get_by_id_and_reference(self, store):
        gift = store.submit(declaration())
        assert store.get_by_id(gift.id).reference == gift.reference
        assert store.get_by_id(gift.reference).id == gift.id

    def test_get_missing(self, store):
        with pytest.raises(NotFoundError):
            store.get_by_id("nope")

    def test_get_outside_scope_is_not_found(self, store):
        gift = store.submit(declaration(), owner=KARMA)
        with pytest.raises(NotFoundError):
            store.get_by_id(gift.id, TASHI)

    def test_returned_records_are_copies(self, store):
        gift = store.submit(declaration())
        gift.description = "changed"
        assert store.get_by_id(gift.id).description == "Traditional Thanka painting"


class TestReview:

    def test_approve(self, store):
        gift = store.submit(declaration(), owner=TASHI)
        reviewed = store.review(gift.id, "approved", MOF_ADMIN, comments="Within limits")
        assert reviewed.status is GiftStatus.approved
        assert reviewed.reviewed_by == "u_pema"
        assert reviewed.review_comments == "Within limits"
        assert reviewed.reviewed_at is not None
        assert store.get_by_id(gift.id).status is GiftStatus.approved

    def test_only_pending_can_be_reviewed(self, store):
        gift = store.submit(declaration(), owner=TASHI)
        store.review(gift.id, "returned", MOF_ADMIN)
        with pytest.raises(InvalidTransitionError):
            store.review(gift.id, "approved", MOF_ADMIN)
        assert store.get_by_id(gift.id).status is GiftStatus.returned

    def test_cannot_move_back_to_pending(self, store):
        gift = store.submit(declaration())
        with pytest.raises(InvalidTransitionError):
            store.review(gift.id, "pending", ACC)

    def test_unknown_decision(self, store):
        gift = store.submit(declaration())
        with pytest.raises(ValidationError) as exc:
            store.review(gift.id, "burn", ACC)
        assert exc.value.fields == ["decision"]

    def test_other_agency_cannot_review(self, store):
        gift = store.submit(declaration(), owner=KARMA)
        with pytest.raises(NotFoundError):
            store.review(gift.id, "approved", MOF_ADMIN)


class TestPenaltyLedger:

    def test_fine_comes_from_calculator(self, store):
        record = store.record_penalty(
            {"publicServant": "Karma Wangdi", "breachType": "Late Declaration (24h rule)",
             "giftValue": 7000, "breachNumber": 1, "date": "2023-09-15"},
            recorded_by=ACC,
        )
        assert record.multiplier == 2
        assert record.fine_amount == 14000
        assert record.formatted == "Nu. 14,000"
        assert record.status.value == "unpaid"
        assert record.recorded_by == "u_acc"

    def test_missing_fields(self, store):
        with pytest.raises(ValidationError) as exc:
            store.record_penalty({"giftValue": 100})
        assert exc.value.fields == ["publicServant", "breachType"]

    def test_default_date_is_today(self, store):
        record = store.record_penalty({"publicServant": "A", "breachType": "Late", "giftValue": 10})
        assert re.match(r"^\d{4}-\d{2}-\d{2}$", record.date)

    def test_scoped_listing(self, store):
        store.record_penalty({"publicServant": "Tashi", "ownerId": "u_tashi", "agency": "Ministry of Finance",
                              "breachType": "Late", "giftValue": 10})
        store.record_penalty({"publicServant": "Karma", "ownerId": "u_karma", "agency": "Ministry of Health",
                              "breachType": "Late", "giftValue": 10})
        assert [p.public_servant for p in store.list_penalties(TASHI)] == ["Tashi"]
        assert [p.public_servant for p in store.list_penalties(MOF_ADMIN)] == ["Tashi"]
        assert len(store.list_penalties(ACC)) == 2

    def test_mark_paid(self, store):
        record = store.record_penalty({"publicServant": "A", "breachType": "Late", "giftValue": 10})
        assert store.mark_penalty_paid(record.id).status.value == "paid"
        with pytest.raises(NotFoundError):
            store.mark_penalty_paid("missing")


class TestDirectory:

    def test_upsert_does_not_duplicate(self, store):
        store.upsert_agency({"id": "mof", "name": "Ministry of Finance"})
        store.upsert_agency({"id": "mof", "name": "Ministry of Finance", "code": "MoF"})
        agencies = store.list_agencies()
        assert len(agencies) == 1
        assert agencies[0].code == "MoF"


class TestCreateStore:

    def test_memory(self):
        assert create_store("memory").backend == "memory"

    def test_json(self, tmp_path, monkeypatch):
        monkeypatch.setattr("bgts.config.DATA_DIR", tmp_path)
        assert create_store("json").backend == "json"

    def test_unknown(self):
        with pytest.raises(ValueError):
            create_store("postgres")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
