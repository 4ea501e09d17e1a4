"""
Gift record store.

GiftStore holds the rules every backend shares: required-field validation,
reference generation, caller scoping, status transitions and the penalty
ledger. A backend only has to say how to read a collection and how to
mutate one inside a critical section:

  - InMemoryGiftStore (below): plain Python lists, lost on restart.
  - JsonFileGiftStore (json_store.py): one JSON array per collection.

Records are kept as camelCase dicts, exactly as they are written to disk,
and turned into Pydantic models on the way out.
"""

from __future__ import annotations

import copy
import logging
import math
import random
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, Iterator, Mapping

from bgts import config
from bgts.errors import InvalidTransitionError, NotFoundError, StorageError, ValidationError
from bgts.models.schemas import (
    Agency,
    CallerScope,
    GiftDeclaration,
    GiftStatus,
    PenaltyRecord,
    PenaltyStatus,
    Role,
)
from bgts.rules.penalty import calculate_penalty, coerce_value
from bgts.rules.sources import is_prohibited_relationship

logger = logging.getLogger(__name__)

GIFTS = "gifts"
PENALTIES = "penalties"
USERS = "users"
AGENCIES = "agencies"
COLLECTIONS = (GIFTS, PENALTIES, USERS, AGENCIES)

# Only a pending declaration can be decided on.
REVIEW_TRANSITIONS: dict[GiftStatus, set[GiftStatus]] = {
    GiftStatus.pending: {GiftStatus.approved, GiftStatus.returned, GiftStatus.submitted},
}

REFERENCE_MIN = 1000
REFERENCE_MAX = 9999


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _valid_iso_date(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def _as_dict(data: Any) -> dict:
    if data is None:
        return {}
    if hasattr(data, "model_dump"):
        return data.model_dump(by_alias=True, exclude_none=True)
    return dict(data)


def validate_declaration(data: Mapping[str, Any]) -> dict:
    """Check a raw declaration and return a normalized copy.

    Raises ValidationError listing every missing field, or every malformed
    one if nothing is missing.
    """
    giver = data.get("giver") or {}
    if not isinstance(giver, Mapping):
        giver = {"name": giver} if isinstance(giver, str) else {}

    missing = []
    if _blank(data.get("description")):
        missing.append("description")
    if _blank(data.get("value")):
        missing.append("value")
    if _blank(giver.get("name")):
        missing.append("giver.name")
    if _blank(data.get("relationship")):
        missing.append("relationship")
    if missing:
        raise ValidationError.missing(missing)

    malformed = []
    value = data.get("value")
    amount = coerce_value(value)
    if amount == 0 and not _is_zero(value):
        malformed.append("value")

    receipt_date = data.get("receiptDate")
    if not _blank(receipt_date) and not _valid_iso_date(str(receipt_date)):
        malformed.append("receiptDate")
    if malformed:
        raise ValidationError(f"Malformed fields: {', '.join(malformed)}", malformed)

    record = {k: v for k, v in data.items() if k not in ("giver", "value")}
    record["description"] = str(data["description"]).strip()
    record["relationship"] = str(data["relationship"]).strip()
    record["value"] = amount
    record["giver"] = {k: v for k, v in giver.items() if v is not None}
    if _blank(receipt_date):
        record.pop("receiptDate", None)
    return record


def _is_zero(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    try:
        number = float(str(value).replace(",", "").strip())
    except ValueError:
        return False
    return math.isfinite(number) and number == 0


def in_scope(record: Mapping[str, Any], scope: CallerScope | None) -> bool:
    """Whether the caller may see a record (gift or penalty)."""
    if scope is None or scope.is_unrestricted:
        return True
    if scope.role is Role.gift_administrator:
        return scope.agency is not None and record.get("agency") == scope.agency
    return record.get("ownerId") == scope.user_id


class GiftStore(ABC):
    """Storage interface shared by the in-memory and file-backed stores."""

    backend = "abstract"

    def __init__(self, reference_prefix: str | None = None):
        self.reference_prefix = reference_prefix or config.REFERENCE_PREFIX

    # ── Backend primitives ─────────────────────────────────────────

    @abstractmethod
    def _read(self, collection: str) -> list[dict]:
        """Return a private copy of a collection."""

    @abstractmethod
    @contextmanager
    def _mutate(self, collection: str) -> Iterator[list[dict]]:
        """Yield a collection for in-place changes and persist it on exit.

        Nothing is persisted if the block raises.
        """

    # ── Declarations ───────────────────────────────────────────────

    def submit(self, data: Any, owner: CallerScope | None = None) -> GiftDeclaration:
        record = validate_declaration(_as_dict(data))

        # The caller may raise the flag, never clear it for a prohibited source.
        record["isProhibitedSource"] = bool(record.get("isProhibitedSource")) or bool(
            is_prohibited_relationship(record["relationship"])
        )

        recipient = dict(record.get("recipient") or {})
        if owner is not None:
            recipient.setdefault("name", owner.name)
            if owner.designation:
                recipient.setdefault("designation", owner.designation)
            if owner.agency:
                recipient.setdefault("agency", owner.agency)
            record["ownerId"] = owner.user_id
            record["agency"] = owner.agency
        else:
            record.setdefault("agency", recipient.get("agency"))
        if recipient:
            record["recipient"] = recipient

        submitted_at = _now()
        record["id"] = uuid.uuid4().hex
        record["status"] = GiftStatus.pending.value
        record["submittedAt"] = submitted_at.isoformat()

        with self._mutate(GIFTS) as gifts:
            taken = {g.get("reference") for g in gifts}
            record["reference"] = self._new_reference(submitted_at.year, taken)
            gifts.append(record)

        logger.info("Gift declaration %s stored (%s)", record["reference"], self.backend)
        return GiftDeclaration.model_validate(record)

    def list(self, scope: CallerScope | None = None, status: str | None = None) -> list[GiftDeclaration]:
        """All declarations visible to the caller, oldest first."""
        return [
            GiftDeclaration.model_validate(g)
            for g in self._read(GIFTS)
            if in_scope(g, scope) and (status is None or g.get("status") == status)
        ]

    def get_by_id(self, gift_id: str, scope: CallerScope | None = None) -> GiftDeclaration:
        """Look a declaration up by id or by reference."""
        for g in self._read(GIFTS):
            if gift_id in (g.get("id"), g.get("reference")) and in_scope(g, scope):
                return GiftDeclaration.model_validate(g)
        raise NotFoundError(f"Gift declaration '{gift_id}' not found")

    def review(
        self,
        gift_id: str,
        decision: str,
        reviewer: CallerScope,
        comments: str | None = None,
    ) -> GiftDeclaration:
        try:
            target = GiftStatus(decision)
        except ValueError:
            raise ValidationError(f"Unknown decision '{decision}'", ["decision"]) from None

        with self._mutate(GIFTS) as gifts:
            record = next(
                (g for g in gifts if gift_id in (g.get("id"), g.get("reference")) and in_scope(g, reviewer)),
                None,
            )
            if record is None:
                raise NotFoundError(f"Gift declaration '{gift_id}' not found")

            current = GiftStatus(record.get("status", GiftStatus.pending.value))
            if target not in REVIEW_TRANSITIONS.get(current, set()):
                raise InvalidTransitionError(current.value, target.value)

            record["status"] = target.value
            record["reviewedAt"] = _now().isoformat()
            record["reviewedBy"] = reviewer.user_id
            if comments:
                record["reviewComments"] = comments

        logger.info("Gift declaration %s marked %s by %s", record["reference"], target.value, reviewer.user_id)
        return GiftDeclaration.model_validate(record)

    def _new_reference(self, year: int, taken: set) -> str:
        # Random suffix, retried on collision. The space holds 9000 per year.
        if len(taken) >= REFERENCE_MAX - REFERENCE_MIN + 1:
            free = [
                n for n in range(REFERENCE_MIN, REFERENCE_MAX + 1)
                if f"{self.reference_prefix}-{year}-{n}" not in taken
            ]
            if not free:
                raise StorageError("No gift references left for this year")
            return f"{self.reference_prefix}-{year}-{random.choice(free)}"

        while True:
            reference = f"{self.reference_prefix}-{year}-{random.randint(REFERENCE_MIN, REFERENCE_MAX)}"
            if reference not in taken:
                return reference

    # ── Penalty ledger ─────────────────────────────────────────────

    def record_penalty(self, data: Any, recorded_by: CallerScope | None = None) -> PenaltyRecord:
        data = _as_dict(data)

        missing = [
            name for name in ("publicServant", "breachType", "giftValue")
            if _blank(data.get(name))
        ]
        if missing:
            raise ValidationError.missing(missing)

        penalty_date = data.get("date")
        if _blank(penalty_date):
            penalty_date = _now().date().isoformat()
        elif not _valid_iso_date(str(penalty_date)):
            raise ValidationError("Malformed fields: date", ["date"])

        result = calculate_penalty(data.get("giftValue"), data.get("breachNumber"))
        record = {
            "id": uuid.uuid4().hex,
            "date": str(penalty_date),
            "publicServant": str(data["publicServant"]).strip(),
            "ownerId": data.get("ownerId"),
            "agency": data.get("agency"),
            "breachType": str(data["breachType"]).strip(),
            "breachNumber": result.breach_number,
            "giftValue": result.value,
            "multiplier": result.multiplier,
            "fineAmount": result.fine,
            "formatted": result.formatted,
            "status": PenaltyStatus.unpaid.value,
            "giftReference": data.get("giftReference"),
            "recordedBy": recorded_by.user_id if recorded_by else None,
        }

        with self._mutate(PENALTIES) as penalties:
            penalties.append(record)

        logger.info("Penalty %s recorded (breach #%d, x%d)", record["id"], result.breach_number, result.multiplier)
        return PenaltyRecord.model_validate(record)

    def list_penalties(self, scope: CallerScope | None = None) -> list[PenaltyRecord]:
        return [PenaltyRecord.model_validate(p) for p in self._read(PENALTIES) if in_scope(p, scope)]

    def mark_penalty_paid(self, penalty_id: str, scope: CallerScope | None = None) -> PenaltyRecord:
        with self._mutate(PENALTIES) as penalties:
            record = next((p for p in penalties if p.get("id") == penalty_id and in_scope(p, scope)), None)
            if record is None:
                raise NotFoundError(f"Penalty '{penalty_id}' not found")
            record["status"] = PenaltyStatus.paid.value
        return PenaltyRecord.model_validate(record)

    # ── Directory ──────────────────────────────────────────────────

    def list_users(self) -> list[dict]:
        return self._read(USERS)

    def upsert_user(self, user: Mapping[str, Any]) -> None:
        self._upsert(USERS, user)

    def list_agencies(self) -> list[Agency]:
        return [Agency.model_validate(a) for a in self._read(AGENCIES)]

    def upsert_agency(self, agency: Mapping[str, Any]) -> None:
        self._upsert(AGENCIES, agency)

    def _upsert(self, collection: str, item: Mapping[str, Any]) -> None:
        item = dict(item)
        with self._mutate(collection) as items:
            for i, existing in enumerate(items):
                if existing.get("id") == item["id"]:
                    items[i] = item
                    break
            else:
                items.append(item)

    def counts(self) -> dict[str, int]:
        return {name: len(self._read(name)) for name in (GIFTS, PENALTIES)}


class InMemoryGiftStore(GiftStore):
    """Process-local store. Data is lost on restart."""

    backend = "memory"

    def __init__(self, reference_prefix: str | None = None):
        super().__init__(reference_prefix)
        self._collections: dict[str, list[dict]] = {name: [] for name in COLLECTIONS}
        self._lock = threading.Lock()

    def _read(self, collection: str) -> list[dict]:
        with self._lock:
            return copy.deepcopy(self._collections[collection])

    @contextmanager
    def _mutate(self, collection: str) -> Iterator[list[dict]]:
        with self._lock:
            working = copy.deepcopy(self._collections[collection])
            yield working
            self._collections[collection] = working


# ---------------------------------------------------------------------------
# Process-wide store
#
# Routes get the store through FastAPI's dependency system (Depends(get_store)),
# so tests can swap in their own instance with app.dependency_overrides.
# ---------------------------------------------------------------------------

_store: GiftStore | None = None
_store_lock = threading.Lock()


def create_store(backend: str | None = None) -> GiftStore:
    backend = (backend or config.STORAGE_BACKEND).lower()
    if backend == "memory":
        return InMemoryGiftStore()
    if backend == "json":
        from bgts.json_store import JsonFileGiftStore

        return JsonFileGiftStore(config.DATA_DIR)
    raise ValueError(f"Unknown storage backend '{backend}' (expected 'memory' or 'json')")


def get_store() -> GiftStore:
    global _store
    with _store_lock:
        if _store is None:
            _store = create_store()
            logger.info("Using %s gift store", _store.backend)
        return _store
