"""
/api/penalties -- Penalty ledger.

Fines that administrators have imposed. The amount is always worked out by
the penalty calculator from the gift value and breach number; callers
cannot set it directly.
"""

from fastapi import APIRouter, Depends

from bgts.identity import get_caller, require_reviewer
from bgts.models.schemas import CallerScope, PenaltyRecord, PenaltyRecordIn
from bgts.store import GiftStore, get_store

router = APIRouter()


@router.get(
    "/api/penalties",
    response_model=list[PenaltyRecord],
    summary="List penalties",
    tags=["Penalties"],
)
def list_penalties(
    caller: CallerScope = Depends(get_caller),
    store: GiftStore = Depends(get_store),
) -> list[PenaltyRecord]:
    return store.list_penalties(caller)


@router.post(
    "/api/penalties",
    response_model=PenaltyRecord,
    status_code=201,
    summary="Record a penalty",
    tags=["Penalties"],
)
def record_penalty(
    penalty: PenaltyRecordIn,
    reviewer: CallerScope = Depends(require_reviewer),
    store: GiftStore = Depends(get_store),
) -> PenaltyRecord:
    # An agency administrator can only fine people in their own agency.
    if not reviewer.is_unrestricted:
        penalty = penalty.model_copy(update={"agency": reviewer.agency})
    return store.record_penalty(penalty, recorded_by=reviewer)


@router.post(
    "/api/penalties/{penalty_id}/pay",
    response_model=PenaltyRecord,
    summary="Mark a penalty as paid",
    tags=["Penalties"],
)
def pay_penalty(
    penalty_id: str,
    reviewer: CallerScope = Depends(require_reviewer),
    store: GiftStore = Depends(get_store),
) -> PenaltyRecord:
    return store.mark_penalty_paid(penalty_id, reviewer)
