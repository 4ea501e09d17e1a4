"""
/api/gifts -- Gift declarations.

  POST /api/gifts                 Declare a gift (any signed-in user)
  GET  /api/gifts                 Declarations visible to the caller
  GET  /api/gifts/{gift_id}       One declaration, by id or reference
  POST /api/gifts/{gift_id}/review  Approve, return or forward (administrators)

What a caller sees depends on their role: public servants see their own
declarations, gift administrators see their agency's, the Commission sees
everything. Records outside the caller's scope answer 404, as if they did
not exist.

These handlers are plain `def` so the file-backed store's disk I/O runs in
FastAPI's threadpool instead of blocking the event loop.
"""

from fastapi import APIRouter, Depends, Query

from bgts.identity import get_caller, require_reviewer
from bgts.models.schemas import (
    CallerScope,
    GiftDeclaration,
    GiftDeclarationIn,
    GiftStatus,
    ReviewRequest,
    SubmitResponse,
)
from bgts.store import GiftStore, get_store

router = APIRouter()


@router.post(
    "/api/gifts",
    response_model=SubmitResponse,
    status_code=201,
    summary="Declare a gift",
    description=(
        "Stores a new declaration with status 'pending' and returns its reference. "
        "description, value, giver.name and relationship are required; a 422 lists "
        "every field that is missing."
    ),
    tags=["Declarations"],
)
def submit_gift(
    declaration: GiftDeclarationIn,
    caller: CallerScope = Depends(get_caller),
    store: GiftStore = Depends(get_store),
) -> SubmitResponse:
    gift = store.submit(declaration, owner=caller)
    return SubmitResponse(reference=gift.reference, data=gift)


@router.get(
    "/api/gifts",
    response_model=list[GiftDeclaration],
    summary="List declarations",
    description="Declarations visible to the caller, oldest first.",
    tags=["Declarations"],
)
def list_gifts(
    status: GiftStatus | None = Query(default=None, description="Only return declarations in this status."),
    caller: CallerScope = Depends(get_caller),
    store: GiftStore = Depends(get_store),
) -> list[GiftDeclaration]:
    return store.list(caller, status=status.value if status else None)


@router.get(
    "/api/gifts/{gift_id}",
    response_model=GiftDeclaration,
    summary="Get a declaration",
    tags=["Declarations"],
)
def get_gift(
    gift_id: str,
    caller: CallerScope = Depends(get_caller),
    store: GiftStore = Depends(get_store),
) -> GiftDeclaration:
    return store.get_by_id(gift_id, caller)


@router.post(
    "/api/gifts/{gift_id}/review",
    response_model=GiftDeclaration,
    summary="Review a declaration",
    description="Only pending declarations can be reviewed. Anything else answers 409.",
    tags=["Declarations"],
)
def review_gift(
    gift_id: str,
    review: ReviewRequest,
    reviewer: CallerScope = Depends(require_reviewer),
    store: GiftStore = Depends(get_store),
) -> GiftDeclaration:
    return store.review(gift_id, review.decision, reviewer, review.comments)
