"""
GET /api/me and GET /api/agencies -- Who am I, and which agencies exist.
"""

from fastapi import APIRouter, Depends

from bgts.identity import get_caller
from bgts.models.schemas import Agency, CallerScope
from bgts.store import GiftStore, get_store

router = APIRouter()


@router.get("/api/me", response_model=CallerScope, summary="Current caller", tags=["Directory"])
def me(caller: CallerScope = Depends(get_caller)) -> CallerScope:
    return caller


@router.get("/api/agencies", response_model=list[Agency], summary="List agencies", tags=["Directory"])
def agencies(store: GiftStore = Depends(get_store)) -> list[Agency]:
    return store.list_agencies()
