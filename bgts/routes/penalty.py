"""
POST /api/penalty -- Fine calculation.

Returns the fine for accepting a gift late or from a prohibited source:
the gift value times 2, 5 or 10 depending on how many times the public
servant has breached the rules. Pure calculation, nothing is stored.

Also answers on /api/calculate-penalty, the path older form clients post to.
"""

from fastapi import APIRouter

from bgts.models.schemas import PenaltyRequest, PenaltyResponse
from bgts.rules.penalty import calculate_penalty

router = APIRouter()


@router.post(
    "/api/penalty",
    response_model=PenaltyResponse,
    summary="Calculate a penalty",
    description=(
        "Multiplies the gift value by 2 (first breach), 5 (second breach) or 10 "
        "(third and later). Invalid values count as 0, invalid breach numbers as 1."
    ),
    tags=["Rules"],
)
@router.post("/api/calculate-penalty", response_model=PenaltyResponse, include_in_schema=False)
async def penalty(req: PenaltyRequest) -> PenaltyResponse:
    result = calculate_penalty(req.value, req.breach_number)
    return PenaltyResponse(
        value=result.value,
        breach_number=result.breach_number,
        multiplier=result.multiplier,
        fine=result.fine,
        formatted=result.formatted,
    )
