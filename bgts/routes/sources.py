"""
POST /api/classify-source -- Prohibited source check.

Tells a public servant, before accepting a gift, whether the giver is a
prohibited source under the Gift Rules 2017. Unknown relationships are
never guessed at: they come back as REVIEW REQUIRED.

Also answers on /api/check-source, the path older form clients post to.
"""

from fastapi import APIRouter

from bgts.models.schemas import SourceCheckRequest, SourceCheckResponse
from bgts.rules.sources import classify_source

router = APIRouter()


@router.post(
    "/api/classify-source",
    response_model=SourceCheckResponse,
    summary="Classify a gift source",
    description=(
        "Maps the giver's relationship category to prohibited, allowed or reviewRequired, "
        "with the rule that backs the verdict."
    ),
    tags=["Rules"],
)
@router.post("/api/check-source", response_model=SourceCheckResponse, include_in_schema=False)
async def classify(req: SourceCheckRequest) -> SourceCheckResponse:
    result = classify_source(req.relationship_category)
    return SourceCheckResponse(
        relationship=result.relationship,
        verdict=result.verdict,
        title=result.title,
        description=result.description,
        rule=result.rule,
        is_prohibited=result.is_prohibited,
    )
