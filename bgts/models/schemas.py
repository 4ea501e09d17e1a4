"""
BGTS API -- Pydantic Data Models

Every request and response in the API is defined here as a Pydantic model.
Python attribute names are snake_case; on the wire every field is
camelCase (the format the declaration form and the JSON data files use).

Request models for declarations are deliberately lenient: every field is
optional so that the store can report *all* missing fields at once, by
name, instead of Pydantic rejecting the first one it sees.
"""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt
from pydantic.alias_generators import to_camel

from bgts.rules.sources import Verdict


class CamelModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Amounts as posted by a form. Booleans stay booleans instead of becoming
# 1.0, so the calculator and the store can treat them as bad input.
AmountInput = StrictBool | StrictInt | StrictFloat | str | None


# ---------------------------------------------------------------------------
# Enums -- Constrained choices for API fields
# ---------------------------------------------------------------------------

class GiftStatus(str, Enum):
    """Lifecycle of a declaration. Every record starts as pending."""

    pending = "pending"
    approved = "approved"      # Administrator accepted the declaration
    returned = "returned"      # Gift must be returned to the giver
    submitted = "submitted"    # Forwarded to the Commission


class Role(str, Enum):
    """Who the caller is. Decides which records they may see."""

    public_servant = "public_servant"            # Own declarations only
    gift_administrator = "gift_administrator"    # Everything in their agency
    commission = "commission"                    # Everything


class PenaltyStatus(str, Enum):
    unpaid = "unpaid"
    paid = "paid"


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

class CallerScope(CamelModel):
    """The authenticated caller, as resolved by the identity provider."""

    user_id: str = Field(description="Directory identifier of the caller.", examples=["u_tashi"])
    name: str = Field(description="Display name.", examples=["Tashi Sherpa"])
    designation: str | None = Field(default=None, examples=["Public Servant"])
    agency: str | None = Field(default=None, examples=["Ministry of Finance"])
    role: Role = Field(default=Role.public_servant)

    @property
    def is_unrestricted(self) -> bool:
        return self.role is Role.commission

    @property
    def can_review(self) -> bool:
        return self.role in (Role.gift_administrator, Role.commission)


class Agency(CamelModel):
    id: str = Field(examples=["mof"])
    name: str = Field(examples=["Ministry of Finance"])
    code: str | None = Field(default=None, examples=["MoF"])


# ---------------------------------------------------------------------------
# /api/penalty -- Fine calculation
# ---------------------------------------------------------------------------

class PenaltyRequest(CamelModel):
    """Both fields are coerced, never rejected: a bad value counts as 0,
    a bad breach number counts as the first breach."""

    value: AmountInput = Field(
        default=None,
        description="Declared value of the gift.",
        examples=[1000],
    )
    breach_number: int | float | str | None = Field(
        default=None,
        description="Which breach this is for the public servant (1, 2, 3 or more).",
        examples=[1],
    )


class PenaltyResponse(CamelModel):
    success: bool = True
    value: float = Field(description="Gift value after coercion.", examples=[1000])
    breach_number: int = Field(description="Breach number after coercion.", examples=[1])
    multiplier: int = Field(description="2, 5 or 10.", examples=[2])
    fine: float = Field(description="value x multiplier.", examples=[2000])
    formatted: str = Field(description="Fine with currency prefix.", examples=["Nu. 2,000"])


# ---------------------------------------------------------------------------
# /api/classify-source -- Prohibited source check
# ---------------------------------------------------------------------------

class SourceCheckRequest(CamelModel):
    relationship_category: str | None = Field(
        default=None,
        validation_alias=AliasChoices("relationshipCategory", "relationship", "relationship_category"),
        description="Relationship of the giver to the public servant.",
        examples=["seeks-action"],
    )


class SourceCheckResponse(CamelModel):
    success: bool = True
    relationship: str | None = Field(default=None, examples=["seeks-action"])
    verdict: Verdict = Field(examples=["prohibited"])
    title: str = Field(examples=["PROHIBITED SOURCE"])
    description: str
    rule: str = Field(examples=["Rule 8(a): Who seeks official action or business from the public servant's agency."])
    is_prohibited: bool | None = Field(
        description="true = prohibited, false = allowed, null = needs review.",
        examples=[True],
    )


# ---------------------------------------------------------------------------
# /api/gifts -- Declarations
# ---------------------------------------------------------------------------

class Giver(CamelModel):
    name: str | None = Field(default=None, examples=["Local Artist"])
    designation: str | None = None
    agency: str | None = None
    address: str | None = None


class Recipient(CamelModel):
    name: str | None = Field(default=None, examples=["Tashi Sherpa"])
    designation: str | None = None
    agency: str | None = None


class GiftDeclarationIn(CamelModel):
    """What the declaration form posts."""

    description: str | None = Field(default=None, examples=["Traditional Thanka painting"])
    value: AmountInput = Field(default=None, examples=[5000])
    gift_type: str | None = Field(
        default=None,
        validation_alias=AliasChoices("giftType", "type", "gift_type"),
        examples=["artwork"],
    )
    receipt_date: str | None = Field(default=None, description="ISO date (YYYY-MM-DD).", examples=["2023-10-15"])
    giver: Giver | None = None
    relationship: str | None = Field(default=None, examples=["personal-friend"])
    circumstances: str | None = None
    disposition: str | None = Field(default=None, examples=["retain"])
    is_prohibited_source: bool | None = Field(
        default=None,
        description="Derived from the relationship; a caller can set it but not clear it for a prohibited source.",
    )
    recipient: Recipient | None = None


class GiftDeclaration(CamelModel):
    """A stored declaration."""

    id: str = Field(examples=["5f0c8e1a9b7d4c3e8f6a2b1c0d9e8f7a"])
    reference: str = Field(examples=["BGTS-2024-4821"])
    description: str
    value: float
    gift_type: str | None = None
    receipt_date: str | None = None
    giver: Giver
    relationship: str
    circumstances: str | None = None
    disposition: str | None = None
    is_prohibited_source: bool = False
    recipient: Recipient | None = None
    owner_id: str | None = None
    agency: str | None = None
    status: GiftStatus = GiftStatus.pending
    submitted_at: datetime
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    review_comments: str | None = None


class SubmitResponse(CamelModel):
    success: bool = True
    message: str = "Gift declaration submitted successfully"
    reference: str = Field(examples=["BGTS-2024-4821"])
    data: GiftDeclaration


class ReviewRequest(CamelModel):
    decision: Literal["approved", "returned", "submitted"] = Field(
        description="approved = keep, returned = give back, submitted = forward to the Commission.",
        examples=["approved"],
    )
    comments: str | None = None


# ---------------------------------------------------------------------------
# /api/penalties -- Penalty ledger
# ---------------------------------------------------------------------------

class PenaltyRecordIn(CamelModel):
    public_servant: str | None = Field(default=None, examples=["Karma Wangdi"])
    owner_id: str | None = None
    agency: str | None = Field(default=None, examples=["Ministry of Finance"])
    breach_type: str | None = Field(default=None, examples=["Late Declaration (24h rule)"])
    breach_number: int | float | str | None = Field(default=None, examples=[1])
    gift_value: AmountInput = Field(default=None, examples=[7000])
    gift_reference: str | None = None
    date: str | None = Field(default=None, description="ISO date; defaults to today.")


class PenaltyRecord(CamelModel):
    id: str
    date: str = Field(examples=["2023-09-15"])
    public_servant: str
    owner_id: str | None = None
    agency: str | None = None
    breach_type: str
    breach_number: int
    gift_value: float
    multiplier: int
    fine_amount: float
    formatted: str
    status: PenaltyStatus = PenaltyStatus.unpaid
    gift_reference: str | None = None
    recorded_by: str | None = None


# ---------------------------------------------------------------------------
# /api/health
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    status: str = Field(examples=["ok"])
    service: str
    version: str
    timestamp: datetime
    environment: str
    storage: str = Field(examples=["memory"])
