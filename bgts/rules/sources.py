"""
Prohibited-source classification under the Gift Rules 2017.

Maps the relationship a giver has with the public servant (as picked from
the declaration form) to a verdict:

  - prohibited: the giver seeks official action, does business with, is
    regulated by, or has interests affected by the servant's agency. A
    same-rank colleague is restricted and also treated as prohibited.
  - allowed: immediate relatives and clearly personal relationships, as
    long as the relationship and not the position motivates the gift.
  - review_required: anything else, including misspelled categories.

Lookups are exact. An unrecognised key is never silently allowed or
prohibited.
"""

from dataclasses import dataclass
from enum import Enum


class Verdict(str, Enum):
    prohibited = "prohibited"
    allowed = "allowed"
    review_required = "reviewRequired"


@dataclass(frozen=True)
class SourceRule:
    verdict: Verdict
    title: str
    description: str
    rule: str


@dataclass(frozen=True)
class SourceClassification:
    relationship: str | None
    verdict: Verdict
    title: str
    description: str
    rule: str

    @property
    def is_prohibited(self) -> bool | None:
        """True/False for a firm verdict, None when a human has to decide."""
        if self.verdict is Verdict.review_required:
            return None
        return self.verdict is Verdict.prohibited


# ── Prohibited sources (Rule 8) ────────────────────────────────────

_PROHIBITED = "PROHIBITED SOURCE"

PROHIBITED_RULES: dict[str, SourceRule] = {
    "seeks-action": SourceRule(
        verdict=Verdict.prohibited,
        title=_PROHIBITED,
        description="This giver is a prohibited source under Rule 8(a). You cannot accept gifts from them.",
        rule="Rule 8(a): Who seeks official action or business from the public servant's agency.",
    ),
    "does-business": SourceRule(
        verdict=Verdict.prohibited,
        title=_PROHIBITED,
        description="This giver is a prohibited source under Rule 8(b). You cannot accept gifts from them.",
        rule="Rule 8(b): Who does business or seeks to do business with the public servant's agency.",
    ),
    "regulated": SourceRule(
        verdict=Verdict.prohibited,
        title=_PROHIBITED,
        description="This giver is a prohibited source under Rule 8(c). You cannot accept gifts from them.",
        rule="Rule 8(c): Who conducts activities regulated by the public servant's agency.",
    ),
    "interest-affected": SourceRule(
        verdict=Verdict.prohibited,
        title=_PROHIBITED,
        description="This giver is a prohibited source under Rule 8(d). You cannot accept gifts from them.",
        rule=(
            "Rule 8(d): Who has interests that may be substantially affected by the "
            "performance or non-performance of the public servant's official duties."
        ),
    ),
    "same-rank-colleague": SourceRule(
        verdict=Verdict.prohibited,
        title="RESTRICTED SOURCE",
        description=(
            "Gifts between public servants of the same rank are restricted under Rule 9 "
            "and are treated as prohibited unless an administrator grants an exception."
        ),
        rule="Rule 9: A public servant shall not accept a gift from a colleague of the same rank.",
    ),
}


# ── Permitted with conditions (Rule 11) ────────────────────────────

_ALLOWED = "ALLOWED (with conditions)"

ALLOWED_RULES: dict[str, SourceRule] = {
    "immediate-relative": SourceRule(
        verdict=Verdict.allowed,
        title=_ALLOWED,
        description=(
            "Gifts from immediate relatives are allowed if clearly motivated by the "
            "relationship rather than official position."
        ),
        rule=(
            "Rule 11(b): Gift from an immediate relative when the circumstances make it clear "
            "that it is the relationship rather than the position which is the motivating factor."
        ),
    ),
    "personal-friend": SourceRule(
        verdict=Verdict.allowed,
        title=_ALLOWED,
        description=(
            "Gifts from personal friends are allowed if the friendship, not the public "
            "servant's position, is the motivating factor."
        ),
        rule=(
            "Rule 11(c): Gift motivated by a personal relationship when the circumstances make "
            "it clear that it is the relationship rather than the position which is the motivating factor."
        ),
    ),
}


SOURCE_RULES: dict[str, SourceRule] = {**PROHIBITED_RULES, **ALLOWED_RULES}

REVIEW_REQUIRED = SourceRule(
    verdict=Verdict.review_required,
    title="REVIEW REQUIRED",
    description="This relationship requires further review.",
    rule="Please consult with your Gift Disclosure Administrator.",
)


def classify_source(relationship: str | None) -> SourceClassification:
    rule = SOURCE_RULES.get(relationship, REVIEW_REQUIRED) if isinstance(relationship, str) else REVIEW_REQUIRED
    return SourceClassification(
        relationship=relationship,
        verdict=rule.verdict,
        title=rule.title,
        description=rule.description,
        rule=rule.rule,
    )


def is_prohibited_relationship(relationship: str | None) -> bool | None:
    return classify_source(relationship).is_prohibited
