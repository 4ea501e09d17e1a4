"""
BGTS -- Python client

Thin client for the BGTS API, for scripts and other services that need to
declare gifts or check the rules.

Usage:

    from bgts.client import BGTSClient

    client = BGTSClient("http://localhost:8000", token="demo-servant-token")

    # Is the giver a prohibited source?
    check = client.check_source("does-business")
    if check.is_prohibited:
        print(check.rule)

    # What would the fine be?
    print(client.calculate_penalty(5000, 2).formatted)   # Nu. 25,000

    # Declare a gift
    gift = client.submit_gift({
        "description": "Traditional Thanka painting",
        "value": 5000,
        "giver": {"name": "Local Artist"},
        "relationship": "personal-friend",
    })
    print(gift["reference"])

The two rule calls take offline_fallback=True. If the API cannot be reached
they then answer from the local rule tables and set offline=True on the
result, the way the declaration form keeps working without a connection.

Requirements: requests
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from bgts.rules.penalty import calculate_penalty as local_penalty
from bgts.rules.sources import classify_source as local_classify

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 30


# ── Result types ──────────────────────────────────────────────────────────


@dataclass
class PenaltyQuote:
    """Result from /api/penalty."""

    value: float
    breach_number: int
    multiplier: int
    fine: float
    formatted: str
    offline: bool = False
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass
class SourceCheck:
    """Result from /api/classify-source."""

    relationship: Optional[str]
    verdict: str  # "prohibited" | "allowed" | "reviewRequired"
    title: str
    description: str
    rule: str
    is_prohibited: Optional[bool]
    offline: bool = False
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)


# ── Exceptions ────────────────────────────────────────────────────────────


class BGTSError(Exception):
    """Raised for any error response from the API."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    @property
    def fields(self) -> List[str]:
        """Offending field names for a 422, empty otherwise."""
        if isinstance(self.body, dict):
            return list(self.body.get("fields") or [])
        return []


# ── Client ────────────────────────────────────────────────────────────────


class BGTSClient:
    """
    Client for the BGTS API.

    Args:
        base_url: API base URL. Defaults to http://localhost:8000.
        token: Bearer token. Needed for declarations, not for the rule checks.
        timeout: Request timeout in seconds. Defaults to 30.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        kwargs.setdefault("timeout", self.timeout)
        resp = self._session.request(method, url, **kwargs)
        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = resp.text
            message = body.get("error") if isinstance(body, dict) else body
            raise BGTSError(
                f"API error {resp.status_code}: {message}",
                status_code=resp.status_code,
                body=body,
            )
        return resp.json()

    # ── System ────────────────────────────────────────────────────────

    def health(self) -> Dict[str, Any]:
        return self._request("GET", "/api/health")

    # ── Rules ─────────────────────────────────────────────────────────

    def calculate_penalty(
        self,
        value: Any,
        breach_number: Any = 1,
        *,
        offline_fallback: bool = False,
    ) -> PenaltyQuote:
        """
        Work out the fine for a breach.

        Args:
            value: Declared gift value.
            breach_number: 1, 2, 3 or more.
            offline_fallback: Use the local table if the API is unreachable.
        """
        payload = {"value": value, "breachNumber": breach_number}
        try:
            data = self._request("POST", "/api/penalty", json=payload)
        except requests.ConnectionError as e:
            if not offline_fallback:
                raise
            logger.warning("BGTS API unreachable (%s), using local penalty calculation", e)
            result = local_penalty(value, breach_number)
            return PenaltyQuote(
                value=result.value,
                breach_number=result.breach_number,
                multiplier=result.multiplier,
                fine=result.fine,
                formatted=result.formatted,
                offline=True,
            )

        return PenaltyQuote(
            value=data["value"],
            breach_number=data["breachNumber"],
            multiplier=data["multiplier"],
            fine=data["fine"],
            formatted=data["formatted"],
            raw=data,
        )

    def check_source(self, relationship: str, *, offline_fallback: bool = False) -> SourceCheck:
        """
        Ask whether a giver with this relationship is a prohibited source.

        Args:
            relationship: Category key, e.g. "seeks-action" or "immediate-relative".
            offline_fallback: Use the local table if the API is unreachable.
        """
        try:
            data = self._request("POST", "/api/classify-source", json={"relationshipCategory": relationship})
        except requests.ConnectionError as e:
            if not offline_fallback:
                raise
            logger.warning("BGTS API unreachable (%s), using local source table", e)
            result = local_classify(relationship)
            return SourceCheck(
                relationship=result.relationship,
                verdict=result.verdict.value,
                title=result.title,
                description=result.description,
                rule=result.rule,
                is_prohibited=result.is_prohibited,
                offline=True,
            )

        return SourceCheck(
            relationship=data.get("relationship"),
            verdict=data["verdict"],
            title=data["title"],
            description=data["description"],
            rule=data["rule"],
            is_prohibited=data.get("isProhibited"),
            raw=data,
        )

    # ── Declarations ──────────────────────────────────────────────────

    def submit_gift(self, declaration: Dict[str, Any]) -> Dict[str, Any]:
        """Declare a gift. Returns the stored record (with its reference)."""
        data = self._request("POST", "/api/gifts", json=declaration)
        return data["data"]

    def list_gifts(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"status": status} if status else None
        return self._request("GET", "/api/gifts", params=params)

    def get_gift(self, gift_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/gifts/{gift_id}")

    def review_gift(self, gift_id: str, decision: str, comments: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"decision": decision}
        if comments:
            payload["comments"] = comments
        return self._request("POST", f"/api/gifts/{gift_id}/review", json=payload)
