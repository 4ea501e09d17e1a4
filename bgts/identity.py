"""
Caller identity.

Routes never look at credentials themselves. They ask for a CallerScope
through FastAPI dependencies:

    caller: CallerScope = Depends(get_caller)         # any signed-in user
    caller: CallerScope = Depends(require_reviewer)   # administrators only

Who the caller is comes from an IdentityProvider. The default provider
checks an opaque bearer token against the SHA-256 digests stored in the
user directory. Tokens carry no structure and are never parsed; swap in
a different provider (SSO, JWT, ...) by overriding get_identity_provider.
"""

import hashlib
import hmac
import logging
from typing import Iterable, Mapping, Protocol

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from bgts import config
from bgts.models.schemas import CallerScope, Role
from bgts.store import GiftStore, get_store

logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    def resolve(self, token: str) -> CallerScope | None:
        """Return the caller behind a token, or None if it is not recognised."""


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TokenIdentityProvider:
    """Resolves bearer tokens against user records holding a tokenSha256."""

    def __init__(self, users: Iterable[Mapping]):
        self._users = [u for u in users if u.get("tokenSha256")]

    def resolve(self, token: str) -> CallerScope | None:
        if not token:
            return None
        digest = hash_token(token)
        match = None
        # Compare against every user so timing does not depend on position.
        for user in self._users:
            if hmac.compare_digest(digest, user["tokenSha256"]):
                match = user
        if match is None:
            return None
        return CallerScope(
            user_id=match["id"],
            name=match["name"],
            designation=match.get("designation"),
            agency=match.get("agency"),
            role=match.get("role", Role.public_servant.value),
        )


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

bearer_scheme = HTTPBearer(auto_error=False, description="Opaque access token issued to the user.")


def get_identity_provider(store: GiftStore = Depends(get_store)) -> IdentityProvider:
    return TokenIdentityProvider(store.list_users())


def get_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> CallerScope:
    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Missing bearer token.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    caller = provider.resolve(credentials.credentials)
    if caller is None:
        logger.warning("Rejected request with an unknown token")
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return caller


def require_reviewer(caller: CallerScope = Depends(get_caller)) -> CallerScope:
    if not caller.can_review:
        logger.warning("User %s attempted a reviewer action", caller.user_id)
        raise HTTPException(status_code=403, detail="Only gift administrators can do this.")
    return caller


# ---------------------------------------------------------------------------
# Demo directory
#
# Seeded at startup when BGTS_SEED_DEMO is on, so the API can be tried out
# with the tokens from config.py. Upserts by id, so reseeding a JSON data
# directory on every start does not duplicate anyone.
# ---------------------------------------------------------------------------

DEMO_AGENCIES = [
    {"id": "mof", "name": "Ministry of Finance", "code": "MoF"},
    {"id": "acc", "name": "Anti-Corruption Commission", "code": "ACC"},
]


def demo_users() -> list[dict]:
    return [
        {
            "id": "u_tashi",
            "name": "Tashi Sherpa",
            "designation": "Public Servant",
            "agency": "Ministry of Finance",
            "role": Role.public_servant.value,
            "tokenSha256": hash_token(config.DEMO_SERVANT_TOKEN),
        },
        {
            "id": "u_pema",
            "name": "Pema Dorji",
            "designation": "Gift Disclosure Administrator",
            "agency": "Ministry of Finance",
            "role": Role.gift_administrator.value,
            "tokenSha256": hash_token(config.DEMO_ADMIN_TOKEN),
        },
        {
            "id": "u_acc",
            "name": "ACC Compliance Officer",
            "designation": "Commission Officer",
            "agency": "Anti-Corruption Commission",
            "role": Role.commission.value,
            "tokenSha256": hash_token(config.DEMO_COMMISSION_TOKEN),
        },
    ]


def seed_demo_directory(store: GiftStore) -> None:
    for agency in DEMO_AGENCIES:
        store.upsert_agency(agency)
    for user in demo_users():
        store.upsert_user(user)
    logger.info("Seeded demo directory (%d agencies, %d users)", len(DEMO_AGENCIES), len(demo_users()))
