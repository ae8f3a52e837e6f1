"""Exclusivity tokens: at most one insertion in flight per (user, tier)."""

import threading
import uuid
from typing import Dict, Tuple

from pydantic import BaseModel, Field

from ..exceptions import InsertionInProgressError
from .tiers import Tier


class InsertionToken(BaseModel):
    """Proof of ownership of a (user, tier) for one insertion."""

    user_id: str = Field(..., description="Owner of the tier")
    tier: Tier = Field(..., description="Tier being ranked")
    token_id: str = Field(default_factory=lambda: uuid.uuid4().hex, description="Unique token ID")

    @property
    def key(self) -> Tuple[str, Tier]:
        return (self.user_id, self.tier)


class TierLockRegistry:
    """In-process registry of held tokens. Acquisition never blocks."""

    def __init__(self) -> None:
        self._mutex = threading.Lock()
        self._held: Dict[Tuple[str, Tier], str] = {}

    def acquire(self, user_id: str, tier: Tier) -> InsertionToken:
        token = InsertionToken(user_id=user_id, tier=Tier(tier))
        with self._mutex:
            if token.key in self._held:
                raise InsertionInProgressError(
                    f"An insertion into the {token.tier.value} tier is already in progress for user {user_id}"
                )
            self._held[token.key] = token.token_id
        return token

    def release(self, token: InsertionToken) -> None:
        with self._mutex:
            if self._held.get(token.key) == token.token_id:
                del self._held[token.key]

    def is_held(self, user_id: str, tier: Tier) -> bool:
        with self._mutex:
            return (user_id, Tier(tier)) in self._held
