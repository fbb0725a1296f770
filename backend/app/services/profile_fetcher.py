"""Profile Fetcher - bounded fixed-interval polling for a just-written profile row.

Invariants:
    - At most policy.retries lookups per call; never a (retries + 1)th
    - A lookup returning a record returns immediately
    - StoreError from a lookup counts as "not found yet" and does not abort the loop
    - Fixed delay between attempts (no growth); no delay after the last attempt
    - Returns None when the budget is exhausted (caller maps it to a failure)

Design Decisions:
    - Fixed interval, not exponential: the gap being masked is read-after-write
      propagation between identity service and profile store
    - is_current hook stops the loop once the caller's attempt is superseded
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from app.core.domain_types import IdentityId
from app.core.errors import StoreError
from app.core.profile import ProfileRecord
from app.core.repository_protocols import ProfileStore

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    retries: int = 5
    interval_ms: int = 500

    def __post_init__(self) -> None:
        if self.retries < 1:
            raise ValueError("retries must be >= 1")
        if self.interval_ms < 0:
            raise ValueError("interval_ms must be >= 0")


PROFILE_FETCH_POLICY = RetryPolicy(retries=5, interval_ms=500)


class ProfileFetcher:
    """Reads a profile row, tolerating a short visibility delay."""

    def __init__(
        self,
        store: ProfileStore,
        policy: RetryPolicy = PROFILE_FETCH_POLICY,
        sleep: Sleep = asyncio.sleep,
    ):
        self._store = store
        self.policy = policy
        self._sleep = sleep

    async def fetch_with_retry(
        self,
        identity_id: IdentityId,
        is_current: Callable[[], bool] | None = None,
    ) -> ProfileRecord | None:
        for attempt in range(1, self.policy.retries + 1):
            if is_current is not None and not is_current():
                logger.debug(
                    "Profile fetch superseded",
                    extra={"identity_id": identity_id, "attempt": attempt},
                )
                return None

            record = await self._lookup(identity_id, attempt)
            if record is not None:
                return record

            if attempt < self.policy.retries:
                await self._sleep(self.policy.interval_ms / 1000)

        logger.warning(
            f"Profile not found after {self.policy.retries} attempts",
            extra={"identity_id": identity_id, "attempt": self.policy.retries},
        )
        return None

    async def _lookup(
        self, identity_id: IdentityId, attempt: int,
    ) -> ProfileRecord | None:
        try:
            record = await self._store.find_by_id(identity_id)
        except StoreError as e:
            logger.warning(
                f"Profile lookup failed (attempt {attempt}): {e.message}",
                extra={
                    "identity_id": identity_id,
                    "attempt": attempt,
                    "error_code": e.code,
                },
            )
            return None
        if record is None:
            logger.debug(
                "Profile not visible yet",
                extra={"identity_id": identity_id, "attempt": attempt},
            )
        return record
