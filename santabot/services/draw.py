# santabot/services/draw.py
from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from santabot.errors import PartialNotificationFailure, StoreError
from santabot.services.notifier import Notifier
from santabot.services.solver import SolverConfig, assign
from santabot.services.store import EventStore
from santabot.utils.dt import TimeProvider

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DrawResult:
    year: int
    pairs: list[tuple[int, int]]
    failures: list[PartialNotificationFailure] = field(default_factory=list)

    @property
    def notified(self) -> int:
        return len(self.pairs) - len(self.failures)


class DrawService:
    """
    claim lease + read -> solve (worker thread) -> record -> notify

    Until giftees are recorded, any failure hands the lease back so the
    event can be drawn again. Notification failures never undo a draw.
    """

    def __init__(
        self,
        store: EventStore,
        config: SolverConfig,
        notifier: Optional[Notifier] = None,
        clock: Optional[TimeProvider] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.store = store
        self.config = config
        self.notifier = notifier
        self.clock = clock or TimeProvider()
        self.rng = rng

    async def draw(self, year: Optional[int] = None) -> DrawResult:
        year = year if year is not None else self.clock.current_year()

        snapshot = await self.store.claim_draw(year, self.config.window, self.clock.utcnow())

        try:
            pairs = await asyncio.to_thread(assign, snapshot.roster, snapshot.links, self.config, self.rng)
            await self.store.record_assignments(year, pairs)
        except BaseException:
            await self._release(year, snapshot.claimed_at)
            raise

        log.info("Names drawn for %s (%d pairs)", year, len(pairs))

        failures = await self._notify(year, pairs)
        return DrawResult(year=year, pairs=pairs, failures=failures)

    async def _release(self, year: int, claimed_at: datetime) -> None:
        try:
            await self.store.release_draw(year, claimed_at)
        except StoreError:
            # the draw failure propagates, not this one
            log.exception("Failed to release draw lease for %s", year)

    async def _notify(self, year: int, pairs: list[tuple[int, int]]) -> list[PartialNotificationFailure]:
        if self.notifier is None:
            return []

        try:
            names = await self.store.display_names([g for _, g in pairs])
        except StoreError:
            log.exception("Could not load giftee names for %s, notifying with ids", year)
            names = {}

        failures: list[PartialNotificationFailure] = []
        for participant_id, giftee_id in pairs:
            try:
                await self.notifier.send_assignment(
                    participant_id,
                    giftee_id,
                    names.get(giftee_id, str(giftee_id)),
                    year,
                )
            except Exception as e:
                log.warning("Could not notify %s of their %s giftee: %s", participant_id, year, e)
                failures.append(PartialNotificationFailure(participant_id, str(e)))

        if failures:
            log.warning("%d of %d participants could not be notified for %s", len(failures), len(pairs), year)
        return failures
