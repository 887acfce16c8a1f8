# santabot/services/secret_santa.py
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from santabot.config import Settings
from santabot.database.session import Database
from santabot.services.auth import AuthService
from santabot.services.draw import DrawResult, DrawService
from santabot.services.notifier import Notifier
from santabot.services.participation import ParticipationChange, ParticipationService
from santabot.services.solver import SolverConfig
from santabot.services.store import EventStore
from santabot.utils.dt import TimeProvider

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EventOpenResult:
    year: int
    admin_id: int


class SecretSantaService:
    """Entry points used by the chat handlers."""

    def __init__(
        self,
        auth: AuthService,
        store: EventStore,
        participation: ParticipationService,
        draws: DrawService,
        clock: TimeProvider,
    ) -> None:
        self.auth = auth
        self.store = store
        self.participation = participation
        self.draws = draws
        self.clock = clock

    @classmethod
    def build(
        cls,
        settings: Settings,
        db: Database,
        notifier: Optional[Notifier] = None,
        *,
        clock: Optional[TimeProvider] = None,
        rng: Optional[random.Random] = None,
    ) -> "SecretSantaService":
        clock = clock or TimeProvider(settings.timezone)
        store = EventStore(db, clock, timedelta(seconds=settings.draw_lease_timeout))
        return cls(
            auth=AuthService(settings),
            store=store,
            participation=ParticipationService(store, clock),
            draws=DrawService(store, SolverConfig.from_settings(settings), notifier, clock, rng),
            clock=clock,
        )

    def is_admin(self, user_id: int) -> bool:
        return self.auth.resolve(user_id).is_admin

    async def open_event(self, invoker_id: int, invoker_name: str) -> EventOpenResult:
        self.auth.require_admin(invoker_id)
        year = self.clock.current_year()
        await self.store.create_event(year, invoker_id, invoker_name)
        return EventOpenResult(year=year, admin_id=invoker_id)

    async def toggle_membership(self, user_id: int, display_name: str) -> ParticipationChange:
        return await self.participation.toggle(user_id, display_name)

    async def lookup_my_giftee(self, user_id: int) -> Optional[int]:
        return await self.store.latest_giftee(user_id)

    async def giftee_name(self, giftee_id: int) -> str:
        names = await self.store.display_names([giftee_id])
        return names.get(giftee_id, str(giftee_id))

    async def draw_names(self, invoker_id: int) -> DrawResult:
        self.auth.require_admin(invoker_id)
        log.info("Draw requested by %s", invoker_id)
        return await self.draws.draw()
