# santabot/database/models/event.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, func
from sqlalchemy.orm import Mapped, mapped_column

from santabot.database.base import Base


class Event(Base):
    """
    One yearly gift exchange. Append-only, keyed by calendar year.

    `locked_at` is the draw lease: set by compare-and-swap as the first step
    of a draw and left in place once giftees are written.
    """
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)  # year

    locked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())
