# santabot/database/models/participation.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from santabot.database.base import Base


class Participation(Base):
    """
    One participant in one event (unique per event/user).
    `giftee_id` stays NULL until names are drawn; rows are the history later draws read.
    The surrogate `id` keeps roster reads in join order.
    """
    __tablename__ = "participation"
    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_participation_event_user"),
        Index("ix_participation_event_giftee", "event_id", "giftee_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    event_id: Mapped[int] = mapped_column(ForeignKey("events.id"), index=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), index=True)
    giftee_id: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        ForeignKey("users.id"),
        nullable=True,
    )

    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())
