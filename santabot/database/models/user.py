# santabot/database/models/user.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from santabot.database.base import Base


class User(Base):
    """
    Chat platform user. `id` is the platform's own numeric id.
    Written with insert-or-ignore, so the first display name seen sticks.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    display_name: Mapped[str] = mapped_column(String(128))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())
