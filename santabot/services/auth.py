# santabot/services/auth.py
from __future__ import annotations

from dataclasses import dataclass

from santabot.config import Settings
from santabot.errors import NotAuthorized


@dataclass(frozen=True, slots=True)
class AuthResult:
    is_admin: bool
    role: str  # "admin" | "user"


class AuthService:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def resolve(self, user_id: int) -> AuthResult:
        # Admins come from env (ADMIN_IDS).
        if user_id in self.settings.admin_ids:
            return AuthResult(is_admin=True, role="admin")
        return AuthResult(is_admin=False, role="user")

    def require_admin(self, user_id: int) -> None:
        if not self.resolve(user_id).is_admin:
            raise NotAuthorized("Only the secret santa organiser can do that")
