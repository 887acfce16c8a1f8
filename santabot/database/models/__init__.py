from .user import User
from .event import Event
from .participation import Participation

__all__ = [
    "User",
    "Event",
    "Participation",
]
