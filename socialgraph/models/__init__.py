from .identity import Identity
from .follow import Follow
from .session import Session
from .notification import Notification

__all__ = ["Identity", "Follow", "Session", "Notification"]
