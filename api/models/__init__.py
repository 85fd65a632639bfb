"""
API data models. Single import surface for DB entities.

DB entities (api.models.models):
- Bot, Thread, Message, StudentProgress
"""

from api.models.models import Bot, Thread, Message, StudentProgress

__all__ = [
    "Bot",
    "Thread",
    "Message",
    "StudentProgress",
]
