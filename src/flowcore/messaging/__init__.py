"""Message construction for the task-distribution bus (no transport)."""

from flowcore.messaging.factory import MessageFactory

__all__ = ["MessageFactory"]
