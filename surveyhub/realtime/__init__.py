from __future__ import annotations

from .hub import BroadcastHub, Connection
from .tasks import BackgroundTasks

__all__ = ["BackgroundTasks", "BroadcastHub", "Connection"]
