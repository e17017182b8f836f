"""Match orchestration core: phases, clock, momentum, AI opponent, ranked queue.

This package contains transport-independent domain logic. Socket handlers
and HTTP routes reach it through :class:`Arena`, keeping Socket.IO and
database concerns out of the core game mechanics.
"""

from .arena import Arena
from .match import Match
from .phases import Phase

__all__ = ['Arena', 'Match', 'Phase']
