"""
Die Stats - Live match scoring engine

A deterministic, rules-driven engine for scoring live four-player die matches.
The engine provides:
- Live match state management
- Play resolution (points, FIFA saves, self-sinks, redemptions)
- Per-player stat and streak accumulation
- Match lifecycle and a serialized, in-memory match manager
"""

__version__ = "0.1.0"
