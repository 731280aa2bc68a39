"""Brainora conversation orchestration engine.

Turns user submissions into committed message pairs: intent classification,
mode dispatch (streaming, grounded, image synthesis), incremental stream
aggregation, and persisted, titled sessions.
"""

__version__ = "1.0.0"
