"""DayStart content pipeline.

Moves content blocks from gathered context to a spoken script to stored
audio, and reclaims blocks that get stuck or expire along the way.
"""

__version__ = "0.1.0"
