"""tilebattle — word-building tile game engine with special cards and CPU play."""

__version__ = "0.3.0"
