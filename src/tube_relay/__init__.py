"""tube-relay — relay new YouTube uploads into Reddit communities."""

__version__ = "0.1.0"
