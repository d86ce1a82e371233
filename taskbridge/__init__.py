"""LINE group chat to task management bridge."""

__version__ = "0.1.0"
