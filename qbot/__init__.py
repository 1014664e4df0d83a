"""QBot - AI-assisted manufacturing quality inspection."""

__version__ = "1.0.0"
