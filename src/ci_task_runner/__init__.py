"""CI task runner: run named, interdependent CI steps against sandbox templates."""

__version__ = "0.1.0"
