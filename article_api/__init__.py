"""Article API: cache-aside repository over a relational article store."""

__version__ = "1.0.0"
