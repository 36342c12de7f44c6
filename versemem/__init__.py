"""VerseMem - verse-by-verse recitation player for memorisation practice."""

__version__ = "0.1.0"
