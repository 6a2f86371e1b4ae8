"""Point-of-sale and inventory manager for a solar equipment store."""

__version__ = "0.1.0"
