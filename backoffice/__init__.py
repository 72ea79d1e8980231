"""Back-office API for construction project finance and correspondence tracking."""

__version__ = "0.1.0"
