"""ComediaLab — a writers' room for stand-up bits."""

__version__ = "0.1.0"
