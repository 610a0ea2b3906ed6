# nay/__init__.py
"""nay - install packages from the official repositories or the AUR."""

__version__ = "0.1.0"
