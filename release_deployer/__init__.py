"""Symlink-based release deployer for Laravel applications."""

__version__ = "0.1.0"
