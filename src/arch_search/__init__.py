"""Arch Linux troubleshooting search: wiki seeder and search API."""

__version__ = "1.0.0"
