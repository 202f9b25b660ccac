"""
Ozon size monitor package.

This package contains modules for reading the Ozon Seller API catalog,
normalising package dimensions and size attributes, persisting per-offer
baselines, notifying Telegram chats about changes and coordinating the
scan loop.  See README.md for details.
"""

__all__ = [
    "config",
    "utils",
    "units",
    "dimensions",
    "attributes",
    "fingerprint",
    "ozon",
    "db",
    "notifier",
    "reconciler",
    "scheduler",
    "bot",
    "main",
]
