"""Expense Dashboard package."""

__all__ = [
    "config",
    "data_loader",
    "views",
    "analytics",
    "state",
    "reports",
    "sources",
    "logging_setup",
    "cli",
    "webapp",
]

__version__ = "0.1.0"
