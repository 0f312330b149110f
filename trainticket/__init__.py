"""Train ticket booking: users, trains, orders and file-backed B+ tree storage."""

__version__ = "0.1.0"

__all__ = ["__version__"]