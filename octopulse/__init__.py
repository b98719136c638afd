"""Desktop notifications for GitHub notifications, with pull request comments and reviews."""

__version__ = "0.1.0"