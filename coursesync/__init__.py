"""coursesync: keep user-scoped course data in sync between client cache and remote store."""

__version__ = "0.1.0"
