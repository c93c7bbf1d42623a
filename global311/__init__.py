"""Global-311: community-moderated civic issue pins."""

__version__ = "0.1.0"
