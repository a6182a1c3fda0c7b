"""IO clients for the upstream cricket feed."""

from .feed import FeedClient

__all__ = ["FeedClient"]
