"""
Cache preloading for the proxy service.
"""

from .feed_preloader import FeedPreloader

__all__ = ["FeedPreloader"]
