"""
Sport Rays backend: cached aggregation of sports videos, news and scores,
plus a small polling feature.
"""

__version__ = "1.0.0"
