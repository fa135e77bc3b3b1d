"""External data fetchers."""

from seismic_monitor.fetchers.feed import FeedClient, parse_feature

__all__ = ["FeedClient", "parse_feature"]
