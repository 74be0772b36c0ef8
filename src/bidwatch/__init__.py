"""
BidWatch - Procurement notice collector.

Scrapes public bidding portals, reconciles the notices it finds against
the local database, and downloads the documents attached to them.
"""

__version__ = "0.1.0"
__app_name__ = "bidwatch"
