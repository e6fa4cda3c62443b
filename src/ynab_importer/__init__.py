"""
Scraped transactions → Normalization → YNAB Import

A deterministic, testable pipeline that turns per-account scraper output into
YNAB transactions with stable import keys, and keeps a run history that flags
accounts whose scrapers have silently stopped producing data.
"""

__version__ = "0.1.0"
