"""machscrape: structured product records from marketplace search pages."""

__version__ = "1.0.0"
