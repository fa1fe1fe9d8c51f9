"""Tradelytics - trading performance analytics.

Turns raw trade records into calendar day statistics, filtered
performance metrics and currency-normalized values.
"""

__version__ = "0.1.0"
