"""
Price Series Module

Holds per-instrument daily price data for analysis:
- Canonical price records and derived point types
- Row normalization and validation
- Ordered, immutable series and the series store
- pandas adapters for frames in and out
"""

__version__ = "0.1.0"
