"""
Analysis Engine Module

Calculates derived metrics and signals from price series:
- Rolling window aggregates (mean, standard deviation, min, max, lag)
- Daily change, volatility, moving averages, monthly high/low and return
- Trend, surge/drop alerts and moving average crossover actions
"""

__version__ = "0.1.0"
