"""Alpha Vantage market data provider adapter."""

__version__ = "0.1.0"
