"""Award availability providers and deal valuation."""

__version__ = "0.1.0"
