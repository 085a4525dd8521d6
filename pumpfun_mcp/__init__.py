"""Pump.fun analytics over MCP, backed by Bitquery and PumpPortal."""

__version__ = "1.0.0"
