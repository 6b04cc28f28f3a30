"""Candle aggregation and technical-indicator engine."""
