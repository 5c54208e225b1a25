"""Momentum and market-data aggregation over Binance spot streams."""
