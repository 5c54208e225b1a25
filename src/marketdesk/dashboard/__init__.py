"""Thin FastAPI host exposing market data and momentum folders."""
