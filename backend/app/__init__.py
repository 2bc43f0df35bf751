"""Arbitrage telemetry feed backend."""
