"""Validator fleet monitoring: delinquency, balance drift and node stats."""

__version__ = "0.1.0"
