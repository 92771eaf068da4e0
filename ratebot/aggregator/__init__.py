"""Aggregator module."""

from .aggregator import Aggregator, Deliver, IAggregator

__all__ = ["Aggregator", "Deliver", "IAggregator"]
