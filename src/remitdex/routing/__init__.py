"""Routing module: quote types and DEX aggregator clients.

Aggregators:
- 1inch: EVM DEX aggregator (swap API v6)
- Simulated: deterministic static-price aggregator for dry-run mode
"""

from remitdex.routing.base import (
    AggregatorClient,
    AggregatorQuote,
    Quote,
    RouteStep,
    StepKind,
    SwapTransaction,
)
from remitdex.routing.dry_run import SimulatedAggregator
from remitdex.routing.oneinch import OneInchAggregator

__all__ = [
    # Base classes
    "AggregatorClient",
    "AggregatorQuote",
    "Quote",
    "RouteStep",
    "StepKind",
    "SwapTransaction",
    # Aggregators
    "OneInchAggregator",
    "SimulatedAggregator",
]
