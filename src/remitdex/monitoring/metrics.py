"""Order metrics: volumes, success rate, failure reasons.

Aggregates are updated once per terminal order and guarded by a
threading.Lock so readers never see a half-applied update.
"""

import json
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

from remitdex.orders.models import Order, OrderStatus

logger = logging.getLogger(__name__)

METRIC_PREFIX = "remitdex"

# Orders kept for get_recent_orders; aggregates cover every order
RECENT_ORDERS_LIMIT = 1000


@dataclass
class MetricsSnapshot:
    total_volume: Decimal = Decimal("0")
    total_transactions: int = 0
    completed_transactions: int = 0
    failed_transactions: int = 0
    success_rate: Decimal = Decimal("0")  # percent
    average_transaction_size: Decimal = Decimal("0")
    corridor_volumes: dict[str, Decimal] = field(default_factory=dict)
    chain_volumes: dict[str, Decimal] = field(default_factory=dict)
    hourly_volumes: list[Decimal] = field(default_factory=lambda: [Decimal("0")] * 24)
    failure_reasons: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "total_volume": str(self.total_volume),
            "total_transactions": self.total_transactions,
            "completed_transactions": self.completed_transactions,
            "failed_transactions": self.failed_transactions,
            "success_rate": str(self.success_rate),
            "average_transaction_size": str(self.average_transaction_size),
            "corridor_volumes": {k: str(v) for k, v in self.corridor_volumes.items()},
            "chain_volumes": {k: str(v) for k, v in self.chain_volumes.items()},
            "hourly_volumes": [str(v) for v in self.hourly_volumes],
            "failure_reasons": dict(self.failure_reasons),
        }


class MetricsCollector:
    """Collects per-order metrics for completed and failed orders."""

    def __init__(self, recent_limit: int = RECENT_ORDERS_LIMIT):
        self._lock = threading.Lock()
        self._metrics = MetricsSnapshot()
        self._orders: deque[Order] = deque(maxlen=recent_limit)
        self._chain_counts: dict[str, int] = {}

    def record_order(self, order: Order) -> None:
        """Record a terminal order. Volume is the source amount."""
        amount = order.quote.source_amount
        chain = order.quote.source_chain
        corridor = f"{chain}-{order.quote.dest_country}"
        hour = order.created_at.astimezone(timezone.utc).hour

        with self._lock:
            m = self._metrics
            self._orders.append(order)

            m.total_volume += amount
            m.total_transactions += 1
            m.corridor_volumes[corridor] = m.corridor_volumes.get(corridor, Decimal("0")) + amount
            m.chain_volumes[chain] = m.chain_volumes.get(chain, Decimal("0")) + amount
            m.hourly_volumes[hour] += amount
            self._chain_counts[chain] = self._chain_counts.get(chain, 0) + 1

            if order.status == OrderStatus.COMPLETED:
                m.completed_transactions += 1
            elif order.status == OrderStatus.FAILED:
                m.failed_transactions += 1
                reason = order.error_kind.value if order.error_kind else "UNKNOWN"
                m.failure_reasons[reason] = m.failure_reasons.get(reason, 0) + 1

            m.success_rate = Decimal(m.completed_transactions * 100) / m.total_transactions
            m.average_transaction_size = m.total_volume / m.total_transactions

        logger.debug(f"Metrics recorded for order {order.id} ({order.status.value})")

    def get_metrics(self) -> MetricsSnapshot:
        """Copy of the current aggregates."""
        with self._lock:
            m = self._metrics
            return MetricsSnapshot(
                total_volume=m.total_volume,
                total_transactions=m.total_transactions,
                completed_transactions=m.completed_transactions,
                failed_transactions=m.failed_transactions,
                success_rate=m.success_rate,
                average_transaction_size=m.average_transaction_size,
                corridor_volumes=dict(m.corridor_volumes),
                chain_volumes=dict(m.chain_volumes),
                hourly_volumes=list(m.hourly_volumes),
                failure_reasons=dict(m.failure_reasons),
            )

    def get_corridor_stats(self) -> list[dict]:
        """Corridor volumes with their share of total volume, largest first."""
        with self._lock:
            total = self._metrics.total_volume
            stats = [
                {
                    "corridor": corridor,
                    "volume": volume,
                    "percentage": (volume / total * 100) if total else Decimal("0"),
                }
                for corridor, volume in self._metrics.corridor_volumes.items()
            ]
        return sorted(stats, key=lambda s: s["volume"], reverse=True)

    def get_chain_stats(self) -> list[dict]:
        with self._lock:
            stats = [
                {
                    "chain": chain,
                    "volume": volume,
                    "transactions": self._chain_counts.get(chain, 0),
                }
                for chain, volume in self._metrics.chain_volumes.items()
            ]
        return sorted(stats, key=lambda s: s["volume"], reverse=True)

    def get_hourly_volumes(self) -> list[Decimal]:
        with self._lock:
            return list(self._metrics.hourly_volumes)

    def get_recent_orders(self, limit: int = 10) -> list[Order]:
        """Most recently created orders first."""
        with self._lock:
            orders = sorted(self._orders, key=lambda o: o.created_at, reverse=True)
        return orders[:limit]

    def export_json(self) -> str:
        data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "metrics": self.get_metrics().to_dict(),
            "corridor_stats": self.get_corridor_stats(),
            "chain_stats": self.get_chain_stats(),
        }
        return json.dumps(data, indent=2, default=str)

    def get_prometheus_metrics(self) -> str:
        """Prometheus text exposition of the aggregates."""
        m = self.get_metrics()
        lines = [
            f"# HELP {METRIC_PREFIX}_total_volume Total volume processed in source units",
            f"# TYPE {METRIC_PREFIX}_total_volume counter",
            f"{METRIC_PREFIX}_total_volume {m.total_volume}",
            f"# HELP {METRIC_PREFIX}_total_transactions Total number of transactions",
            f"# TYPE {METRIC_PREFIX}_total_transactions counter",
            f"{METRIC_PREFIX}_total_transactions {m.total_transactions}",
            f"# HELP {METRIC_PREFIX}_success_rate Success rate percentage",
            f"# TYPE {METRIC_PREFIX}_success_rate gauge",
            f"{METRIC_PREFIX}_success_rate {m.success_rate}",
            f"# HELP {METRIC_PREFIX}_average_transaction Average transaction size",
            f"# TYPE {METRIC_PREFIX}_average_transaction gauge",
            f"{METRIC_PREFIX}_average_transaction {m.average_transaction_size}",
        ]
        for corridor, volume in m.corridor_volumes.items():
            lines.append(f'{METRIC_PREFIX}_corridor_volume{{corridor="{corridor}"}} {volume}')
        for chain, volume in m.chain_volumes.items():
            lines.append(f'{METRIC_PREFIX}_chain_volume{{chain="{chain}"}} {volume}')
        for reason, count in m.failure_reasons.items():
            lines.append(f'{METRIC_PREFIX}_failures{{reason="{reason}"}} {count}')
        return "\n".join(lines)
