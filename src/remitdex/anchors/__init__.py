"""Anchor clients for the local-currency payout leg.

Protocols:
- SEP-6: programmatic withdrawals
- SEP-24: interactive (hosted) withdrawals
"""

from remitdex.anchors.base import (
    AnchorTransaction,
    InteractiveAnchorClient,
    PayoutResult,
    SyncAnchorClient,
    normalize_anchor_status,
)
from remitdex.anchors.dry_run import SimulatedInteractiveAnchor, SimulatedSyncAnchor
from remitdex.anchors.gateway import AnchorGateway
from remitdex.anchors.sep6 import Sep6AnchorClient
from remitdex.anchors.sep24 import Sep24AnchorClient

__all__ = [
    "AnchorGateway",
    "AnchorTransaction",
    "InteractiveAnchorClient",
    "PayoutResult",
    "Sep24AnchorClient",
    "Sep6AnchorClient",
    "SimulatedInteractiveAnchor",
    "SimulatedSyncAnchor",
    "SyncAnchorClient",
    "normalize_anchor_status",
]
