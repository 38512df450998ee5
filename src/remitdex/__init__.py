"""RemitDEX: crypto-to-fiat remittances over DEX aggregation, a settlement bridge and payout anchors."""
