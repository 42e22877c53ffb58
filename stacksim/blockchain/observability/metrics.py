# MIT License
# Copyright (c) 2025 Hashborn

"""
Prometheus metrics for simnet runs.

Metrics:
- Block height, blocks mined
- Transactions by type and outcome, transactions per block
- Fees burned
"""

from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry, generate_latest

# Create registry for metrics
metrics_registry = CollectorRegistry()

# ═══════════════════════════════════════════════════════════════════
# CHAIN METRICS
# ═══════════════════════════════════════════════════════════════════

block_height = Gauge(
    'stacksim_block_height',
    'Current block height',
    registry=metrics_registry
)

blocks_total = Counter(
    'stacksim_blocks_total',
    'Total number of blocks mined',
    registry=metrics_registry
)

transactions_total = Counter(
    'stacksim_transactions_total',
    'Total number of transactions applied',
    ['tx_type', 'status'],
    registry=metrics_registry
)

transactions_per_block = Histogram(
    'stacksim_transactions_per_block',
    'Number of transactions per block',
    buckets=[0, 1, 5, 10, 20, 50, 100],
    registry=metrics_registry
)

fees_burned_total = Counter(
    'stacksim_fees_burned_total',
    'Total fees burned (micro-units)',
    registry=metrics_registry
)


# ═══════════════════════════════════════════════════════════════════
# HELPER FUNCTIONS
# ═══════════════════════════════════════════════════════════════════

def record_transaction(tx_type: str, ok: bool, fee: int) -> None:
    transactions_total.labels(tx_type=tx_type, status='ok' if ok else 'err').inc()
    if fee:
        fees_burned_total.inc(fee)


def update_block_metrics(height: int, tx_count: int) -> None:
    """
    Update block-related metrics.
    Should only be called when a new block is actually mined.

    Args:
        height: Height of the mined block
        tx_count: Number of transactions it carried
    """
    blocks_total.inc()
    block_height.set(height)
    transactions_per_block.observe(tx_count)


def export_metrics() -> bytes:
    """Metrics in Prometheus text exposition format."""
    return generate_latest(metrics_registry)
