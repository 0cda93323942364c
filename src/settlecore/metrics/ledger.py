from __future__ import annotations

import logging
import os
from typing import Optional

from prometheus_client import Counter, REGISTRY, start_http_server

_deposits_total = None
_withdrawals_requested_total = None
_releases_total = None
_balance_batches_total = None
_withdrawal_reclaims_total = None
_position_batches_total = None
_fund_movement_batches_total = None
_ledger_errors_total = None
_strategy_transfers_total = None


class _NoOp:
    def labels(self, *args, **kwargs):
        return self
    def inc(self, *args, **kwargs):
        return None


def metrics_disabled() -> bool:
    return os.getenv("DISABLE_PROMETHEUS", "0") == "1"


def _safe_counter(name: str, doc: str, labelnames):
    if metrics_disabled():
        return _NoOp()
    try:
        return Counter(name, doc, labelnames)
    except ValueError:
        # Already registered (module reloads in tests); reuse the live collector
        try:
            coll = getattr(REGISTRY, "_names_to_collectors", {}).get(name)
            if coll is not None:
                return coll
        except Exception:
            pass
        return _NoOp()


def start_server_safe(port: int) -> Optional[int]:
    """Start the Prometheus exporter; return the bound port or None.

    Bind failures only log a warning so the ledger keeps running without metrics.
    """
    if metrics_disabled():
        logging.info("DISABLE_PROMETHEUS=1; metrics exporter not started")
        return None
    try:
        start_http_server(port)
    except OSError as e:
        logging.warning(f"Failed to start Prometheus server on :{port}: {e}")
        return None
    logging.info(f"Prometheus metrics server started on :{port}")
    return port


def get_deposits_total():
    global _deposits_total
    if _deposits_total is None:
        _deposits_total = _safe_counter("deposits_total", "Deposits credited", ["asset"])
    return _deposits_total


def get_withdrawals_requested_total():
    global _withdrawals_requested_total
    if _withdrawals_requested_total is None:
        _withdrawals_requested_total = _safe_counter(
            "withdrawals_requested_total", "Withdrawals flagged into a slot", ["asset"]
        )
    return _withdrawals_requested_total


def get_releases_total():
    global _releases_total
    if _releases_total is None:
        _releases_total = _safe_counter("releases_total", "Withdrawal slots released", ["asset"])
    return _releases_total


def get_balance_batches_total():
    global _balance_batches_total
    if _balance_batches_total is None:
        _balance_batches_total = _safe_counter(
            "balance_batches_total", "Balance delta batches committed", ["ledger"]
        )
    return _balance_batches_total


def get_withdrawal_reclaims_total():
    """Counter: debits that had to reach into pending withdrawal slots."""
    global _withdrawal_reclaims_total
    if _withdrawal_reclaims_total is None:
        _withdrawal_reclaims_total = _safe_counter(
            "withdrawal_reclaims_total", "Settlement debits drawn from pending withdrawals", ["asset"]
        )
    return _withdrawal_reclaims_total


def get_position_batches_total():
    global _position_batches_total
    if _position_batches_total is None:
        _position_batches_total = _safe_counter(
            "position_batches_total", "Position batches applied", ["ledger"]
        )
    return _position_batches_total


def get_fund_movement_batches_total():
    global _fund_movement_batches_total
    if _fund_movement_batches_total is None:
        _fund_movement_batches_total = _safe_counter(
            "fund_movement_batches_total", "Fund movement batches forwarded", ["ledger"]
        )
    return _fund_movement_batches_total


def get_ledger_errors_total():
    global _ledger_errors_total
    if _ledger_errors_total is None:
        _ledger_errors_total = _safe_counter("ledger_errors_total", "Rejected ledger operations", ["error"])
    return _ledger_errors_total


def get_strategy_transfers_total():
    global _strategy_transfers_total
    if _strategy_transfers_total is None:
        _strategy_transfers_total = _safe_counter(
            "strategy_transfers_total", "Transfers between custody and yield strategies", ["asset", "direction"]
        )
    return _strategy_transfers_total


def count_error(name: str) -> None:
    try:
        get_ledger_errors_total().labels(name).inc()
    except Exception:
        pass
