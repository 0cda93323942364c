import pytest
from prometheus_client import REGISTRY

from settlecore.errors import ZeroAmount
from settlecore.metrics import ledger as m

from conftest import fund


def _val(name, labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_deposit_and_release_counters(venue):
    before_dep = _val("deposits_total", {"asset": "WETH"})
    before_rel = _val("releases_total", {"asset": "WETH"})
    fund(venue.fund_lock, venue.weth, "alice", 10)
    venue.fund_lock.withdraw("alice", venue.weth, 10)
    venue.clock.advance(venue.fund_lock.release_lock)
    venue.fund_lock.release("alice", venue.weth, 0)
    assert _val("deposits_total", {"asset": "WETH"}) == before_dep + 1
    assert _val("releases_total", {"asset": "WETH"}) == before_rel + 1


def test_ledger_errors_counted_by_type(venue):
    before = _val("ledger_errors_total", {"error": "ZeroAmount"})
    with pytest.raises(ZeroAmount):
        venue.fund_lock.withdraw("alice", venue.weth, 0)
    assert _val("ledger_errors_total", {"error": "ZeroAmount"}) == before + 1


def test_disabled_metrics_are_noops(monkeypatch):
    monkeypatch.setenv("DISABLE_PROMETHEUS", "1")
    c = m._safe_counter("never_registered_total", "x", ["a"])
    c.labels("a").inc()
    assert REGISTRY.get_sample_value("never_registered_total", {"a": "a"}) is None
    assert m.start_server_safe(0) is None


def test_duplicate_registration_reuses_collector():
    first = m._safe_counter("dup_probe_total", "probe", ["k"])
    second = m._safe_counter("dup_probe_total", "probe", ["k"])
    assert second is first
