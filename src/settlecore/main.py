"""
Main entrypoint for settlecore.

What it does:
- Loads runtime settings from `config/settlecore.yaml` and environment variables.
- Wires the access controller, token validator, fund lock and registry, and
  deploys one position ledger for the first two configured assets.
- Walks through one settlement round offline: deposits, a position batch, a
  premium fund-movement batch, and a withdrawal released after the release lock.
- Optionally writes a parquet snapshot of the final state (`SNAPSHOT_DIR`).

Where it is used:
- Invoked by `python -m settlecore.main`.

Key related modules:
- `settlecore.config.loader.load_settings`
- `settlecore.ledger.FundLock`, `settlecore.ledger.Registry`
"""
import logging
import os
import time
from typing import Dict

from settlecore.access import ADMIN_ROLE, UTILITY_ACCOUNT_ROLE, AccessController
from settlecore.assets.token import Token
from settlecore.assets.validator import TokenValidator
from settlecore.config.loader import Settings, load_settings
from settlecore.events import bus
from settlecore.ledger import FundLock, FundMovementParam, PositionParam, Registry
from settlecore.metrics.ledger import start_server_safe

ADMIN = "admin"
UTILITY = "utility"


class ManualClock:
    """Demo clock that only moves when told to."""

    def __init__(self, start: int):
        self.t = int(start)

    def __call__(self) -> int:
        return self.t

    def advance(self, seconds: int) -> None:
        self.t += int(seconds)


def run_demo(settings: Settings) -> Dict[str, object]:
    if len(settings.assets) < 2:
        raise ValueError("settlement demo needs at least two configured assets")
    bus.configure(settings.events.stream, settings.events.dlq, settings.events.redis_url)
    clock = ManualClock(int(time.time()))
    access = AccessController(ADMIN, clock=clock)
    validator = TokenValidator(access)
    fund_lock = FundLock(access, validator, settings.trade_lock, settings.release_lock)
    registry = Registry(access, validator, fund_lock)
    access.grant_role(ADMIN, ADMIN_ROLE, registry.address)
    access.grant_role(ADMIN, UTILITY_ACCOUNT_ROLE, UTILITY)
    fund_lock.set_registry(ADMIN, registry)

    u_cfg, s_cfg = settings.assets[0], settings.assets[1]
    underlying = Token(f"token:{u_cfg.symbol}", u_cfg.symbol, u_cfg.decimals)
    strike = Token(f"token:{s_cfg.symbol}", s_cfg.symbol, s_cfg.decimals)
    ledger = registry.deploy_ledger(ADMIN, underlying, strike, u_cfg.precision, s_cfg.precision)
    logging.info(
        f"Ledger {ledger.address}: underlying x{ledger.underlying_power_multiplier()} "
        f"strike x{ledger.strike_power_multiplier()}"
    )

    # Writer deposits underlying as collateral; buyer deposits strike to pay premium
    underlying.mint("writer", 10 * underlying.unit())
    strike.mint("buyer", 20_000 * strike.unit())
    underlying.approve("writer", fund_lock.address, 10 * underlying.unit())
    strike.approve("buyer", fund_lock.address, 20_000 * strike.unit())
    fund_lock.deposit("writer", "writer", underlying, 10 * underlying.unit())
    fund_lock.deposit("buyer", "buyer", strike, 20_000 * strike.unit())

    one_contract = 10 ** u_cfg.precision
    premium = 500 * 10 ** s_cfg.precision
    ledger.update_positions(
        UTILITY,
        [PositionParam("writer", 1, -one_contract), PositionParam("buyer", 1, one_contract)],
        backend_id=1,
    )
    ledger.update_fund_movements(
        UTILITY,
        [FundMovementParam("buyer", 0, premium), FundMovementParam("writer", 0, -premium)],
        backend_id=1,
    )
    for client in ("writer", "buyer"):
        logging.info(
            f"{client}: {fund_lock.balance_sheet(client, underlying)} {underlying.symbol}, "
            f"{fund_lock.balance_sheet(client, strike)} {strike.symbol}"
        )

    premium_native = 500 * strike.unit()
    index = fund_lock.withdraw("writer", strike, premium_native)
    requested_at = fund_lock.funds_to_withdraw("writer", strike, index).requested_at
    clock.advance(fund_lock.release_lock)
    released = fund_lock.release("writer", strike, requested_at)
    logging.info(f"writer released {released} {strike.symbol}; wallet now {strike.balance_of('writer')}")

    snapshot_dir = os.getenv("SNAPSHOT_DIR", "")
    if snapshot_dir:
        from settlecore.reports.snapshot import build_snapshot, write_snapshot

        paths = write_snapshot(build_snapshot(fund_lock, [ledger]), snapshot_dir)
        logging.info(f"Snapshot written: {sorted(paths.values())}")

    return {"fund_lock": fund_lock, "registry": registry, "ledger": ledger, "released": released}


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    settings = load_settings()
    logging.info(f"Lock windows: trade={settings.trade_lock}s release={settings.release_lock}s")
    start_server_safe(settings.metrics_port)
    run_demo(settings)
    logging.info("settlement demo complete")


if __name__ == "__main__":
    main()
