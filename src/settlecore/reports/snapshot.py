"""
Point-in-time snapshot of ledger state as pandas frames.

Usage (venv):
  frames = build_snapshot(fund_lock, [ledger])
  write_snapshot(frames, "data/snapshots")
"""

from __future__ import annotations

import os
from typing import Dict, Iterable, List

import pandas as pd

BALANCE_COLUMNS = ["client", "asset", "symbol", "available"]
SLOT_COLUMNS = ["client", "asset", "symbol", "index", "value", "requested_at", "matured"]
POSITION_COLUMNS = ["ledger", "contract_id", "client", "size"]


def balances_frame(fund_lock) -> pd.DataFrame:
    rows = [
        {"client": client, "asset": asset.address, "symbol": asset.symbol, "available": value}
        for client, asset, value in fund_lock.iter_balances()
    ]
    return pd.DataFrame(rows, columns=BALANCE_COLUMNS)


def slots_frame(fund_lock) -> pd.DataFrame:
    now = fund_lock.now()
    rows = [
        {
            "client": client,
            "asset": asset.address,
            "symbol": asset.symbol,
            "index": index,
            "value": slot.value,
            "requested_at": slot.requested_at,
            "matured": slot.age(now) >= fund_lock.release_lock,
        }
        for client, asset, index, slot in fund_lock.iter_slots()
    ]
    return pd.DataFrame(rows, columns=SLOT_COLUMNS)


def positions_frame(ledgers: Iterable) -> pd.DataFrame:
    rows: List[dict] = []
    for ledger in ledgers:
        for contract_id, client, size in ledger.iter_positions():
            rows.append({"ledger": ledger.address, "contract_id": contract_id, "client": client, "size": size})
    return pd.DataFrame(rows, columns=POSITION_COLUMNS)


def build_snapshot(fund_lock, ledgers: Iterable = ()) -> Dict[str, pd.DataFrame]:
    return {
        "balances": balances_frame(fund_lock),
        "withdrawals": slots_frame(fund_lock),
        "positions": positions_frame(ledgers),
    }


def write_snapshot(frames: Dict[str, pd.DataFrame], base_dir: str = "data") -> Dict[str, str]:
    """Write each frame to `<base_dir>/<name>.parquet`; return the written paths.

    Native amounts can exceed int64, so amount columns are stored as strings.
    """
    os.makedirs(base_dir, exist_ok=True)
    paths: Dict[str, str] = {}
    for name, df in frames.items():
        out = df.copy()
        for col in ("available", "value", "size"):
            if col in out.columns:
                out[col] = out[col].astype(str)
        path = os.path.join(base_dir, f"{name}.parquet")
        out.to_parquet(path, engine="pyarrow")
        paths[name] = path
    return paths
