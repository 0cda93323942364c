"""Ledger package.

Public API:
- FundLock: custodial balances, withdrawal slots, release, settlement deltas.
- PositionLedger: per-pair positions and fund movements.
- Registry: deploys position ledgers and vouches for them to the fund lock.
"""

from .fundlock import FundLock  # re-export
from .model import BalanceChange, FundMovementParam, PositionParam, WithdrawalSlot
from .positions import PositionLedger
from .registry import Registry
