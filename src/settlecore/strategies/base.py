from __future__ import annotations

"""
Yield strategy interface for idle custody balances.

A strategy is attached to one asset of a FundLock. It may pull part of the
fund lock's idle holding into a yield-bearing position and must hand funds back
on demand. The fund lock treats it as untrusted: it measures what actually
arrived rather than trusting return values.
"""

from typing import Optional

from ..assets.token import Token


class YieldStrategy:
    """Base strategy interface.

    Subclasses implement `deploy_idle` and `withdraw`; the yield hooks default
    to a strategy that earns nothing.
    """

    def __init__(self, address: str, asset: Token):
        self.address = address
        self.asset = asset

    def deploy_idle(self, sender: str) -> int:
        """Move idle custody into the yield position; return the amount moved."""
        raise NotImplementedError

    def withdraw(self, amount: int) -> int:
        """Return `amount` of principal to the fund lock; return what was sent."""
        raise NotImplementedError

    def withdraw_all(self) -> int:
        return self.withdraw(self.total_managed_value())

    def total_managed_value(self) -> int:
        """Principal plus yield currently held outside the fund lock."""
        return 0

    def pending_yield(self, client: str) -> int:
        return 0

    def checkpoint(self, client: str) -> None:
        """Called by the fund lock right before `client`'s custody changes."""
        return None

    def distribute_yield(self, client: str) -> Optional[int]:
        return None
