from __future__ import annotations

"""
Pooled yield strategy: keeps a share of an asset's custody in a yield-bearing
pool and hands the earned yield back to clients pro rata.

Yield is tracked with a cumulative per-unit index over each client's custody
(available balance plus pending withdrawals), so funds waiting in the
withdrawal queue keep earning and late depositors do not share earlier yield.
The fund lock checkpoints a client before changing that client's custody.
"""

import logging
from typing import Dict, Optional

from ..access.controller import UTILITY_ACCOUNT_ROLE, AccessController
from ..assets.token import Token
from ..events.journal import Clock, EventJournal
from ..events.schema import FundPulled, FundReturned, YieldDistributed
from .base import YieldStrategy

BASE_MULTIPLIER = 10 ** 18
INDEX_SCALE = 10 ** 27

log = logging.getLogger(__name__)


class PooledYieldStrategy(YieldStrategy, EventJournal):
    def __init__(
        self,
        fund_lock,
        access: AccessController,
        asset: Token,
        max_managing_ratio: int = BASE_MULTIPLIER,
        deposit_threshold: int = 0,
        address: Optional[str] = None,
        clock: Optional[Clock] = None,
    ):
        address = address or f"pooled-strategy:{asset.symbol}"
        YieldStrategy.__init__(self, address, asset)
        EventJournal.__init__(self, address, clock or fund_lock.clock)
        if not 0 <= max_managing_ratio <= BASE_MULTIPLIER:
            raise ValueError(f"max_managing_ratio must be within [0, {BASE_MULTIPLIER}]")
        self.fund_lock = fund_lock
        self.access = access
        self.max_managing_ratio = int(max_managing_ratio)
        self.deposit_threshold = int(deposit_threshold)
        self.principal = 0
        self._indexed = 0  # yield folded into the index but not yet distributed
        self.surplus = 0  # yield earned while nobody had custody
        self._index = 0
        self._client_index: Dict[str, int] = {}
        self._accrued: Dict[str, int] = {}

    # ---- pool sizing ----

    @property
    def managing_fund(self) -> int:
        return self.total_managed_value()

    def total_managed_value(self) -> int:
        return self.asset.balance_of(self.address)

    def current_managing_ratio(self) -> int:
        total = self.asset.balance_of(self.fund_lock.address) + self.total_managed_value()
        if total == 0:
            return 0
        return self.total_managed_value() * BASE_MULTIPLIER // total

    def adjust_fund(self, sender: str) -> int:
        """Move the pool toward `max_managing_ratio` of idle plus managed value.

        Returns the signed amount moved: positive when pulled from custody,
        negative when returned.
        """
        self.access.check_role(UTILITY_ACCOUNT_ROLE, sender)
        idle = self.asset.balance_of(self.fund_lock.address)
        managed = self.total_managed_value()
        target = (idle + managed) * self.max_managing_ratio // BASE_MULTIPLIER
        if target > managed:
            amount = min(target - managed, idle)
            if amount == 0 or amount < self.deposit_threshold:
                return 0
            self.fund_lock.pull_to_strategy(self.address, self.asset, amount)
            self.principal += amount
            log.info(f"pulled {amount} {self.asset.symbol} into pool (managing {self.managing_fund})")
            self._emit(FundPulled, asset=self.asset.address, amount=amount, managing_fund=self.managing_fund)
            return amount
        if managed > target:
            return -self.withdraw(managed - target)
        return 0

    def deploy_idle(self, sender: str) -> int:
        return self.adjust_fund(sender)

    def withdraw(self, amount: int) -> int:
        """Send up to `amount` of principal back to the fund lock.

        Undistributed yield stays in the pool.
        """
        send = min(int(amount), self.principal)
        if send <= 0:
            return 0
        self.asset.transfer(self.address, self.fund_lock.address, send)
        self.principal -= send
        log.info(f"returned {send} {self.asset.symbol} to custody (managing {self.managing_fund})")
        self._emit(FundReturned, asset=self.asset.address, amount=send, managing_fund=self.managing_fund)
        return send

    def withdraw_all(self) -> int:
        """Unwind the whole pool, undistributed yield included, and reset the index."""
        total = self.total_managed_value()
        if total > 0:
            self.asset.transfer(self.address, self.fund_lock.address, total)
            self._emit(FundReturned, asset=self.asset.address, amount=total, managing_fund=0)
        self.principal = 0
        self._indexed = 0
        self._index = 0
        self.surplus = 0
        self._client_index.clear()
        self._accrued.clear()
        return total

    # ---- yield ----

    def accrue(self, amount: int) -> None:
        """Book interest paid into the pool by the yield market."""
        self.asset.mint(self.address, amount)

    def checkpoint(self, client: str) -> None:
        self._sync()
        self._accrued[client] = self._earned(client, self._index)
        self._client_index[client] = self._index

    def pending_yield(self, client: str) -> int:
        return self._earned(client, self._index + self._fresh_index())

    def distribute_yield(self, client: str) -> int:
        """Credit `client`'s accrued yield to their fund lock balance."""
        self.checkpoint(client)
        amount = self._accrued.pop(client, 0)
        if amount == 0:
            return 0
        self._indexed -= amount
        self.principal += amount
        self.fund_lock.credit_yield(self.address, self.asset, client, amount)
        log.info(f"yield distributed: {client} +{amount} {self.asset.symbol}")
        self._emit(YieldDistributed, client=client, asset=self.asset.address, amount=amount)
        return amount

    def _fresh_yield(self) -> int:
        return self.total_managed_value() - self.principal - self._indexed - self.surplus

    def _fresh_index(self) -> int:
        fresh = self._fresh_yield()
        custody = self.fund_lock.total_custody(self.asset)
        if fresh <= 0 or custody == 0:
            return 0
        return fresh * INDEX_SCALE // custody

    def _sync(self) -> None:
        fresh = self._fresh_yield()
        if fresh <= 0:
            return
        if self.fund_lock.total_custody(self.asset) == 0:
            self.surplus += fresh
            log.info(f"{fresh} {self.asset.symbol} yield accrued with no custody; booked as surplus")
            return
        step = self._fresh_index()
        if step == 0:
            return
        self._index += step
        self._indexed += fresh

    def _earned(self, client: str, index: int) -> int:
        custody = self.fund_lock.custody_of(client, self.asset)
        delta = index - self._client_index.get(client, 0)
        return self._accrued.get(client, 0) + custody * delta // INDEX_SCALE
