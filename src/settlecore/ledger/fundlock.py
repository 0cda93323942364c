"""
Custodial balance ledger ("fund lock").

What it does:
- Holds client collateral per (client, asset) as an available balance.
- Queues withdrawals in a fixed set of five slots per (client, asset); a slot is
  paid out by `release` once it is older than the release lock.
- Applies signed balance batches from registered position ledgers. Debits that
  exceed the available balance are taken from pending withdrawal slots, since
  flagged funds stay reachable by settlement until actually released.
- Optionally lends an asset's idle holding to a yield strategy and pulls it
  back when a release needs it.

Every operation validates first and commits last, so a raised error leaves the
ledger exactly as it was.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from ..access.controller import ADMIN_ROLE, AccessController
from ..assets.token import Token
from ..assets.validator import TokenValidator
from ..errors import (
    EmptyArray,
    FundFromWithdrawnFailed,
    InsufficientFunds,
    InvalidReleaseLockInterval,
    NoEmptySlot,
    NotWhitelisted,
    ReleaseRequiredTimeNotReached,
    StrategyShortfall,
    Unauthorized,
    WithdrawalNotFound,
    ZeroAddress,
    ZeroAmount,
    ZeroTradeLockInterval,
)
from ..events.journal import Clock, EventJournal
from ..events.schema import (
    BalancesUpdated,
    Deposit,
    RegistryUpdated,
    Release,
    ReleaseLockSet,
    TokenStrategyUpdated,
    TradeLockSet,
    Withdraw,
    YieldCredited,
)
from ..metrics.ledger import (
    get_balance_batches_total,
    get_deposits_total,
    get_releases_total,
    get_strategy_transfers_total,
    get_withdrawal_reclaims_total,
    get_withdrawals_requested_total,
)
from .model import (
    DEFAULT_RELEASE_LOCK,
    DEFAULT_TRADE_LOCK,
    ONE_WEEK,
    WITHDRAWAL_SLOTS,
    BalanceChange,
    WithdrawalSlot,
)

LEDGER_ROLE = "LEDGER"
STRATEGY_ROLE = "STRATEGY"

log = logging.getLogger(__name__)

Key = Tuple[str, str]


class FundLock(EventJournal):
    def __init__(
        self,
        access: AccessController,
        token_validator: TokenValidator,
        trade_lock: int = DEFAULT_TRADE_LOCK,
        release_lock: int = DEFAULT_RELEASE_LOCK,
        address: str = "fund-lock",
        clock: Optional[Clock] = None,
    ):
        super().__init__(address, clock or access.clock)
        if trade_lock <= 0:
            raise ZeroTradeLockInterval()
        if not 0 <= release_lock <= ONE_WEEK:
            raise InvalidReleaseLockInterval(release_lock, ONE_WEEK)
        self.access = access
        self.token_validator = token_validator
        self.trade_lock = int(trade_lock)
        self.release_lock = int(release_lock)
        self.registry = None
        self._balances: Dict[Key, int] = {}
        self._slots: Dict[Key, List[WithdrawalSlot]] = {}
        self._strategies: Dict[str, object] = {}
        self._assets: Dict[str, Token] = {}

    # ---- client operations ----

    def deposit(self, sender: str, beneficiary: str, asset: Token, amount: int) -> None:
        if amount <= 0:
            raise ZeroAmount()
        if not beneficiary:
            raise ZeroAddress()
        self._checkpoint(beneficiary, asset)
        asset.transfer_from(self.address, sender, self.address, amount)
        key = (beneficiary, asset.address)
        self._assets[asset.address] = asset
        self._balances[key] = self._balances.get(key, 0) + amount
        log.info(f"deposit: {beneficiary} +{amount} {asset.symbol}")
        get_deposits_total().labels(asset.symbol).inc()
        self._emit(Deposit, client=beneficiary, asset=asset.address, amount=amount)

    def withdraw(self, sender: str, asset: Token, amount: int) -> int:
        """Flag `amount` for withdrawal in the lowest empty slot; return its index."""
        if not self.token_validator.is_whitelisted(asset):
            raise NotWhitelisted(asset.address)
        if amount <= 0:
            raise ZeroAmount()
        key = (sender, asset.address)
        available = self._balances.get(key, 0)
        if available < amount:
            raise InsufficientFunds(amount, available)
        slots = self._slots_for(key)
        index = next((i for i, s in enumerate(slots) if s.empty), None)
        if index is None:
            raise NoEmptySlot(sender, asset.address)
        now = self.now()
        self._balances[key] = available - amount
        slots[index] = WithdrawalSlot(value=amount, requested_at=now)
        log.info(f"withdraw flagged: {sender} {amount} {asset.symbol} slot={index}")
        get_withdrawals_requested_total().labels(asset.symbol).inc()
        self._emit(Withdraw, client=sender, asset=asset.address, amount=amount, index=index, requested_at=now)
        return index

    def release(self, sender: str, asset: Token, timestamp: int) -> int:
        """Pay out a matured withdrawal slot; return the amount released.

        `timestamp` selects the slot whose request time matches exactly. When no
        slot matches and `timestamp` is 0, the first slot that has already
        passed the release lock is released instead.
        """
        key = (sender, asset.address)
        slots = self._slots_for(key)
        now = self.now()
        index = self._find_slot(slots, timestamp, now)
        if index is None:
            raise WithdrawalNotFound(sender, asset.address, timestamp)
        slot = slots[index]
        if slot.age(now) < self.release_lock:
            raise ReleaseRequiredTimeNotReached(
                sender, asset.address, slot.requested_at, slot.requested_at + self.release_lock
            )
        self._checkpoint(sender, asset)
        value, requested_at = slot.value, slot.requested_at
        # Slot is emptied before the strategy or the token is touched.
        slots[index] = WithdrawalSlot()
        try:
            self._ensure_liquidity(asset, value)
            asset.transfer(self.address, sender, value)
        except Exception:
            slots[index] = WithdrawalSlot(value=value, requested_at=requested_at)
            raise
        log.info(f"release: {sender} {value} {asset.symbol} slot={index}")
        get_releases_total().labels(asset.symbol).inc()
        self._emit(Release, client=sender, asset=asset.address, amount=value, index=index)
        return value

    # ---- settlement entry point ----

    def update_balances(self, sender: str, changes: Sequence[BalanceChange], backend_id: int) -> None:
        """Apply a batch of signed balance deltas from a registered position ledger.

        All-or-nothing: the batch is staged in full and committed only when every
        debit is covered by available balance plus pending withdrawals.
        """
        if self.registry is None or not self.registry.is_valid_ledger(sender):
            raise Unauthorized(sender, LEDGER_ROLE)
        if not changes:
            raise EmptyArray()

        balances: Dict[Key, int] = {}
        slots: Dict[Key, List[WithdrawalSlot]] = {}
        reclaimed: Dict[Key, int] = {}
        for change in changes:
            key = (change.client, change.asset.address)
            balance = balances.get(key, self._balances.get(key, 0))
            if change.amount >= 0:
                balances[key] = balance + change.amount
                continue
            debit = -change.amount
            if debit <= balance:
                balances[key] = balance - debit
                continue
            needed = debit - balance
            staged = slots.get(key)
            if staged is None:
                staged = [WithdrawalSlot(s.value, s.requested_at) for s in self._slots_for(key)]
                slots[key] = staged
            if sum(s.value for s in staged) < needed:
                raise FundFromWithdrawnFailed(change.client, change.asset.address, needed)
            reclaimed[key] = reclaimed.get(key, 0) + needed
            for s in staged:
                if needed == 0:
                    break
                take = min(s.value, needed)
                s.value -= take
                needed -= take
                if s.value == 0:
                    s.requested_at = 0
            balances[key] = 0

        for client, asset_address in set(balances) | set(slots):
            strategy = self._strategies.get(asset_address)
            if strategy is not None:
                strategy.checkpoint(client)
        self._balances.update(balances)
        self._slots.update(slots)
        for change in changes:
            self._assets[change.asset.address] = change.asset
        for (client, asset_address), amount in reclaimed.items():
            log.info(f"settlement reclaimed {amount} of {asset_address} from pending withdrawals of {client}")
            get_withdrawal_reclaims_total().labels(self._assets[asset_address].symbol).inc()
        get_balance_batches_total().labels(sender).inc()
        self._emit(
            BalancesUpdated,
            backend_id=backend_id,
            clients=[c.client for c in changes],
            assets=[c.asset.address for c in changes],
            amounts=[c.amount for c in changes],
        )

    # ---- views ----

    def balance_sheet(self, client: str, asset: Token) -> int:
        return self._balances.get((client, asset.address), 0)

    def funds_to_withdraw(self, client: str, asset: Token, index: int) -> WithdrawalSlot:
        slot = self._slots_for((client, asset.address))[index]
        return WithdrawalSlot(slot.value, slot.requested_at)

    def funds_to_withdraw_total(self, client: str, asset: Token) -> int:
        """Pending withdrawals still inside the trade-lock window."""
        now = self.now()
        return sum(
            s.value
            for s in self._slots_for((client, asset.address))
            if not s.empty and s.age(now) < self.trade_lock
        )

    def pending_withdrawal_total(self, client: str, asset: Token) -> int:
        return sum(s.value for s in self._slots_for((client, asset.address)))

    def custody_of(self, client: str, asset: Token) -> int:
        return self.balance_sheet(client, asset) + self.pending_withdrawal_total(client, asset)

    def total_custody(self, asset: Token) -> int:
        total = sum(v for (_, a), v in self._balances.items() if a == asset.address)
        total += sum(s.value for (_, a), slots in self._slots.items() if a == asset.address for s in slots)
        return total

    def token_strategy(self, asset: Token):
        return self._strategies.get(asset.address)

    def iter_balances(self) -> Iterator[Tuple[str, Token, int]]:
        for (client, asset_address), value in sorted(self._balances.items()):
            yield client, self._assets[asset_address], value

    def iter_slots(self) -> Iterator[Tuple[str, Token, int, WithdrawalSlot]]:
        for (client, asset_address), slots in sorted(self._slots.items()):
            for i, slot in enumerate(slots):
                if not slot.empty:
                    yield client, self._assets[asset_address], i, slot

    # ---- administration ----

    def set_trade_lock_interval(self, sender: str, interval: int) -> None:
        self.access.check_role(ADMIN_ROLE, sender)
        if interval <= 0:
            raise ZeroTradeLockInterval()
        self.trade_lock = int(interval)
        self._emit(TradeLockSet, interval=self.trade_lock)

    def set_release_lock_interval(self, sender: str, interval: int) -> None:
        self.access.check_role(ADMIN_ROLE, sender)
        if not 0 <= interval <= ONE_WEEK:
            raise InvalidReleaseLockInterval(interval, ONE_WEEK)
        self.release_lock = int(interval)
        self._emit(ReleaseLockSet, interval=self.release_lock)

    def set_registry(self, sender: str, registry) -> None:
        self.access.check_role(ADMIN_ROLE, sender)
        if registry is None or not getattr(registry, "address", ""):
            raise ZeroAddress()
        self.registry = registry
        self._emit(RegistryUpdated, registry=registry.address)

    def set_token_strategy(self, sender: str, asset: Token, strategy) -> None:
        """Attach (or with None, detach) the yield strategy for `asset`.

        Anything the previous strategy manages is pulled back into custody first.
        """
        self.access.check_role(ADMIN_ROLE, sender)
        prior = self._strategies.get(asset.address)
        if prior is not None and prior is not strategy:
            before = asset.balance_of(self.address)
            expected = prior.total_managed_value()
            prior.withdraw_all()
            received = asset.balance_of(self.address) - before
            if received < expected:
                raise StrategyShortfall(asset.address, expected, received)
            get_strategy_transfers_total().labels(asset.symbol, "return").inc()
            log.info(f"strategy {prior.address} unwound: {received} {asset.symbol} back in custody")
        self._assets[asset.address] = asset
        if strategy is None:
            self._strategies.pop(asset.address, None)
        else:
            self._strategies[asset.address] = strategy
        self._emit(TokenStrategyUpdated, asset=asset.address, strategy=getattr(strategy, "address", None))

    # ---- strategy hooks ----

    def pull_to_strategy(self, sender: str, asset: Token, amount: int) -> None:
        strategy = self._require_strategy(sender, asset)
        if amount <= 0:
            raise ZeroAmount()
        idle = asset.balance_of(self.address)
        if amount > idle:
            raise InsufficientFunds(amount, idle)
        asset.transfer(self.address, strategy.address, amount)
        get_strategy_transfers_total().labels(asset.symbol, "pull").inc()

    def credit_yield(self, sender: str, asset: Token, client: str, amount: int) -> None:
        self._require_strategy(sender, asset)
        if amount <= 0:
            raise ZeroAmount()
        key = (client, asset.address)
        self._balances[key] = self._balances.get(key, 0) + amount
        self._emit(YieldCredited, client=client, asset=asset.address, amount=amount)

    # ---- internals ----

    def _slots_for(self, key: Key) -> List[WithdrawalSlot]:
        slots = self._slots.get(key)
        if slots is None:
            slots = [WithdrawalSlot() for _ in range(WITHDRAWAL_SLOTS)]
            self._slots[key] = slots
        return slots

    def _find_slot(self, slots: List[WithdrawalSlot], timestamp: int, now: int) -> Optional[int]:
        for i, s in enumerate(slots):
            if not s.empty and s.requested_at == timestamp:
                return i
        if timestamp == 0:
            for i, s in enumerate(slots):
                if not s.empty and s.age(now) >= self.release_lock:
                    return i
        return None

    def _checkpoint(self, client: str, asset: Token) -> None:
        strategy = self._strategies.get(asset.address)
        if strategy is not None:
            strategy.checkpoint(client)

    def _require_strategy(self, sender: str, asset: Token):
        strategy = self._strategies.get(asset.address)
        if strategy is None or strategy.address != sender:
            raise Unauthorized(sender, STRATEGY_ROLE)
        return strategy

    def _ensure_liquidity(self, asset: Token, amount: int) -> None:
        idle = asset.balance_of(self.address)
        strategy = self._strategies.get(asset.address)
        if idle >= amount or strategy is None:
            return
        shortfall = amount - idle
        strategy.withdraw(shortfall)
        received = asset.balance_of(self.address) - idle
        if received < shortfall:
            raise StrategyShortfall(asset.address, shortfall, received)
        get_strategy_transfers_total().labels(asset.symbol, "return").inc()
