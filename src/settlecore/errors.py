"""Error taxonomy for the custodial and position ledgers.

Every precondition violation raises one of these before any state is touched;
the caller gets the violated condition plus the identifiers and amounts needed
to fix the input.
"""
from __future__ import annotations

from .metrics.ledger import count_error


class LedgerError(Exception):
    """Base exception for all settlement ledger errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or type(self).__name__)
        count_error(type(self).__name__)


# ---- input validation ----

class ZeroAmount(LedgerError):
    def __init__(self) -> None:
        super().__init__("ZeroAmount()")


class ZeroAddress(LedgerError):
    def __init__(self) -> None:
        super().__init__("ZeroAddress()")


class ZeroTradeLockInterval(LedgerError):
    def __init__(self) -> None:
        super().__init__("ZeroTradeLockInterval()")


class InvalidReleaseLockInterval(LedgerError):
    def __init__(self, interval: int, maximum: int) -> None:
        self.interval = interval
        self.maximum = maximum
        super().__init__(f"InvalidReleaseLockInterval(interval={interval}, max={maximum})")


class EmptyArray(LedgerError):
    def __init__(self) -> None:
        super().__init__("EmptyArray()")


# ---- state / capacity ----

class NoEmptySlot(LedgerError):
    """All withdrawal slots for (client, asset) are occupied."""

    def __init__(self, client: str, asset: str) -> None:
        self.client = client
        self.asset = asset
        super().__init__(f'NoEmptySlot("{client}", "{asset}")')


class WithdrawalNotFound(LedgerError):
    def __init__(self, client: str = "", asset: str = "", timestamp: int = 0) -> None:
        self.client = client
        self.asset = asset
        self.timestamp = timestamp
        super().__init__(f'WithdrawalNotFound("{client}", "{asset}", {timestamp})')


class ReleaseRequiredTimeNotReached(LedgerError):
    def __init__(self, client: str, asset: str, requested_at: int, required_timestamp: int) -> None:
        self.client = client
        self.asset = asset
        self.requested_at = requested_at
        self.required_timestamp = required_timestamp
        super().__init__(
            f'ReleaseRequiredTimeNotReached("{client}", "{asset}", {requested_at}, {required_timestamp})'
        )


class InsufficientFunds(LedgerError):
    """Raised when a withdraw request exceeds the available balance."""

    def __init__(self, requested: int, available: int) -> None:
        self.requested = requested
        self.available = available
        super().__init__(f"InsufficientFunds({requested}, {available})")


class FundFromWithdrawnFailed(LedgerError):
    """A settlement debit exceeds available balance plus pending withdrawals.

    `amount` is the part of the debit that had to come from pending
    withdrawals, i.e. the debit minus the available balance.
    """

    def __init__(self, client: str, asset: str, amount: int) -> None:
        self.client = client
        self.asset = asset
        self.amount = amount
        super().__init__(f'FundFromWithdrawnFailed("{client}", "{asset}", {amount})')


class StrategyShortfall(LedgerError):
    """A yield strategy returned less than the custody needs to pay out."""

    def __init__(self, asset: str, requested: int, received: int) -> None:
        self.asset = asset
        self.requested = requested
        self.received = received
        super().__init__(f'StrategyShortfall("{asset}", requested={requested}, received={received})')


class InvalidMarket(LedgerError):
    def __init__(self, underlying: str, strike: str) -> None:
        self.underlying = underlying
        self.strike = strike
        super().__init__(f'InvalidMarket("{underlying}", "{strike}")')


# ---- authorization ----

class Unauthorized(LedgerError):
    """Caller lacks the role (or ledger registration) required by the operation."""

    def __init__(self, account: str, role: str) -> None:
        self.account = account
        self.role = role
        super().__init__(f'AccessControlUnauthorizedAccount("{account}", "{role}")')


# ---- asset acceptance ----

class NotWhitelisted(LedgerError):
    def __init__(self, asset: str) -> None:
        self.asset = asset
        super().__init__(f'NotWhitelisted("{asset}")')


class ZeroPrecision(LedgerError):
    def __init__(self, asset: str) -> None:
        self.asset = asset
        super().__init__(f'ZeroPrecision("{asset}")')


class InvalidPrecision(LedgerError):
    def __init__(self, asset: str, precision: int, decimals: int) -> None:
        self.asset = asset
        self.precision = precision
        self.decimals = decimals
        super().__init__(f'InvalidPrecision("{asset}", precision={precision}, decimals={decimals})')
