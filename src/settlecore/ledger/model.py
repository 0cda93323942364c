from __future__ import annotations

from dataclasses import dataclass

from ..assets.token import Token

WITHDRAWAL_SLOTS = 5
ONE_WEEK = 7 * 24 * 60 * 60
DEFAULT_TRADE_LOCK = 1200
DEFAULT_RELEASE_LOCK = 2400


@dataclass
class WithdrawalSlot:
    value: int = 0
    requested_at: int = 0

    @property
    def empty(self) -> bool:
        return self.value == 0

    def age(self, now: int) -> int:
        return now - self.requested_at


@dataclass(frozen=True)
class PositionParam:
    client: str
    contract_id: int
    size: int  # signed, underlying trade precision


@dataclass(frozen=True)
class FundMovementParam:
    """What the client owes on each leg, in trade precision.

    Positive amounts are debited from custody, negative amounts credited.
    """

    client: str
    underlying_amount: int
    strike_amount: int


@dataclass(frozen=True)
class BalanceChange:
    client: str
    asset: Token
    amount: int  # signed, native decimals
