from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

from ..errors import LedgerError, ZeroAddress


class InsufficientBalance(LedgerError):
    def __init__(self, holder: str, balance: int, needed: int) -> None:
        self.holder = holder
        self.balance = balance
        self.needed = needed
        super().__init__(f'InsufficientBalance("{holder}", {balance}, {needed})')


class InsufficientAllowance(LedgerError):
    def __init__(self, spender: str, allowance: int, needed: int) -> None:
        self.spender = spender
        self.allowance = allowance
        self.needed = needed
        super().__init__(f'InsufficientAllowance("{spender}", {allowance}, {needed})')


@dataclass
class Token:
    """Transferable asset held by clients and by the custody ledger.

    Amounts are integers in native decimal units (`decimals`).
    """

    address: str
    symbol: str
    decimals: int
    balances: Dict[str, int] = field(default_factory=dict)
    allowances: Dict[Tuple[str, str], int] = field(default_factory=dict)

    def balance_of(self, holder: str) -> int:
        return self.balances.get(holder, 0)

    def unit(self) -> int:
        return 10 ** self.decimals

    def mint(self, to: str, amount: int) -> None:
        if not to:
            raise ZeroAddress()
        self.balances[to] = self.balance_of(to) + int(amount)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        self.allowances[(owner, spender)] = int(amount)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    def transfer(self, sender: str, to: str, amount: int) -> None:
        if not to:
            raise ZeroAddress()
        have = self.balance_of(sender)
        if have < amount:
            raise InsufficientBalance(sender, have, amount)
        self.balances[sender] = have - amount
        self.balances[to] = self.balance_of(to) + amount

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise InsufficientAllowance(spender, allowed, amount)
        self.transfer(owner, to, amount)
        self.allowances[(owner, spender)] = allowed - amount
