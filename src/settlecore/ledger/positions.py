from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from ..access.controller import UTILITY_ACCOUNT_ROLE, AccessController
from ..assets.scaling import scale_up
from ..assets.token import Token
from ..assets.validator import TokenValidator
from ..errors import EmptyArray
from ..events.journal import Clock, EventJournal
from ..events.schema import FundMovementsUpdated, PositionsUpdated
from ..metrics.ledger import get_fund_movement_batches_total, get_position_batches_total
from .model import BalanceChange, FundMovementParam, PositionParam

log = logging.getLogger(__name__)


class PositionLedger(EventJournal):
    """Positions for one underlying/strike pair plus the fund movements they settle.

    Positions are signed amounts in the underlying's trade precision. Fund
    movements are stated in each leg's trade precision and scaled up to native
    decimals before the fund lock applies them.
    """

    def __init__(
        self,
        access: AccessController,
        token_validator: TokenValidator,
        fund_lock,
        underlying: Token,
        strike: Token,
        address: str,
        clock: Optional[Clock] = None,
    ):
        super().__init__(address, clock or access.clock)
        self.access = access
        self.token_validator = token_validator
        self.fund_lock = fund_lock
        self.underlying_currency = underlying
        self.strike_currency = strike
        self._positions: Dict[Tuple[int, str], int] = {}

    def update_positions(self, sender: str, entries: Sequence[PositionParam], backend_id: int) -> None:
        self.access.check_role(UTILITY_ACCOUNT_ROLE, sender)
        if not entries:
            raise EmptyArray()
        for entry in entries:
            key = (entry.contract_id, entry.client)
            self._positions[key] = self._positions.get(key, 0) + entry.size
        log.info(f"{self.address}: {len(entries)} position deltas applied (backend_id={backend_id})")
        get_position_batches_total().labels(self.address).inc()
        self._emit(PositionsUpdated, backend_id=backend_id)

    def update_fund_movements(self, sender: str, entries: Sequence[FundMovementParam], backend_id: int) -> None:
        """Forward what each client owes to the fund lock as one atomic batch.

        An owed (positive) amount becomes a debit of the scaled amount, an owed
        negative amount a credit. Strike legs precede underlying legs per entry.
        """
        self.access.check_role(UTILITY_ACCOUNT_ROLE, sender)
        if not entries:
            raise EmptyArray()
        if any(e.underlying_amount == 0 and e.strike_amount == 0 for e in entries):
            raise EmptyArray()
        strike_factor = self.strike_power_multiplier()
        underlying_factor = self.underlying_power_multiplier()
        changes: List[BalanceChange] = []
        for entry in entries:
            if entry.strike_amount != 0:
                changes.append(
                    BalanceChange(entry.client, self.strike_currency, -scale_up(entry.strike_amount, strike_factor))
                )
            if entry.underlying_amount != 0:
                changes.append(
                    BalanceChange(
                        entry.client, self.underlying_currency, -scale_up(entry.underlying_amount, underlying_factor)
                    )
                )
        self.fund_lock.update_balances(self.address, changes, backend_id)
        log.info(f"{self.address}: {len(changes)} balance legs settled (backend_id={backend_id})")
        get_fund_movement_batches_total().labels(self.address).inc()
        self._emit(FundMovementsUpdated, backend_id=backend_id)

    def client_positions(self, contract_id: int, client: str) -> int:
        return self._positions.get((contract_id, client), 0)

    def contract_positions(self, contract_id: int) -> Dict[str, int]:
        return {c: v for (cid, c), v in self._positions.items() if cid == contract_id}

    def underlying_power_multiplier(self) -> int:
        return self.token_validator.scale_factor(self.underlying_currency)

    def strike_power_multiplier(self) -> int:
        return self.token_validator.scale_factor(self.strike_currency)

    def iter_positions(self) -> Iterator[Tuple[int, str, int]]:
        for (contract_id, client), size in sorted(self._positions.items()):
            yield contract_id, client, size
