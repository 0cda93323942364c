from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from ..access.controller import ADMIN_ROLE, AccessController
from ..assets.token import Token
from ..assets.validator import TokenValidator
from ..errors import InvalidMarket, ZeroAddress
from ..events.journal import Clock, EventJournal
from ..events.schema import FundLockUpdated, LedgerDeployed, TokenValidatorUpdated
from .positions import PositionLedger

log = logging.getLogger(__name__)


class Registry(EventJournal):
    """Creates one PositionLedger per underlying/strike pair and vouches for it.

    The fund lock only accepts balance batches from ledgers this registry
    deployed. Whitelisting the pair's assets is done in the registry's own name,
    so the registry must hold ADMIN on the access controller.
    """

    def __init__(
        self,
        access: AccessController,
        token_validator: TokenValidator,
        fund_lock,
        address: str = "registry",
        clock: Optional[Clock] = None,
    ):
        super().__init__(address, clock or access.clock)
        self.access = access
        self.token_validator = token_validator
        self.fund_lock = fund_lock
        self._ledgers: Dict[str, PositionLedger] = {}
        self._by_pair: Dict[Tuple[str, str], PositionLedger] = {}

    def deploy_ledger(
        self,
        sender: str,
        underlying: Token,
        strike: Token,
        underlying_precision: int,
        strike_precision: int,
    ) -> PositionLedger:
        self.access.check_role(ADMIN_ROLE, sender)
        if underlying.address == strike.address:
            raise InvalidMarket(underlying.address, strike.address)
        self.token_validator.add_tokens_to_whitelist(
            self.address, [(underlying, underlying_precision), (strike, strike_precision)]
        )
        address = f"ledger:{underlying.symbol}/{strike.symbol}:{len(self._ledgers)}"
        ledger = PositionLedger(
            self.access, self.token_validator, self.fund_lock, underlying, strike, address=address, clock=self.clock
        )
        self._ledgers[address] = ledger
        self._by_pair[(underlying.address, strike.address)] = ledger
        log.info(f"deployed {address}")
        self._emit(LedgerDeployed, ledger=address, underlying=underlying.address, strike=strike.address)
        return ledger

    def is_valid_ledger(self, address: str) -> bool:
        return address in self._ledgers

    def ledger_for(self, underlying: Token, strike: Token) -> Optional[PositionLedger]:
        return self._by_pair.get((underlying.address, strike.address))

    def set_token_validator(self, sender: str, token_validator: TokenValidator) -> None:
        self.access.check_role(ADMIN_ROLE, sender)
        if token_validator is None:
            raise ZeroAddress()
        self.token_validator = token_validator
        self._emit(TokenValidatorUpdated, token_validator=token_validator.address)

    def set_fund_lock(self, sender: str, fund_lock) -> None:
        self.access.check_role(ADMIN_ROLE, sender)
        if fund_lock is None:
            raise ZeroAddress()
        self.fund_lock = fund_lock
        self._emit(FundLockUpdated, fund_lock=fund_lock.address)
