from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from ..access.controller import ADMIN_ROLE, AccessController
from ..errors import InvalidPrecision, NotWhitelisted, ZeroPrecision
from ..events.journal import Clock, EventJournal
from ..events.schema import AddedToWhitelist, RemovedFromWhitelist
from .scaling import power_multiplier
from .token import Token

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenDetails:
    precision: int
    decimal_precision_diff: int

    @property
    def scale_factor(self) -> int:
        return power_multiplier(self.precision + self.decimal_precision_diff, self.precision)


class TokenValidator(EventJournal):
    """Whitelist of accepted assets and their trade precision.

    A removed asset keeps no record: its precision reads back as zero, which is
    what the custody ledger checks before accepting withdrawals.
    """

    def __init__(self, access: AccessController, address: str = "token-validator", clock: Optional[Clock] = None):
        super().__init__(address, clock or access.clock)
        self.access = access
        self._details: Dict[str, TokenDetails] = {}

    def add_tokens_to_whitelist(self, sender: str, tokens: Iterable[Tuple[Token, int]]) -> None:
        self.access.check_role(ADMIN_ROLE, sender)
        staged: Dict[str, TokenDetails] = {}
        for token, precision in tokens:
            if precision <= 0:
                raise ZeroPrecision(token.address)
            if precision > token.decimals:
                raise InvalidPrecision(token.address, precision, token.decimals)
            staged[token.address] = TokenDetails(precision, token.decimals - precision)
        for address, details in staged.items():
            self._details[address] = details
            log.info(f"whitelisted {address}: precision={details.precision} diff={details.decimal_precision_diff}")
            self._emit(
                AddedToWhitelist,
                asset=address,
                precision=details.precision,
                decimal_precision_diff=details.decimal_precision_diff,
            )

    def remove_token_from_whitelist(self, sender: str, token: Token) -> None:
        self.access.check_role(ADMIN_ROLE, sender)
        if token.address not in self._details:
            raise ZeroPrecision(token.address)
        del self._details[token.address]
        log.info(f"removed {token.address} from whitelist")
        self._emit(RemovedFromWhitelist, asset=token.address)

    def is_whitelisted(self, token: Token) -> bool:
        return self.precision_of(token) > 0

    def precision_of(self, token: Token) -> int:
        details = self._details.get(token.address)
        return details.precision if details else 0

    def get_token_details(self, token: Token) -> TokenDetails:
        return self._details.get(token.address, TokenDetails(0, 0))

    def scale_factor(self, token: Token) -> int:
        """10 ** (decimals - precision) for a whitelisted asset."""
        details = self._details.get(token.address)
        if details is None:
            raise NotWhitelisted(token.address)
        return details.scale_factor
