from __future__ import annotations

import logging
from typing import Dict, Optional, Set

from ..events.journal import Clock, EventJournal
from ..events.schema import RoleGranted, RoleRevoked
from ..errors import Unauthorized, ZeroAddress

ADMIN_ROLE = "ADMIN"
UTILITY_ACCOUNT_ROLE = "UTILITY_ACCOUNT"

log = logging.getLogger(__name__)


class AccessController(EventJournal):
    """Role registry consulted at the top of every privileged operation.

    The deploying account receives ADMIN; only ADMIN may grant or revoke.
    """

    def __init__(self, admin: str, address: str = "access-controller", clock: Optional[Clock] = None):
        super().__init__(address, clock)
        if not admin:
            raise ZeroAddress()
        self._members: Dict[str, Set[str]] = {ADMIN_ROLE: {admin}}

    def has_role(self, role: str, account: str) -> bool:
        return account in self._members.get(role, set())

    def check_role(self, role: str, account: str) -> None:
        if not self.has_role(role, account):
            raise Unauthorized(account, role)

    def grant_role(self, sender: str, role: str, account: str) -> None:
        self.check_role(ADMIN_ROLE, sender)
        if not account:
            raise ZeroAddress()
        members = self._members.setdefault(role, set())
        if account in members:
            return
        members.add(account)
        log.info(f"role granted: {role} -> {account}")
        self._emit(RoleGranted, role=role, account=account)

    def revoke_role(self, sender: str, role: str, account: str) -> None:
        self.check_role(ADMIN_ROLE, sender)
        members = self._members.get(role, set())
        if account not in members:
            return
        members.discard(account)
        log.info(f"role revoked: {role} -> {account}")
        self._emit(RoleRevoked, role=role, account=account)
