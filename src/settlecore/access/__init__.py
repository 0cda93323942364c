"""Role-based authorization for privileged ledger calls."""

from .controller import ADMIN_ROLE, UTILITY_ACCOUNT_ROLE, AccessController

__all__ = ["ADMIN_ROLE", "UTILITY_ACCOUNT_ROLE", "AccessController"]
