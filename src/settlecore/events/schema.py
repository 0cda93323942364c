from __future__ import annotations

from typing import List, Literal, Optional, Union
from pydantic import BaseModel, Field


# ---- Base + envelope ----

class BaseEvent(BaseModel):
    event_type: str
    ts: int
    source: str  # address of the emitting component
    backend_id: Optional[int] = None
    tags: List[str] = []


class EventEnvelope(BaseModel):
    schema_version: str = "v1"
    correlation_id: str
    sequence: int = 0
    event: BaseEvent


# ---- Custodial balance ledger ----

class Deposit(BaseEvent):
    event_type: Literal["deposit"] = "deposit"
    client: str
    asset: str
    amount: int


class Withdraw(BaseEvent):
    event_type: Literal["withdraw"] = "withdraw"
    client: str
    asset: str
    amount: int
    index: int
    requested_at: int


class Release(BaseEvent):
    event_type: Literal["release"] = "release"
    client: str
    asset: str
    amount: int
    index: int


class BalancesUpdated(BaseEvent):
    event_type: Literal["balances_updated"] = "balances_updated"
    clients: List[str] = Field(default_factory=list)
    assets: List[str] = Field(default_factory=list)
    amounts: List[int] = Field(default_factory=list)


class TradeLockSet(BaseEvent):
    event_type: Literal["trade_lock_set"] = "trade_lock_set"
    interval: int


class ReleaseLockSet(BaseEvent):
    event_type: Literal["release_lock_set"] = "release_lock_set"
    interval: int


class RegistryUpdated(BaseEvent):
    event_type: Literal["registry_updated"] = "registry_updated"
    registry: str


class TokenStrategyUpdated(BaseEvent):
    event_type: Literal["token_strategy_updated"] = "token_strategy_updated"
    asset: str
    strategy: Optional[str] = None


class YieldCredited(BaseEvent):
    event_type: Literal["yield_credited"] = "yield_credited"
    client: str
    asset: str
    amount: int


# ---- Position ledger ----

class PositionsUpdated(BaseEvent):
    event_type: Literal["positions_updated"] = "positions_updated"


class FundMovementsUpdated(BaseEvent):
    event_type: Literal["fund_movements_updated"] = "fund_movements_updated"


# ---- Collaborators ----

class AddedToWhitelist(BaseEvent):
    event_type: Literal["added_to_whitelist"] = "added_to_whitelist"
    asset: str
    precision: int
    decimal_precision_diff: int


class RemovedFromWhitelist(BaseEvent):
    event_type: Literal["removed_from_whitelist"] = "removed_from_whitelist"
    asset: str


class LedgerDeployed(BaseEvent):
    event_type: Literal["ledger_deployed"] = "ledger_deployed"
    ledger: str
    underlying: str
    strike: str


class FundLockUpdated(BaseEvent):
    event_type: Literal["fund_lock_updated"] = "fund_lock_updated"
    fund_lock: str


class TokenValidatorUpdated(BaseEvent):
    event_type: Literal["token_validator_updated"] = "token_validator_updated"
    token_validator: str


class RoleGranted(BaseEvent):
    event_type: Literal["role_granted"] = "role_granted"
    role: str
    account: str


class RoleRevoked(BaseEvent):
    event_type: Literal["role_revoked"] = "role_revoked"
    role: str
    account: str


# ---- Yield strategy ----

class FundPulled(BaseEvent):
    event_type: Literal["fund_pulled"] = "fund_pulled"
    asset: str
    amount: int
    managing_fund: int


class FundReturned(BaseEvent):
    event_type: Literal["fund_returned"] = "fund_returned"
    asset: str
    amount: int
    managing_fund: int


class YieldDistributed(BaseEvent):
    event_type: Literal["yield_distributed"] = "yield_distributed"
    client: str
    asset: str
    amount: int


AnyEvent = Union[
    Deposit,
    Withdraw,
    Release,
    BalancesUpdated,
    TradeLockSet,
    ReleaseLockSet,
    RegistryUpdated,
    TokenStrategyUpdated,
    YieldCredited,
    PositionsUpdated,
    FundMovementsUpdated,
    AddedToWhitelist,
    RemovedFromWhitelist,
    LedgerDeployed,
    FundLockUpdated,
    TokenValidatorUpdated,
    RoleGranted,
    RoleRevoked,
    FundPulled,
    FundReturned,
    YieldDistributed,
]
