import pytest

from settlecore.access import ADMIN_ROLE, UTILITY_ACCOUNT_ROLE, AccessController
from settlecore.assets.token import Token
from settlecore.assets.validator import TokenValidator
from settlecore.ledger import FundLock, Registry

ADMIN = "admin"
UTILITY = "utility"
T0 = 1_700_000_000


class FakeClock:
    def __init__(self, t: int = T0):
        self.t = t

    def __call__(self) -> int:
        return self.t

    def advance(self, seconds: int) -> None:
        self.t += seconds


@pytest.fixture(autouse=True)
def _no_redis(monkeypatch):
    # Records are still logged; only the Redis stream is skipped
    monkeypatch.setenv("DISABLE_EVENT_STREAM", "1")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def weth():
    return Token("0xWETH", "WETH", 18)


@pytest.fixture
def usdc():
    return Token("0xUSDC", "USDC", 6)


@pytest.fixture
def venue(clock, weth, usdc):
    """Wired access controller, validator, fund lock, registry and a WETH/USDC ledger."""
    access = AccessController(ADMIN, clock=clock)
    validator = TokenValidator(access)
    fund_lock = FundLock(access, validator, trade_lock=1200, release_lock=2400)
    registry = Registry(access, validator, fund_lock)
    access.grant_role(ADMIN, ADMIN_ROLE, registry.address)
    access.grant_role(ADMIN, UTILITY_ACCOUNT_ROLE, UTILITY)
    fund_lock.set_registry(ADMIN, registry)
    ledger = registry.deploy_ledger(ADMIN, weth, usdc, 7, 4)

    class Venue:
        pass

    v = Venue()
    v.access, v.validator, v.fund_lock, v.registry, v.ledger = access, validator, fund_lock, registry, ledger
    v.clock, v.weth, v.usdc = clock, weth, usdc
    return v


def fund(fund_lock, token, client, amount):
    token.mint(client, amount)
    token.approve(client, fund_lock.address, amount)
    fund_lock.deposit(client, client, token, amount)
