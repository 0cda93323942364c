import pytest

from settlecore.access import ADMIN_ROLE, UTILITY_ACCOUNT_ROLE, AccessController
from settlecore.assets.token import Token
from settlecore.assets.scaling import power_multiplier
from settlecore.assets.validator import TokenValidator
from settlecore.errors import InvalidMarket, InvalidPrecision, NotWhitelisted, Unauthorized, ZeroAddress, ZeroPrecision
from settlecore.events.schema import (
    AddedToWhitelist,
    FundLockUpdated,
    LedgerDeployed,
    RemovedFromWhitelist,
    RoleGranted,
    RoleRevoked,
    TokenValidatorUpdated,
)
from settlecore.ledger import Registry

from conftest import ADMIN


def test_roles_grant_and_revoke(clock):
    access = AccessController(ADMIN, clock=clock)
    assert access.has_role(ADMIN_ROLE, ADMIN)
    access.grant_role(ADMIN, UTILITY_ACCOUNT_ROLE, "bot")
    assert access.has_role(UTILITY_ACCOUNT_ROLE, "bot")
    access.revoke_role(ADMIN, UTILITY_ACCOUNT_ROLE, "bot")
    assert not access.has_role(UTILITY_ACCOUNT_ROLE, "bot")
    assert [e.account for e in access.events_of(RoleGranted)] == ["bot"]
    assert [e.account for e in access.events_of(RoleRevoked)] == ["bot"]

    with pytest.raises(Unauthorized) as exc:
        access.grant_role("bot", ADMIN_ROLE, "bot")
    assert str(exc.value) == 'AccessControlUnauthorizedAccount("bot", "ADMIN")'
    with pytest.raises(ZeroAddress):
        AccessController("")


def test_whitelist_precision_rules(clock):
    access = AccessController(ADMIN, clock=clock)
    validator = TokenValidator(access)
    weth = Token("0xWETH", "WETH", 18)
    usdc = Token("0xUSDC", "USDC", 6)
    validator.add_tokens_to_whitelist(ADMIN, [(weth, 7), (usdc, 4)])
    details = validator.get_token_details(weth)
    assert (details.precision, details.decimal_precision_diff) == (7, 11)
    assert details.scale_factor == power_multiplier(weth.decimals, 7) == 10 ** 11
    assert validator.scale_factor(usdc) == 100
    assert [e.asset for e in validator.events_of(AddedToWhitelist)] == [weth.address, usdc.address]

    with pytest.raises(ZeroPrecision):
        validator.add_tokens_to_whitelist(ADMIN, [(weth, 0)])
    bad = Token("0xBAD", "BAD", 4)
    with pytest.raises(InvalidPrecision):
        validator.add_tokens_to_whitelist(ADMIN, [(bad, 5)])
    with pytest.raises(Unauthorized):
        validator.add_tokens_to_whitelist("alice", [(bad, 2)])
    assert not validator.is_whitelisted(bad)

    validator.remove_token_from_whitelist(ADMIN, usdc)
    assert validator.precision_of(usdc) == 0
    assert validator.events_of(RemovedFromWhitelist)[-1].asset == usdc.address
    with pytest.raises(ZeroPrecision):
        validator.remove_token_from_whitelist(ADMIN, usdc)
    with pytest.raises(NotWhitelisted):
        validator.scale_factor(usdc)


def test_registry_deploys_and_vouches(venue):
    reg = venue.registry
    assert reg.is_valid_ledger(venue.ledger.address)
    assert not reg.is_valid_ledger("ledger:unknown")
    assert reg.ledger_for(venue.weth, venue.usdc) is venue.ledger
    evt = reg.events_of(LedgerDeployed)[-1]
    assert (evt.underlying, evt.strike) == (venue.weth.address, venue.usdc.address)

    with pytest.raises(InvalidMarket):
        reg.deploy_ledger(ADMIN, venue.weth, venue.weth, 7, 7)
    with pytest.raises(Unauthorized):
        reg.deploy_ledger("alice", venue.weth, venue.usdc, 7, 4)


def test_registry_needs_admin_to_whitelist(clock, weth, usdc):
    access = AccessController(ADMIN, clock=clock)
    validator = TokenValidator(access)
    reg = Registry(access, validator, fund_lock=None)
    with pytest.raises(Unauthorized) as exc:
        reg.deploy_ledger(ADMIN, weth, usdc, 7, 4)
    assert exc.value.account == reg.address


def test_registry_collaborator_setters(venue):
    reg = venue.registry
    other = TokenValidator(venue.access, address="token-validator-2")
    reg.set_token_validator(ADMIN, other)
    assert reg.events_of(TokenValidatorUpdated)[-1].token_validator == "token-validator-2"
    reg.set_fund_lock(ADMIN, venue.fund_lock)
    assert reg.events_of(FundLockUpdated)[-1].fund_lock == venue.fund_lock.address
    with pytest.raises(ZeroAddress):
        reg.set_fund_lock(ADMIN, None)
    with pytest.raises(Unauthorized):
        reg.set_token_validator("alice", other)
