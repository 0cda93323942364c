import pytest

from settlecore.assets.scaling import power_multiplier
from settlecore.errors import EmptyArray, FundFromWithdrawnFailed, Unauthorized
from settlecore.events.schema import BalancesUpdated, FundMovementsUpdated, PositionsUpdated
from settlecore.ledger import FundMovementParam, PositionParam

from conftest import UTILITY, fund

E18 = 10 ** 18


def test_power_multipliers_follow_whitelist(venue):
    assert venue.ledger.underlying_power_multiplier() == power_multiplier(18, 7) == 10 ** 11
    assert venue.ledger.strike_power_multiplier() == power_multiplier(6, 4) == 100


def test_positions_apply_signed_deltas(venue):
    led = venue.ledger
    batch = [PositionParam("alice", 1, 5), PositionParam("bob", 1, -3), PositionParam("carol", 1, -2)]
    assert sum(p.size for p in batch) == 0
    led.update_positions(UTILITY, batch, backend_id=11)
    led.update_positions(UTILITY, [PositionParam("alice", 1, -5), PositionParam("bob", 1, 5)], backend_id=12)
    assert led.client_positions(1, "alice") == 0
    assert led.client_positions(1, "bob") == 2
    assert led.client_positions(1, "carol") == -2
    assert led.client_positions(2, "alice") == 0
    assert led.contract_positions(1) == {"alice": 0, "bob": 2, "carol": -2}
    assert [e.backend_id for e in led.events_of(PositionsUpdated)] == [11, 12]


def test_update_positions_checks_role_before_input(venue):
    with pytest.raises(Unauthorized):
        venue.ledger.update_positions("alice", [], backend_id=1)
    with pytest.raises(EmptyArray):
        venue.ledger.update_positions(UTILITY, [], backend_id=1)


def test_settlement_moves_premium_and_collateral(venue):
    # Scenario D
    fl, led, weth, usdc = venue.fund_lock, venue.ledger, venue.weth, venue.usdc
    fund(fl, weth, "writer", 2 * E18)
    fund(fl, usdc, "buyer", 10_000 * 10 ** 6)
    fund(fl, usdc, "bystander", 777)
    led.update_positions(UTILITY, [PositionParam("writer", 9, -10 ** 7), PositionParam("buyer", 9, 10 ** 7)], 1)

    premium = 150 * 10 ** 4  # 150 USDC at trade precision 4
    collateral = 10 ** 7  # 1 WETH at trade precision 7
    led.update_fund_movements(
        UTILITY,
        [
            FundMovementParam("buyer", -collateral, premium),
            FundMovementParam("writer", collateral, -premium),
        ],
        backend_id=2,
    )
    assert fl.balance_sheet("buyer", usdc) == (10_000 - 150) * 10 ** 6
    assert fl.balance_sheet("writer", usdc) == 150 * 10 ** 6
    assert fl.balance_sheet("writer", weth) == E18
    assert fl.balance_sheet("buyer", weth) == E18
    assert fl.balance_sheet("bystander", usdc) == 777

    evt = fl.events_of(BalancesUpdated)[-1]
    # Strike leg first, then underlying, amounts negated and scaled to native decimals
    assert evt.clients == ["buyer", "buyer", "writer", "writer"]
    assert evt.assets == [usdc.address, weth.address, usdc.address, weth.address]
    assert evt.amounts == [-150 * 10 ** 6, E18, 150 * 10 ** 6, -E18]
    assert evt.backend_id == 2
    assert led.events_of(FundMovementsUpdated)[-1].backend_id == 2


def test_fund_movements_skip_zero_legs(venue):
    fl, led, usdc = venue.fund_lock, venue.ledger, venue.usdc
    fund(fl, usdc, "buyer", 10 ** 6)
    led.update_fund_movements(UTILITY, [FundMovementParam("buyer", 0, 100), FundMovementParam("writer", 0, -100)], 3)
    evt = fl.events_of(BalancesUpdated)[-1]
    assert evt.assets == [usdc.address, usdc.address]
    assert evt.amounts == [-10_000, 10_000]


def test_fund_movements_reject_empty_entries(venue):
    led = venue.ledger
    with pytest.raises(EmptyArray):
        led.update_fund_movements(UTILITY, [], 1)
    with pytest.raises(EmptyArray):
        led.update_fund_movements(UTILITY, [FundMovementParam("alice", 0, 0)], 1)
    with pytest.raises(Unauthorized):
        led.update_fund_movements("alice", [FundMovementParam("alice", 1, 0)], 1)


def test_fund_movement_batch_is_atomic(venue):
    fl, led, weth, usdc = venue.fund_lock, venue.ledger, venue.weth, venue.usdc
    fund(fl, usdc, "buyer", 100 * 10 ** 6)
    fund(fl, weth, "writer", E18)
    with pytest.raises(FundFromWithdrawnFailed):
        led.update_fund_movements(
            UTILITY,
            [FundMovementParam("buyer", 0, 101 * 10 ** 4), FundMovementParam("writer", 0, -101 * 10 ** 4)],
            backend_id=4,
        )
    assert fl.balance_sheet("buyer", usdc) == 100 * 10 ** 6
    assert fl.balance_sheet("writer", usdc) == 0
    assert led.events_of(FundMovementsUpdated) == []
