"""
Tests for trade payload validation
"""
import pytest

from colosseum.domain.errors import TradeValidationError
from colosseum.domain.models import TradeAction
from colosseum.parsing.trade_validator import validate_trades

TICKERS = {"AAA", "BBB"}
PRICES = {"AAA": 100.0, "BBB": 20.0}


def _validate(trades, cash=5000.0):
    return validate_trades({"trades": trades}, TICKERS, cash, PRICES)


def test_unknown_ticker_is_dropped():
    orders = _validate(
        [
            {"action": "LONG", "ticker": "ZZZ", "qty": 5},
            {"action": "LONG", "ticker": "AAA", "qty": 5},
        ]
    )
    assert [(o.ticker, o.qty) for o in orders] == [("AAA", 5)]


def test_long_is_capped_by_cash():
    orders = _validate([{"action": "LONG", "ticker": "AAA", "qty": 1000}])
    assert orders[0].qty == 50


def test_each_order_is_capped_independently():
    orders = _validate(
        [
            {"action": "LONG", "ticker": "AAA", "qty": 40},
            {"action": "SHORT", "ticker": "BBB", "qty": 400},
        ],
        cash=5000.0,
    )
    assert [o.qty for o in orders] == [40, 250]


def test_fractional_qty_is_floored():
    orders = _validate([{"action": "SHORT", "ticker": "BBB", "qty": 7.9}])
    assert orders[0].qty == 7
    assert orders[0].action is TradeAction.SHORT


def test_close_orders_are_not_cash_capped():
    orders = _validate([{"action": "CLOSE_LONG", "ticker": "AAA", "qty": 500}], cash=0.0)
    assert orders[0].qty == 500


@pytest.mark.parametrize("qty", [0, -3, "10", None, True, float("nan"), 0.4])
def test_bad_quantities_are_dropped(qty):
    assert _validate([{"action": "LONG", "ticker": "AAA", "qty": qty}]) == []


def test_unknown_action_and_malformed_entries_are_dropped():
    orders = _validate(
        [
            {"action": "BUY", "ticker": "AAA", "qty": 1},
            {"action": ["LONG"], "ticker": "AAA", "qty": 1},
            "LONG AAA 1",
            {"action": "CLOSE_SHORT", "ticker": "BBB", "qty": 2, "reason": "cover"},
        ]
    )
    assert len(orders) == 1
    assert orders[0].reason == "cover"


def test_unaffordable_order_is_dropped():
    assert _validate([{"action": "LONG", "ticker": "AAA", "qty": 3}], cash=50.0) == []


def test_empty_trades_is_valid():
    assert _validate([]) == []


@pytest.mark.parametrize("candidate", [None, "LONG AAA 5", 42, {"reasoning": "hold"}, {"trades": "none"}])
def test_invalid_payload_raises(candidate):
    with pytest.raises(TradeValidationError):
        validate_trades(candidate, TICKERS, 1000.0, PRICES)


def test_bare_entry_list_is_validated():
    assert validate_trades([{"action": "LONG", "ticker": "ZZZ", "qty": 5}], {"AAA"}, 5000.0, {"AAA": 100.0}) == []


def test_bare_entry_list_is_capped_like_wrapped_form():
    orders = validate_trades([{"action": "LONG", "ticker": "AAA", "qty": 1000}], {"AAA"}, 5000.0, {"AAA": 100.0})
    assert [(o.ticker, o.qty) for o in orders] == [("AAA", 50)]
    assert validate_trades([], TICKERS, 1000.0, PRICES) == []
