import logging

from breakout_trading.core.config import MarketConfig
from breakout_trading.core.errors import (
    ErrorKind,
    NoOracleData,
    ProviderError,
    SubmitError,
    UnknownMarketAccount,
    VenueError,
)
from breakout_trading.execution.orders import Direction, OrderIntent
from breakout_trading.signals.engine import SignalDecision

from fakes import BREAKOUT, FADED, FakeHistory, FakeVenue

NAMES = {0: "BTC", 1: "ETH", 5: "SOL"}
Q, B = 10**6, 10**9


def test_flat_market_with_breakout_places_sized_long(make_controller, markets):
    venue = FakeVenue(NAMES, prices={0: 100})
    controller = make_controller(venue, FakeHistory({"1": BREAKOUT}))

    report = controller.run_pass(markets[:1])

    expected = OrderIntent(0, Direction.LONG, 200 * Q * B // 100)
    assert report.intents == [expected]
    assert venue.submitted == [expected]
    assert report.outcomes[0].decision is SignalDecision.ENTER_LONG
    assert report.outcomes[0].order_id == "oid-1"
    assert not report.aborted


def test_held_market_with_exit_closes_exact_exposure(make_controller):
    venue = FakeVenue(NAMES, positions={0: 5_000_000}, prices={0: 100})
    controller = make_controller(venue, FakeHistory({"1": FADED}))

    report = controller.run_pass([MarketConfig(0, "BTC", "1", 999_999)])

    assert report.intents == [OrderIntent(0, Direction.SHORT, 5_000_000)]
    assert venue.positions[0] == 0


def test_hold_emits_no_intent(make_controller, markets):
    venue = FakeVenue(NAMES, positions={0: 7}, prices={0: 100})
    controller = make_controller(venue, FakeHistory({"1": BREAKOUT}))

    report = controller.run_pass(markets[:1])

    assert report.intents == []
    assert report.outcomes[0].decision is SignalDecision.HOLD
    assert venue.submitted == []


def test_short_position_is_not_holding(make_controller, markets):
    # Long-only: a short is never closed by the exit rule
    venue = FakeVenue(NAMES, positions={0: -3_000}, prices={0: 100})
    controller = make_controller(venue, FakeHistory({"1": FADED}))

    report = controller.run_pass(markets[:1])

    assert report.intents == []


def test_exposure_refreshed_once_before_any_market(make_controller, markets):
    venue = FakeVenue(NAMES, prices={0: 100, 1: 100, 5: 100})
    controller = make_controller(venue, FakeHistory({"1": FADED, "1027": FADED, "5426": FADED}))

    controller.run_pass(markets)

    kinds = [c[0] for c in venue.calls]
    refreshes = [c for c in venue.calls if c[0] == "get_position"]
    assert refreshes == [("get_position", 0), ("get_position", 1), ("get_position", 5)]
    assert kinds.index("get_market_descriptor") > max(i for i, k in enumerate(kinds) if k == "get_position")


def test_markets_processed_in_order_with_pacing(make_controller, markets, sleeper):
    history = FakeHistory({"1": FADED, "1027": FADED, "5426": FADED})
    controller = make_controller(FakeVenue(NAMES), history)

    report = controller.run_pass(markets)

    assert [r[0] for r in history.requests] == ["1", "1027", "5426"]
    assert [o.market_index for o in report.outcomes] == [0, 1, 5]
    assert sleeper.calls == [1.0, 1.0, 1.0]


def test_per_market_errors_are_isolated(make_controller, markets, sleeper):
    venue = FakeVenue(NAMES, prices={1: 100})
    history = FakeHistory(
        {"1": BREAKOUT[:10], "1027": BREAKOUT},
        errors={"5426": ProviderError("503 Service Unavailable")},
    )
    extra = MarketConfig(2, "ATOM", "3794", 200)
    venue.names[2] = "ATOM"
    history.prices_by_id["3794"] = BREAKOUT  # no oracle price for market 2
    controller = make_controller(venue, history)

    report = controller.run_pass(markets + [extra])

    errors = {o.market_index: o.error for o in report.outcomes}
    assert errors == {
        0: ErrorKind.INSUFFICIENT_HISTORY,
        1: None,
        5: ErrorKind.PROVIDER_ERROR,
        2: ErrorKind.NO_ORACLE_DATA,
    }
    assert report.intents == [OrderIntent(1, Direction.LONG, 200 * Q * B // 100)]
    assert not report.aborted
    assert len(sleeper.calls) == 4


def test_submit_error_is_non_fatal(make_controller, markets):
    venue = FakeVenue(NAMES, prices={0: 100, 1: 100}, fail_submit={0})
    history = FakeHistory({"1": BREAKOUT, "1027": BREAKOUT})
    controller = make_controller(venue, history)

    report = controller.run_pass(markets[:2])

    first, second = report.outcomes
    assert first.error is ErrorKind.SUBMIT_ERROR
    assert first.intent is not None and not first.submitted
    assert second.error is None and second.submitted
    assert report.errors(ErrorKind.SUBMIT_ERROR) == [first]


def test_unknown_market_aborts_pass(make_controller, sleeper):
    venue = FakeVenue(NAMES, prices={0: 100, 1: 100})
    history = FakeHistory({"1": BREAKOUT, "1027": BREAKOUT})
    controller = make_controller(venue, history)
    markets = [
        MarketConfig(0, "BTC", "1", 200),
        MarketConfig(42, "NOPE", "999", 200),
        MarketConfig(1, "ETH", "1027", 200),
    ]

    report = controller.run_pass(markets)

    assert report.aborted
    assert [o.market_index for o in report.outcomes] == [0, 42]
    assert report.outcomes[1].error is ErrorKind.UNKNOWN_MARKET_ACCOUNT
    assert report.intents == [OrderIntent(0, Direction.LONG, 200 * Q * B // 100)]
    assert [r[0] for r in history.requests] == ["1"]
    assert sleeper.calls == [1.0]


def test_second_pass_is_idempotent(make_controller, markets):
    venue = FakeVenue(NAMES, prices={0: 100, 1: 100, 5: 100})
    history = FakeHistory({"1": BREAKOUT, "1027": FADED, "5426": BREAKOUT})
    controller = make_controller(venue, history)

    first = controller.run_pass(markets)
    second = controller.run_pass(markets)
    positions_after_second = dict(controller.tracker.positions)
    third = controller.run_pass(markets)

    assert [i.market_index for i in first.intents] == [0, 5]
    assert second.intents == third.intents == []
    assert [o.decision for o in second.outcomes] == [SignalDecision.HOLD] * 3
    assert controller.tracker.positions == positions_after_second
    assert {k: p.base_asset_amount for k, p in controller.tracker.positions.items()} == {
        0: 200 * Q * B // 100,
        5: 200 * Q * B // 100,
    }


def test_entry_then_exit_round_trip_flattens(make_controller, markets):
    venue = FakeVenue(NAMES, prices={0: 100})
    history = FakeHistory({"1": BREAKOUT})
    controller = make_controller(venue, history)

    controller.run_pass(markets[:1])
    history.prices_by_id["1"] = FADED
    report = controller.run_pass(markets[:1])

    assert report.intents == [OrderIntent(0, Direction.SHORT, 200 * Q * B // 100)]
    assert venue.positions[0] == 0
    controller.run_pass(markets[:1])
    assert 0 not in controller.tracker.positions


class FlakyVenue(FakeVenue):
    """Venue whose reads raise transport errors for selected markets."""

    def __init__(self, *args, oracle_down=(), positions_down=(), meta_down=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.oracle_down = set(oracle_down)
        self.positions_down = set(positions_down)
        self.meta_down = set(meta_down)

    def get_oracle_price(self, market_index):
        if market_index in self.oracle_down:
            raise ConnectionError("oracle endpoint reset")
        return super().get_oracle_price(market_index)

    def get_position(self, market_index):
        if market_index in self.positions_down:
            raise ConnectionError("user state read timed out")
        return super().get_position(market_index)

    def get_market_descriptor(self, market_index):
        if market_index in self.meta_down:
            raise VenueError("meta_and_asset_ctxs request failed: 502")
        return super().get_market_descriptor(market_index)


def test_oracle_transport_error_does_not_stop_later_markets(make_controller, markets, sleeper):
    venue = FlakyVenue(NAMES, prices={0: 100, 1: 100}, oracle_down={0})
    controller = make_controller(venue, FakeHistory({"1": BREAKOUT, "1027": BREAKOUT}))

    report = controller.run_pass(markets[:2])

    assert report.outcomes[0].error is ErrorKind.VENUE_ERROR
    assert "oracle endpoint reset" in report.outcomes[0].error_msg
    assert report.intents == [OrderIntent(1, Direction.LONG, 200 * Q * B // 100)]
    assert not report.aborted
    assert sleeper.calls == [1.0, 1.0]


def test_position_read_failure_skips_only_that_market(make_controller, markets):
    venue = FlakyVenue(NAMES, positions={0: 5_000_000}, prices={0: 100, 1: 100}, positions_down={0})
    history = FakeHistory({"1": FADED, "1027": BREAKOUT})
    controller = make_controller(venue, history)

    report = controller.run_pass(markets[:2])

    # Holding unknown: no decision and no order for BTC
    assert report.outcomes[0].error is ErrorKind.VENUE_ERROR
    assert report.outcomes[0].decision is None
    assert [r[0] for r in history.requests] == ["1027"]
    assert report.intents == [OrderIntent(1, Direction.LONG, 200 * Q * B // 100)]
    assert 0 in controller.tracker.failed

    venue.positions_down.clear()
    controller.run_pass(markets[:1])
    assert controller.tracker.failed == {}


def test_descriptor_read_failure_is_not_an_unknown_market(make_controller, markets):
    venue = FlakyVenue(NAMES, prices={0: 100, 1: 100}, meta_down={0})
    controller = make_controller(venue, FakeHistory({"1": BREAKOUT, "1027": BREAKOUT}))

    report = controller.run_pass(markets[:2])

    assert report.outcomes[0].error is ErrorKind.VENUE_ERROR
    assert report.errors(ErrorKind.UNKNOWN_MARKET_ACCOUNT) == []
    assert not report.aborted
    assert [i.market_index for i in report.intents] == [1]


def test_only_unknown_market_is_fatal():
    assert UnknownMarketAccount(3).fatal
    assert not any(e.fatal for e in (NoOracleData(3), SubmitError("x"), VenueError("x"), ProviderError("x")))


def test_signal_logs_name_the_asset(make_controller, markets, caplog):
    venue = FakeVenue(NAMES, prices={0: 100})
    controller = make_controller(venue, FakeHistory({"1": BREAKOUT}))

    with caplog.at_level(logging.INFO, logger="breakout_trading.signals.engine"):
        controller.run_pass(markets[:1])

    buy = [r.getMessage() for r in caplog.records if r.getMessage().startswith("Buy signal")]
    assert len(buy) == 1
    assert buy[0].startswith("Buy signal: BTC made a new 20-day high")
