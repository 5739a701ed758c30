"""
Fleet Ledger & Failover Tests
Earning model, accrual, failover latch, aggregate projection

Run: python -m pytest tests/test_fleet_ledger.py -v
"""

import random

import pytest

from agents.failover_monitor import FailoverMonitor
from agents.fleet_ledger import (
    FleetLedger,
    MAX_MARKET_NOISE,
    MEV_EXTRACTION,
    calculate_apy,
    calculate_earning_per_second,
)
from agents.strategy_registry import ProtocolClass
from conftest import FakeClock, FixedRandom, make_ledger, make_registry
from infrastructure.errors import NotFoundError


# =============================================================================
# TEST: EARNING MODEL
# =============================================================================

class TestEarningModel:

    def test_protocol_apy_with_boosts(self):
        assert calculate_apy(ProtocolClass.UNISWAP) == pytest.approx(45.8 * 2.8 * 4.5)
        assert calculate_apy(ProtocolClass.AAVE) == pytest.approx(8.2 * 2.8 * 4.5)
        assert calculate_apy(ProtocolClass.CURVE) == pytest.approx(12.5 * 2.8 * 4.5)
        assert calculate_apy(ProtocolClass.OTHER) == pytest.approx(10 * 2.8 * 4.5)

    def test_earning_per_second_on_100_usd(self):
        apy = calculate_apy(ProtocolClass.UNISWAP)
        assert calculate_earning_per_second(apy) == pytest.approx(apy / 365 / 24 / 3600 * 100)

    def test_initial_entries(self, three_strategy_registry):
        ledger = FleetLedger(three_strategy_registry, rng=random.Random(42))

        assert len(ledger) == 3
        for entry in ledger.entries():
            assert 2000 <= entry.pnl_usd < 7000
            assert 10 <= entry.latency_ms < 110
            assert entry.is_failed_over is False
            assert entry.apy == pytest.approx(calculate_apy(entry.descriptor.protocol_class))

    def test_backups_prefer_same_protocol(self):
        ledger = make_ledger(make_registry(7))

        # ids 1, 4, 7 are uniswap
        assert ledger.get(1).backups[:2] == [4, 7]
        assert 1 not in ledger.get(1).backups
        assert len(ledger.get(1).backups) == 3


# =============================================================================
# TEST: ACCRUAL
# =============================================================================

class TestAccrual:

    def test_accrual_scales_with_elapsed_time(self, three_strategy_registry, fake_clock):
        ledger = make_ledger(three_strategy_registry, initial_pnl={1: 100.0, 2: 100.0, 3: 100.0}, clock=fake_clock)

        fake_clock.advance(10)
        ledger.accrue()

        for entry in ledger.entries():
            assert entry.pnl_usd == pytest.approx(100.0 + entry.earning_per_second * 10)

    def test_accrual_is_monotonic(self, three_strategy_registry):
        clock = FakeClock()
        ledger = FleetLedger(three_strategy_registry, rng=random.Random(7), clock=clock)

        previous = {e.id: e.pnl_usd for e in ledger.entries()}
        for _ in range(50):
            clock.advance(1)
            ledger.accrue()
            for entry in ledger.entries():
                assert entry.pnl_usd >= previous[entry.id]
                previous[entry.id] = entry.pnl_usd

    def test_noise_is_bounded(self, three_strategy_registry, fake_clock):
        ledger = make_ledger(three_strategy_registry, initial_pnl={1: 0.0, 2: 0.0, 3: 0.0}, rng_value=0.9, clock=fake_clock)

        ledger.accrue()  # no time elapsed

        for entry in ledger.entries():
            assert entry.pnl_usd == pytest.approx(0.9 * MAX_MARKET_NOISE)
            assert entry.pnl_usd < MAX_MARKET_NOISE

    def test_mev_bonus_share(self, three_strategy_registry, fake_clock):
        ledger = make_ledger(three_strategy_registry, initial_pnl={1: 0.0, 2: 0.0, 3: 0.0}, rng_value=0.99, clock=fake_clock)

        ledger.accrue()

        expected = 0.99 * MAX_MARKET_NOISE + MEV_EXTRACTION / 450
        for entry in ledger.entries():
            assert entry.pnl_usd == pytest.approx(expected)

    def test_failed_over_entry_is_frozen(self, three_strategy_registry, fake_clock):
        ledger = make_ledger(three_strategy_registry, initial_pnl={1: 10.0, 2: 20.0, 3: 30.0}, clock=fake_clock)
        ledger.manual_failover(2)

        fake_clock.advance(3600)
        ledger.accrue()

        assert ledger.get(2).pnl_usd == 20.0
        assert ledger.get(1).pnl_usd > 10.0
        assert ledger.get(3).pnl_usd > 30.0


# =============================================================================
# TEST: FAILOVER LATCH
# =============================================================================

class TestFailoverLatch:

    def test_accrual_latches_entry_below_threshold(self, three_strategy_registry, fake_clock):
        ledger = make_ledger(three_strategy_registry, initial_pnl={1: 500.0, 2: -2000.0, 3: -1500.0}, clock=fake_clock)

        signals = ledger.accrue()

        assert [s.failing_id for s in signals] == [2]
        assert ledger.get(2).is_failed_over is True
        # exactly at the threshold is not below it
        assert ledger.get(3).is_failed_over is False

    def test_latch_is_one_way(self, three_strategy_registry, fake_clock):
        ledger = make_ledger(three_strategy_registry, initial_pnl={1: 500.0, 2: -2000.0, 3: 500.0}, clock=fake_clock)
        ledger.accrue()

        # recovering P&L does not reopen the latch
        ledger.get(2).pnl_usd = 10_000.0
        for _ in range(3):
            fake_clock.advance(60)
            ledger.accrue()
            assert ledger.evaluate_failover() == []
            assert ledger.get(2).is_failed_over is True

    def test_signal_emitted_once_with_backup(self, three_strategy_registry, fake_clock):
        received = []
        ledger = make_ledger(three_strategy_registry, initial_pnl={1: 500.0, 2: -2000.0, 3: 500.0}, clock=fake_clock)
        ledger.failover_monitor.subscribe(received.append)

        ledger.accrue()
        ledger.evaluate_failover()
        ledger.accrue()

        assert len(received) == 1
        assert received[0].failing_id == 2
        assert received[0].backup_id == ledger.get(2).backups[0]
        assert received[0].reason == "loss_threshold"

    def test_custom_backup_selector(self, three_strategy_registry):
        monitor = FailoverMonitor(threshold_usd=-1500, backup_selector=lambda entry: 99)
        ledger = FleetLedger(three_strategy_registry, failover_monitor=monitor, rng=FixedRandom(), initial_pnl={1: -1600.0})

        signals = ledger.evaluate_failover()

        assert signals[0].backup_id == 99

    def test_listener_error_does_not_break_latch(self, three_strategy_registry):
        ledger = make_ledger(three_strategy_registry, initial_pnl={1: -1600.0})

        def broken_listener(signal):
            raise RuntimeError("listener down")

        ledger.failover_monitor.subscribe(broken_listener)
        ledger.evaluate_failover()

        assert ledger.get(1).is_failed_over is True

    def test_manual_failover(self, three_strategy_registry):
        ledger = make_ledger(three_strategy_registry)

        assert ledger.manual_failover(3) is True
        assert ledger.get(3).is_failed_over is True
        assert ledger.manual_failover(3) is False
        assert ledger.failover_monitor.signals[0].reason == "manual"

    def test_manual_failover_unknown_id(self, three_strategy_registry):
        ledger = make_ledger(three_strategy_registry)

        with pytest.raises(NotFoundError):
            ledger.manual_failover(404)


# =============================================================================
# TEST: AGGREGATION
# =============================================================================

class TestAggregation:

    def test_totals_and_projection(self, three_strategy_registry):
        ledger = make_ledger(three_strategy_registry, initial_pnl={1: 1000.0, 2: 2000.0, 3: 3000.0})

        aggregate = ledger.aggregate()

        assert aggregate.total_pnl == pytest.approx(6000.0)
        # fleet size cancels out of the daily projection
        assert aggregate.projected_daily == pytest.approx(6000.0)
        assert aggregate.projected_hourly == pytest.approx(250.0)
        assert aggregate.avg_apy == pytest.approx(
            sum(e.apy for e in ledger.entries()) / 3
        )

    def test_active_only_excludes_failed_over(self, three_strategy_registry):
        ledger = make_ledger(three_strategy_registry, initial_pnl={1: 1000.0, 2: -2000.0, 3: 3000.0})
        ledger.evaluate_failover()

        assert ledger.aggregate().total_pnl == pytest.approx(2000.0)
        active = ledger.aggregate(include_failed_over=False)
        assert active.total_pnl == pytest.approx(4000.0)
        assert active.strategy_count == 2

    def test_snapshot_shape(self, three_strategy_registry):
        ledger = make_ledger(three_strategy_registry)

        snapshot = ledger.snapshot()

        assert [s["id"] for s in snapshot] == [1, 2, 3]
        assert snapshot[0]["protocol"] == "uniswap"
        assert set(snapshot[0]) >= {"pnl_usd", "apy", "earning_per_second", "latency_ms", "isFailedOver", "backups"}
