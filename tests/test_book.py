import dataclasses
import random
import unittest
import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from shared.config import BotSettings
from shared.models import StrategyType, Tick, TradeStatus, TradeType
from trade_manager.book import TradeBook

HOLD = 5000


class TestTradeBook(unittest.TestCase):
    def setUp(self):
        self.book = TradeBook(initial_balance=10_000.0)
        self.settings = BotSettings(stake=50.0, strategy=StrategyType.RSI_REVERSAL)

    def test_open_trade(self):
        trade = self.book.open_trade(TradeType.CALL, 100.0, self.settings, now=1_000)
        self.assertEqual(trade.status, TradeStatus.PENDING)
        self.assertEqual(trade.profit, 0)
        self.assertEqual(trade.entry_price, 100.0)
        self.assertEqual(trade.stake, 50.0)
        self.assertEqual(trade.strategy_used, "RSI_REVERSAL")
        self.assertIsNone(trade.exit_price)
        self.assertIs(self.book.active, trade)

    def test_second_open_is_rejected(self):
        first = self.book.open_trade(TradeType.CALL, 100.0, self.settings, now=0)
        for _ in range(5):
            self.assertIsNone(self.book.open_trade(TradeType.PUT, 101.0, self.settings, now=10))
        self.assertIs(self.book.active, first)
        self.assertEqual(len(self.book.history), 0)

    def test_ids_are_unique(self):
        ids = set()
        for i in range(50):
            t = self.book.open_trade(TradeType.CALL, 1.0, self.settings, now=i * 10_000)
            ids.add(t.id)
            self.book.try_settle(Tick(0, 2.0), now=i * 10_000 + HOLD + 1, hold_duration_ms=HOLD)
        self.assertEqual(len(ids), 50)

    def test_no_settlement_before_deadline(self):
        self.book.open_trade(TradeType.CALL, 100.0, self.settings, now=0)
        self.assertIsNone(self.book.try_settle(Tick(1, 105.0), now=HOLD, hold_duration_ms=HOLD))
        self.assertIsNotNone(self.book.active)

    def test_call_win(self):
        self.book.open_trade(TradeType.CALL, 100.0, self.settings, now=0)
        done = self.book.try_settle(Tick(1, 105.0), now=HOLD + 1, hold_duration_ms=HOLD)
        self.assertEqual(done.status, TradeStatus.WIN)
        self.assertAlmostEqual(done.profit, 47.5)
        self.assertEqual(done.exit_price, 105.0)
        self.assertAlmostEqual(self.book.balance, 10_047.5)
        self.assertIsNone(self.book.active)

    def test_call_loss(self):
        self.book.open_trade(TradeType.CALL, 100.0, self.settings, now=0)
        done = self.book.try_settle(Tick(1, 95.0), now=HOLD + 1, hold_duration_ms=HOLD)
        self.assertEqual(done.status, TradeStatus.LOSS)
        self.assertEqual(done.profit, -50.0)
        self.assertEqual(self.book.balance, 9_950.0)

    def test_put_win_and_flat_loss(self):
        self.book.open_trade(TradeType.PUT, 100.0, self.settings, now=0)
        done = self.book.try_settle(Tick(1, 99.0), now=HOLD + 1, hold_duration_ms=HOLD)
        self.assertEqual(done.status, TradeStatus.WIN)

        self.book.open_trade(TradeType.PUT, 100.0, self.settings, now=HOLD + 1)
        done = self.book.try_settle(Tick(2, 100.0), now=2 * HOLD + 2, hold_duration_ms=HOLD)
        self.assertEqual(done.status, TradeStatus.LOSS)

    def test_settle_is_once(self):
        self.book.open_trade(TradeType.CALL, 100.0, self.settings, now=0)
        self.assertIsNotNone(self.book.try_settle(Tick(1, 105.0), now=HOLD + 1, hold_duration_ms=HOLD))
        self.assertIsNone(self.book.try_settle(Tick(2, 110.0), now=HOLD + 2, hold_duration_ms=HOLD))
        self.assertEqual(len(self.book.history), 1)

    def test_settle_without_trade(self):
        self.assertIsNone(self.book.try_settle(Tick(1, 1.0), now=10**9, hold_duration_ms=HOLD))

    def test_balance_equals_sum_of_profits(self):
        prices = [101, 99, 102, 98, 100, 103, 97]
        now = 0
        for i, exit_px in enumerate(prices):
            kind = TradeType.CALL if i % 2 else TradeType.PUT
            self.book.open_trade(kind, 100.0, self.settings, now=now)
            now += HOLD + 1
            self.book.try_settle(Tick(now, float(exit_px)), now=now, hold_duration_ms=HOLD)
        total = sum(t.profit for t in self.book.history)
        self.assertEqual(self.book.balance, 10_000.0 + total)

    def test_balance_is_exact_with_uneven_stakes(self):
        rng = random.Random(11)
        now = 0
        for _ in range(40):
            settings = BotSettings(stake=round(rng.uniform(1, 100), 2),
                                   strategy=StrategyType.RSI_REVERSAL)
            self.book.open_trade(TradeType.CALL, 100.0, settings, now=now)
            now += HOLD + 1
            exit_px = 101.0 if rng.random() < 0.5 else 99.0
            self.book.try_settle(Tick(now, exit_px), now=now, hold_duration_ms=HOLD)
        self.book.open_trade(TradeType.PUT, 100.0, BotSettings(stake=33.17), now=now)
        self.book.cancel_active(100.0)
        profits = [t.profit for t in self.book.history]
        self.assertEqual(len(profits), 41)
        self.assertEqual(self.book.balance, 10_000.0 + sum(profits))

    def test_history_is_immutable(self):
        self.book.open_trade(TradeType.CALL, 100.0, self.settings, now=0)
        self.book.try_settle(Tick(1, 105.0), now=HOLD + 1, hold_duration_ms=HOLD)
        trade = self.book.history[0]
        with self.assertRaises(dataclasses.FrozenInstanceError):
            trade.profit = 0
        self.assertIsInstance(self.book.history, tuple)

    def test_cancel_active(self):
        self.assertIsNone(self.book.cancel_active(100.0))
        self.book.open_trade(TradeType.CALL, 100.0, self.settings, now=0)
        done = self.book.cancel_active(90.0)
        self.assertEqual(done.status, TradeStatus.CANCELLED)
        self.assertEqual(done.profit, 0)
        self.assertEqual(done.exit_price, 90.0)
        self.assertEqual(self.book.balance, 10_000.0)
        self.assertIsNone(self.book.active)

    def test_summary(self):
        self.assertEqual(self.book.summary()["overall"]["trades"], 0)
        self.book.open_trade(TradeType.CALL, 100.0, self.settings, now=0)
        self.book.try_settle(Tick(1, 105.0), now=HOLD + 1, hold_duration_ms=HOLD)
        self.book.open_trade(TradeType.CALL, 100.0, self.settings, now=HOLD + 1)
        self.book.try_settle(Tick(2, 95.0), now=2 * HOLD + 2, hold_duration_ms=HOLD)
        self.book.open_trade(TradeType.CALL, 100.0, self.settings, now=2 * HOLD + 2)
        self.book.cancel_active(100.0)

        s = self.book.summary()
        self.assertEqual(s["overall"]["trades"], 3)
        self.assertEqual(s["overall"]["wins"], 1)
        self.assertEqual(s["overall"]["losses"], 1)
        self.assertEqual(s["overall"]["cancelled"], 1)
        self.assertEqual(s["overall"]["win_rate"], 0.5)
        self.assertEqual(s["overall"]["profit"], -2.5)
        self.assertIn("RSI_REVERSAL", s["by_strategy"])


if __name__ == '__main__':
    unittest.main()
