import asyncio
import unittest

from jupiter_poller.poller import OverlapPolicy, PollDriver


class PollDriverTests(unittest.IsolatedAsyncioTestCase):
    async def test_bounded_loop_runs_one_cycle_per_tick(self) -> None:
        calls = []

        async def tick() -> None:
            calls.append(len(calls))

        stats = await PollDriver(tick).run_bounded(iterations=4, delay=0)

        self.assertEqual(calls, [0, 1, 2, 3])
        self.assertEqual(stats.scheduled, 4)
        self.assertEqual(stats.completed, 4)
        self.assertEqual(stats.skipped, 0)

    async def test_failed_tick_is_logged_and_next_tick_fires(self) -> None:
        calls = []

        async def tick() -> None:
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("quote blew up")

        driver = PollDriver(tick)
        with self.assertLogs("jupiter_poller.poller", level="ERROR") as logs:
            stats = await driver.run_bounded(iterations=3, delay=0)

        self.assertEqual(len(calls), 3)
        self.assertEqual(stats.failed, 1)
        self.assertEqual(stats.completed, 2)
        self.assertIn("Tick 1 failed", logs.output[0])

    async def test_skip_policy_drops_overlapping_ticks(self) -> None:
        async def tick() -> None:
            await asyncio.sleep(0.05)

        stats = await PollDriver(tick, OverlapPolicy.SKIP).run_bounded(iterations=3, delay=0)

        self.assertEqual(stats.completed, 1)
        self.assertEqual(stats.skipped, 2)

    async def test_queue_policy_holds_one_tick_back(self) -> None:
        order = []

        async def tick() -> None:
            order.append("start")
            await asyncio.sleep(0.02)
            order.append("end")

        stats = await PollDriver(tick, OverlapPolicy.QUEUE).run_bounded(iterations=3, delay=0)

        self.assertEqual(stats.completed, 2)
        self.assertEqual(stats.skipped, 1)
        self.assertEqual(order, ["start", "end", "start", "end"])

    async def test_run_forever_keeps_interval_until_stopped(self) -> None:
        driver = None
        stamps = []

        async def tick() -> None:
            stamps.append(asyncio.get_running_loop().time())
            if len(stamps) == 3:
                driver.stop()

        driver = PollDriver(tick)
        stats = await asyncio.wait_for(driver.run_forever(interval=0.01), timeout=2)

        self.assertEqual(len(stamps), 3)
        self.assertEqual(stats.completed, 3)
        self.assertGreaterEqual(stamps[2] - stamps[0], 0.015)

    async def test_stop_ends_bounded_loop_early(self) -> None:
        driver = None
        calls = []

        async def tick() -> None:
            calls.append(1)
            driver.stop()

        driver = PollDriver(tick)
        stats = await driver.run_bounded(iterations=100, delay=0)

        self.assertEqual(len(calls), 1)
        self.assertEqual(stats.scheduled, 1)


if __name__ == "__main__":
    unittest.main()
