"""Tests for periodic tasks and cancellation."""

import asyncio

from copybot.scheduler import CancellationToken, PeriodicTask


class TestPeriodicTask:
    def test_runs_max_iterations(self):
        calls = []

        async def work():
            calls.append(1)

        async def main():
            task = PeriodicTask("test", work, 0.001, CancellationToken(), max_iterations=3)
            await task.run()
            return task

        task = asyncio.run(main())
        assert len(calls) == 3
        assert task.iterations == 3

    def test_errors_are_logged_and_loop_continues(self):
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")

        async def main():
            task = PeriodicTask("flaky", flaky, 0.001, CancellationToken(), max_iterations=2)
            await task.run()
            return task

        task = asyncio.run(main())
        assert len(calls) == 2
        assert task.errors == 1

    def test_cancel_stops_sleeping_task(self):
        async def work():
            pass

        async def main():
            token = CancellationToken()
            task = PeriodicTask("sleepy", work, 3600, token)
            runner = asyncio.create_task(task.run())
            await asyncio.sleep(0.01)
            token.cancel()
            await asyncio.wait_for(runner, timeout=1)
            return task

        task = asyncio.run(main())
        assert task.iterations == 1

    def test_callable_interval(self):
        delays = []

        def next_delay():
            delays.append(1)
            return 0.001

        async def work():
            pass

        async def main():
            task = PeriodicTask("computed", work, next_delay, CancellationToken(), max_iterations=3)
            await task.run()

        asyncio.run(main())
        assert len(delays) == 2

    def test_delayed_start_cancelled_before_first_run(self):
        calls = []

        async def work():
            calls.append(1)

        async def main():
            token = CancellationToken()
            task = PeriodicTask("daily", work, 3600, token, run_immediately=False)
            runner = asyncio.create_task(task.run())
            await asyncio.sleep(0.01)
            token.cancel()
            await asyncio.wait_for(runner, timeout=1)

        asyncio.run(main())
        assert calls == []


class TestCancellationToken:
    def test_sleep_returns_false_on_timeout(self):
        async def main():
            return await CancellationToken().sleep(0.001)

        assert asyncio.run(main()) is False

    def test_sleep_returns_true_when_cancelled(self):
        async def main():
            token = CancellationToken()
            token.cancel()
            return await token.sleep(10)

        assert asyncio.run(main()) is True
