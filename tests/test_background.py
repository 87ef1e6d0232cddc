"""Spawn-and-log background work."""

import asyncio
import unittest

from core.background import BackgroundTasks


class BackgroundTasksTests(unittest.TestCase):
    def test_failures_land_in_error_channel(self):
        tasks = BackgroundTasks()

        def broken():
            raise OSError("disk full")

        async def run():
            tasks.spawn(broken, "cache write")
            tasks.spawn(lambda: None, "noop")
            await tasks.drain()

        asyncio.run(run())
        self.assertEqual(len(tasks.errors), 1)
        self.assertEqual(tasks.errors[0].description, "cache write")
        self.assertIsInstance(tasks.errors[0].error, OSError)
        self.assertEqual(tasks.completed, 1)
        self.assertEqual(tasks.pending, 0)

    def test_accepts_coroutines(self):
        tasks = BackgroundTasks()
        seen = []

        async def work():
            seen.append(True)

        async def run():
            tasks.spawn(work(), "coroutine")
            await tasks.drain()

        asyncio.run(run())
        self.assertEqual(seen, [True])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
