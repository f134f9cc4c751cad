import asyncio
import hashlib
import unittest

from src.timetable.stats import DetachedTasks, InMemoryUsageRecorder, hash_identifier


class TestHashIdentifier(unittest.TestCase):
    def test_sha256_hex(self) -> None:
        self.assertEqual(hash_identifier("ABC123"), hashlib.sha256(b"ABC123").hexdigest())

    def test_differs_from_raw(self) -> None:
        self.assertNotEqual(hash_identifier("ABC123"), "ABC123")


class TestInMemoryUsageRecorder(unittest.TestCase):
    def test_counts_requests_and_unique_users(self) -> None:
        recorder = InMemoryUsageRecorder()
        recorder.bump("a")
        recorder.bump("a")
        recorder.bump("b")

        stats = recorder.snapshot()
        self.assertEqual(stats.total_requests, 3)
        self.assertEqual(stats.unique_users, 2)
        self.assertIsNotNone(stats.last_updated_at)
        self.assertEqual(recorder.visit_count("a"), 2)

    def test_empty(self) -> None:
        stats = InMemoryUsageRecorder().snapshot()
        self.assertEqual((stats.total_requests, stats.unique_users), (0, 0))
        self.assertIsNone(stats.last_updated_at)


class TestDetachedTasks(unittest.IsolatedAsyncioTestCase):
    async def test_failures_are_contained(self) -> None:
        tasks = DetachedTasks()
        done = []

        async def ok() -> None:
            await asyncio.sleep(0)
            done.append("ok")

        async def boom() -> None:
            raise RuntimeError("db down")

        tasks.spawn(ok(), name="ok")
        tasks.spawn(boom(), name="boom")
        self.assertEqual(tasks.pending, 2)

        await tasks.drain()

        self.assertEqual(done, ["ok"])
        self.assertEqual(tasks.pending, 0)


if __name__ == "__main__":
    unittest.main()
