import threading
import unittest
from unittest.mock import patch

from portfolio_api.db import DuplicateRecordError, InMemoryDbClient, SqlDbClient
from portfolio_api.seeding import (
    MOCK_SUBMISSIONS,
    SEED_STATUS_ID,
    LockContentionFailure,
    MockDataSeeder,
    SeedError,
    TransactionFailure,
)

NOW = 1_700_000_000


def fixed_clock():
    return NOW


def fail_completion_update(db):
    """Make the in-transaction status update fail while leaving other updates intact."""
    original = db.update_seed_status

    def update(status_id, fields, *, session=None):
        if session is not None:
            raise RuntimeError("status write lost")
        return original(status_id, fields, session=session)

    return patch.object(db, "update_seed_status", side_effect=update)


class SeedingBehaviour:
    """Shared cases, run against each DbClient implementation."""

    def make_db(self):
        raise NotImplementedError

    def setUp(self):
        self.db = self.make_db()

    def seeder(self):
        return MockDataSeeder(self.db, clock=fixed_clock)

    def test_fresh_store_gets_full_batch(self):
        self.assertTrue(self.seeder().run())

        submissions = self.db.list_submissions()
        self.assertEqual(len(submissions), len(MOCK_SUBMISSIONS))
        by_name = {s.name: s for s in submissions}
        self.assertEqual(len(by_name), len(MOCK_SUBMISSIONS))

        previous = None
        for item in MOCK_SUBMISSIONS:
            saved = by_name[item.name]
            self.assertTrue(saved.id)
            self.assertEqual(saved.email, item.email)
            self.assertEqual(saved.subject, item.subject)
            self.assertEqual(saved.message, item.message)
            self.assertEqual(saved.submission_timestamp, NOW - item.age_seconds)
            if previous is not None:
                self.assertGreater(saved.submission_timestamp, previous)
            previous = saved.submission_timestamp

        status = self.db.get_seed_status(SEED_STATUS_ID)
        self.assertTrue(status.executed)
        self.assertTrue(status.completed)
        self.assertEqual(status.completed_timestamp, NOW)
        self.assertTrue(status.instance.startswith("instance-"))
        self.assertNotIn("failed", status.as_dict())

    def test_second_run_in_same_process_is_noop(self):
        seeder = self.seeder()
        self.assertTrue(seeder.run())
        self.assertFalse(seeder.run())
        self.assertEqual(len(self.db.list_submissions()), len(MOCK_SUBMISSIONS))

    def test_second_run_after_failure_is_noop(self):
        seeder = self.seeder()
        with fail_completion_update(self.db):
            with self.assertRaises(TransactionFailure):
                seeder.run()
        self.assertFalse(seeder.run())
        self.assertEqual(self.db.list_submissions(), [])

    def test_existing_status_skips_seeding(self):
        self.db.insert_seed_status_if_absent(
            SEED_STATUS_ID,
            {"executed": True, "timestamp": NOW - 60, "instance": "instance-other"},
        )
        self.assertFalse(self.seeder().run())
        self.assertEqual(self.db.list_submissions(), [])
        self.assertEqual(
            self.db.get_seed_status(SEED_STATUS_ID).instance, "instance-other"
        )

    def test_later_processes_skip(self):
        self.assertTrue(self.seeder().run())
        for _ in range(3):
            self.assertFalse(self.seeder().run())
        self.assertEqual(len(self.db.list_submissions()), len(MOCK_SUBMISSIONS))

    def test_failed_completion_rolls_back_batch(self):
        with fail_completion_update(self.db):
            with self.assertRaises(TransactionFailure) as ctx:
                self.seeder().run()

        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)
        self.assertEqual(self.db.list_submissions(), [])
        status = self.db.get_seed_status(SEED_STATUS_ID)
        self.assertTrue(status.executed)
        self.assertTrue(status.failed)
        self.assertEqual(status.failed_timestamp, NOW)
        self.assertIn("status write lost", status.error)
        self.assertIsNone(status.completed)

    def test_failed_seed_is_not_retried_by_later_process(self):
        with fail_completion_update(self.db):
            with self.assertRaises(TransactionFailure):
                self.seeder().run()
        self.assertFalse(self.seeder().run())
        self.assertEqual(self.db.list_submissions(), [])

    def test_failure_bookkeeping_error_does_not_mask_original(self):
        with patch.object(
            self.db, "update_seed_status", side_effect=RuntimeError("store down")
        ):
            with self.assertRaises(TransactionFailure) as ctx:
                self.seeder().run()
        self.assertIn("store down", str(ctx.exception))
        self.assertEqual(self.db.list_submissions(), [])

    def test_lock_store_error_raises_lock_contention_failure(self):
        with patch.object(
            self.db,
            "insert_seed_status_if_absent",
            side_effect=ConnectionError("unreachable"),
        ):
            with self.assertRaises(LockContentionFailure):
                self.seeder().run()
        self.assertEqual(self.db.list_submissions(), [])

    def test_duplicate_key_on_lock_is_treated_as_taken(self):
        with patch.object(
            self.db,
            "insert_seed_status_if_absent",
            side_effect=DuplicateRecordError(SEED_STATUS_ID),
        ):
            self.assertFalse(self.seeder().run())
        self.assertEqual(self.db.list_submissions(), [])

    def test_list_is_oldest_first(self):
        records = [
            {
                "name": name,
                "email": f"{name.lower()}@example.com",
                "subject": "Hi",
                "message": "Hello",
                "submission_timestamp": timestamp,
            }
            for name, timestamp in (("Late", NOW), ("Early", NOW - 60), ("Middle", NOW - 30))
        ]
        for record in records:
            self.db.insert_submissions([record])
        names = [s.name for s in self.db.list_submissions()]
        self.assertEqual(names, ["Early", "Middle", "Late"])

    def test_seed_errors_are_catchable(self):
        caught = None
        with patch.object(
            self.db, "insert_seed_status_if_absent", side_effect=OSError("io")
        ):
            try:
                self.seeder().run()
            except SeedError as exc:
                caught = exc
        self.assertIsInstance(caught, LockContentionFailure)


class InMemorySeedingTests(SeedingBehaviour, unittest.TestCase):
    def make_db(self):
        return InMemoryDbClient()

    def test_concurrent_seeders_write_one_batch(self):
        workers = 8
        barrier = threading.Barrier(workers)
        results = []

        def boot():
            seeder = MockDataSeeder(self.db)
            barrier.wait()
            results.append(seeder.run())

        threads = [threading.Thread(target=boot) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(results.count(True), 1)
        self.assertEqual(results.count(False), workers - 1)
        names = [s.name for s in self.db.list_submissions()]
        self.assertEqual(sorted(names), sorted(item.name for item in MOCK_SUBMISSIONS))


class SqlSeedingTests(SeedingBehaviour, unittest.TestCase):
    def make_db(self):
        return SqlDbClient("sqlite+pysqlite:///:memory:")


if __name__ == "__main__":
    unittest.main()
