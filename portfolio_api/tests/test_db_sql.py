import unittest

from portfolio_api.db import SqlDbClient


class SqlDbClientTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL client logic.
    """

    def setUp(self):
        self.db = SqlDbClient("sqlite+pysqlite:///:memory:")

    def test_create_and_get_submission(self):
        created = self.db.create_submission(
            "Ada", "ada@example.com", "Hello", "Nice portfolio"
        )
        self.assertTrue(created.id)
        self.assertGreater(created.submission_timestamp, 0)

        fetched = self.db.get_submission(created.id)
        self.assertIsNotNone(fetched)
        self.assertEqual(fetched, created)

    def test_get_unknown_submission(self):
        self.assertIsNone(self.db.get_submission("does-not-exist"))

    def test_update_keeps_timestamp(self):
        created = self.db.create_submission("Ada", "ada@example.com", "Hi", "Msg")
        updated = self.db.update_submission(
            created.id, {"subject": "New subject", "submission_timestamp": 1}
        )
        self.assertEqual(updated.subject, "New subject")
        self.assertEqual(updated.submission_timestamp, created.submission_timestamp)
        self.assertIsNone(self.db.update_submission("missing", {"name": "x"}))

    def test_delete_submission(self):
        created = self.db.create_submission("Ada", "ada@example.com", "Hi", "Msg")
        self.assertTrue(self.db.delete_submission(created.id))
        self.assertFalse(self.db.delete_submission(created.id))
        self.assertEqual(self.db.list_submissions(), [])

    def test_insert_if_absent_only_inserts_once(self):
        fields = {"executed": True, "timestamp": 100, "instance": "instance-a"}
        self.assertTrue(self.db.insert_seed_status_if_absent("lock", fields))
        self.assertFalse(
            self.db.insert_seed_status_if_absent(
                "lock", {"executed": True, "timestamp": 200, "instance": "instance-b"}
            )
        )
        status = self.db.get_seed_status("lock")
        self.assertEqual(status.instance, "instance-a")
        self.assertEqual(status.timestamp, 100)
        self.assertIsNone(status.completed)

    def test_transaction_rolls_back_on_error(self):
        records = [
            {
                "name": "Ada",
                "email": "ada@example.com",
                "subject": "Hi",
                "message": "Msg",
                "submission_timestamp": 10,
            }
        ]
        with self.assertRaises(RuntimeError):
            with self.db.transaction() as session:
                self.db.insert_submissions(records, session=session)
                raise RuntimeError("abort")
        self.assertEqual(self.db.list_submissions(), [])

        with self.db.transaction() as session:
            self.db.insert_submissions(records, session=session)
        self.assertEqual(len(self.db.list_submissions()), 1)

    def test_update_seed_status_partial_fields(self):
        self.db.insert_seed_status_if_absent(
            "lock", {"executed": True, "timestamp": 100, "instance": "instance-a"}
        )
        self.db.update_seed_status(
            "lock", {"failed": True, "failed_timestamp": 150, "error": "boom"}
        )
        status = self.db.get_seed_status("lock")
        self.assertTrue(status.failed)
        self.assertEqual(status.as_dict()["failedTimestamp"], 150)
        self.assertNotIn("completed", status.as_dict())


if __name__ == "__main__":
    unittest.main()
