import dataclasses
import math
import os
import shutil
import tempfile
import unittest
from datetime import datetime, timedelta, timezone

from cryptowire.ingestion.news_types import NewsRow
from cryptowire.storage.sqlite_store import SQLiteNewsStore


BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_row(url, content="body", hours=0, title=None):
    return NewsRow(
        title=title or f"title {url}",
        content=content,
        published_at=BASE + timedelta(hours=hours),
        cryptopanic_url=url,
        source_link=f"https://publisher.example/{url}",
        source_title="S1",
        source_domain="s1.com",
    )


class TestSQLiteNewsStore(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.store = SQLiteNewsStore(os.path.join(self.tmpdir, "nested", "news.db"))
        self.store.ensure_schema()

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_empty_store_first_page_is_empty(self):
        self.assertEqual(self.store.list_page(1, 5), [])

    def test_ensure_schema_is_idempotent(self):
        self.store.insert_if_absent(make_row("u1"))
        self.store.ensure_schema()
        self.assertEqual(self.store.count(), 1)

    def test_insert_assigns_id_and_created_at(self):
        self.assertTrue(self.store.insert_if_absent(make_row("u1", content="body text")))
        row = self.store.get_by_url("u1")
        self.assertIsNotNone(row.id)
        self.assertIsNotNone(row.created_at)
        self.assertEqual(row.content, "body text")
        self.assertEqual(row.published_at, BASE)

    def test_duplicate_url_keeps_first_insert(self):
        self.assertTrue(self.store.insert_if_absent(make_row("u1", content="first")))
        self.assertFalse(self.store.insert_if_absent(make_row("u1", content="second")))
        self.assertEqual(self.store.count(), 1)
        self.assertEqual(self.store.get_by_url("u1").content, "first")

    def test_ids_increase(self):
        self.store.insert_if_absent(make_row("u1"))
        self.store.insert_if_absent(make_row("u2"))
        self.assertLess(self.store.get_by_url("u1").id, self.store.get_by_url("u2").id)

    def test_null_content_is_stored(self):
        self.assertTrue(self.store.insert_if_absent(make_row("u1", content=None)))
        self.assertIsNone(self.store.get_by_url("u1").content)

    def test_pages_concatenate_to_full_descending_order(self):
        # Inserted out of order, with two rows sharing a timestamp
        hours = [3, 0, 7, 5, 5, 1, 9]
        for i, h in enumerate(hours):
            self.store.insert_if_absent(make_row(f"u{i}", hours=h))
        n, limit = len(hours), 3

        collected = []
        for p in range(1, math.ceil(n / limit) + 1):
            collected.extend(self.store.list_page(p, limit))
        self.assertEqual(self.store.list_page(math.ceil(n / limit) + 1, limit), [])

        urls = [r.cryptopanic_url for r in collected]
        self.assertEqual(len(urls), n)
        self.assertEqual(len(set(urls)), n)
        published = [r.published_at for r in collected]
        self.assertEqual(published, sorted(published, reverse=True))

    def test_mixed_offsets_sort_chronologically(self):
        self.store.insert_if_absent(make_row("early", hours=0))
        later = dataclasses.replace(make_row("later"), published_at=datetime(2024, 1, 1, 1, 30, tzinfo=timezone(timedelta(hours=1))))
        self.store.insert_if_absent(later)
        self.assertEqual([r.cryptopanic_url for r in self.store.list_page(1, 10)], ["later", "early"])

    def test_invalid_page_arguments(self):
        with self.assertRaises(ValueError):
            self.store.list_page(0, 5)
        with self.assertRaises(ValueError):
            self.store.list_page(1, 0)


if __name__ == "__main__":
    unittest.main()
