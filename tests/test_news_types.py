import unittest
from datetime import datetime, timezone

from cryptowire.contracts.payloads import validate_chat_request, validate_feed_item
from cryptowire.ingestion.news_types import ArticleExtraction, HeadlineRecord, NewsRow, parse_timestamp


FEED_ITEM = {
    "title": "A",
    "url": "u1",
    "published_at": "2024-01-01T00:00:00Z",
    "source": {"title": "S1", "domain": "s1.com", "region": "en"},
    "kind": "news",
}


class TestParseTimestamp(unittest.TestCase):
    def test_zulu_suffix_is_utc(self):
        self.assertEqual(parse_timestamp("2024-01-01T00:00:00Z"), datetime(2024, 1, 1, tzinfo=timezone.utc))

    def test_offset_is_normalized_to_utc(self):
        dt = parse_timestamp("2024-01-01T02:00:00+02:00")
        self.assertEqual(dt, datetime(2024, 1, 1, tzinfo=timezone.utc))
        self.assertEqual(dt.utcoffset().total_seconds(), 0)

    def test_garbage_is_none(self):
        self.assertIsNone(parse_timestamp("yesterday"))
        self.assertIsNone(parse_timestamp(""))


class TestHeadlineRecord(unittest.TestCase):
    def test_from_feed(self):
        h = HeadlineRecord.from_feed(FEED_ITEM)
        self.assertEqual(h.title, "A")
        self.assertEqual(h.url, "u1")
        self.assertEqual(h.source.title, "S1")
        self.assertEqual(h.source.domain, "s1.com")
        self.assertEqual(h.published_at.year, 2024)

    def test_missing_source_is_rejected(self):
        item = dict(FEED_ITEM)
        del item["source"]
        self.assertTrue(validate_feed_item(item))
        with self.assertRaises(ValueError):
            HeadlineRecord.from_feed(item)

    def test_bad_timestamp_is_rejected(self):
        item = dict(FEED_ITEM, published_at="not a date")
        with self.assertRaises(ValueError):
            HeadlineRecord.from_feed(item)

    def test_blank_title_or_url_is_rejected(self):
        with self.assertRaises(ValueError):
            HeadlineRecord.from_feed(dict(FEED_ITEM, url="   "))
        with self.assertRaises(ValueError):
            HeadlineRecord.from_feed(dict(FEED_ITEM, title="\t"))


class TestArticleExtraction(unittest.TestCase):
    def test_blank_values_are_absent(self):
        ex = ArticleExtraction.from_dom({"content": "   ", "sourceLink": None})
        self.assertIsNone(ex.content)
        self.assertIsNone(ex.source_link)

    def test_non_mapping_result(self):
        self.assertEqual(ArticleExtraction.from_dom(None), ArticleExtraction())


class TestNewsRow(unittest.TestCase):
    def test_from_headline_and_to_dict(self):
        h = HeadlineRecord.from_feed(FEED_ITEM)
        row = NewsRow.from_headline(h, ArticleExtraction(content="body text", source_link="https://s1.com/a"))
        d = row.to_dict()
        self.assertEqual(d["cryptopanic_url"], "u1")
        self.assertEqual(d["content"], "body text")
        self.assertEqual(d["source_link"], "https://s1.com/a")
        self.assertEqual(d["source_title"], "S1")
        self.assertEqual(d["published_at"], "2024-01-01T00:00:00+00:00")
        self.assertIsNone(d["id"])


class TestChatContract(unittest.TestCase):
    def test_rejects_unknown_role(self):
        errors = validate_chat_request({"messages": [{"role": "robot", "content": "hi"}]})
        self.assertTrue(errors)

    def test_accepts_transcript_with_context(self):
        payload = {
            "messages": [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}],
            "context": "article",
        }
        self.assertEqual(validate_chat_request(payload), [])


if __name__ == "__main__":
    unittest.main()
