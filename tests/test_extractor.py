"""Tests for selector-driven event extraction."""

import unittest

from event_scraper.errors import DocumentParseError, FieldExtractionError
from event_scraper.extractor import extract_events, resolve_link
from event_scraper.models import SiteScrapeConfig

BASE_URL = "https://example.com/bar/"

PAGE = """
<html><body>
  <div class="events-elem">
    <a class="img-wrap" href="/foo"><img src="a.png"></a>
    <a class="title">
        Spring Concert
    </a>
    <div class="date"> 12 May, 19:00 </div>
    <div class="place"> Main Hall </div>
  </div>
  <div class="events-elem">
    <a class="title">Quiet Evening</a>
    <div class="date">13 May</div>
  </div>
  <div class="events-elem">
    <a class="title">Relative Link</a>
    <a class="img-wrap" href="baz?page=2#top"></a>
  </div>
  <aside><a class="title">Not an event</a></aside>
</body></html>
"""


def _config(**overrides):
    values = dict(
        url_to_visit=BASE_URL,
        event_type="concert",
        ancestor_selector="div.events-elem",
        title_selector="a.title",
        date_selector="div.date",
        location_selector="div.place",
        link_selector="a.img-wrap",
    )
    values.update(overrides)
    return SiteScrapeConfig(**values)


class TestExtractEvents(unittest.TestCase):
    """Verify field extraction from ancestor elements."""

    def test_extracts_one_record_per_ancestor_in_order(self):
        """Each matched card yields one record, in document order."""
        events = extract_events(PAGE, _config())
        self.assertEqual([e.title for e in events], ["Spring Concert", "Quiet Evening", "Relative Link"])

    def test_fields_are_trimmed(self):
        """Title, date and location are whitespace-trimmed inner text."""
        first = extract_events(PAGE, _config())[0]
        self.assertEqual(first.title, "Spring Concert")
        self.assertEqual(first.date, "12 May, 19:00")
        self.assertEqual(first.location, "Main Hall")

    def test_location_is_scoped_text_not_selector(self):
        """Location comes from the element text, never the selector string itself."""
        events = extract_events(PAGE, _config())
        self.assertNotIn("div.place", [e.location for e in events])
        self.assertEqual(events[1].location, "")

    def test_missing_fields_are_empty_strings(self):
        """A selector with no match inside the card yields an empty string."""
        third = extract_events(PAGE, _config())[2]
        self.assertEqual(third.date, "")
        self.assertEqual(third.location, "")

    def test_event_type_copied_from_config(self):
        """Every record carries the config's event type."""
        events = extract_events(PAGE, _config(event_type="Театр"))
        self.assertTrue(events)
        self.assertTrue(all(e.event_type == "Театр" for e in events))

    def test_absolute_path_href_resolves_against_host(self):
        """href="/foo" on https://example.com/bar/ becomes https://example.com/foo."""
        self.assertEqual(extract_events(PAGE, _config())[0].link, "https://example.com/foo")

    def test_missing_href_falls_back_to_page_url(self):
        """Without an href the link is exactly url_to_visit."""
        self.assertEqual(extract_events(PAGE, _config())[1].link, BASE_URL)

    def test_relative_href_keeps_query_and_fragment(self):
        """Relative references resolve onto the base path."""
        self.assertEqual(extract_events(PAGE, _config())[2].link, "https://example.com/bar/baz?page=2#top")

    def test_ancestor_href_used_when_link_selector_misses(self):
        """A card that is itself a link supplies the href."""
        html = '<ul><a class="card" href="/e/1"><b>One</b></a></ul>'
        events = extract_events(
            html, _config(ancestor_selector="a.card", title_selector="b", link_selector="span.none")
        )
        self.assertEqual(events[0].link, "https://example.com/e/1")

    def test_unparsable_href_skips_only_that_record(self):
        """A broken href drops one record and logs, the others survive."""
        html = """
        <div class="events-elem"><a class="title">Bad</a><a class="img-wrap" href="http://[broken"></a></div>
        <div class="events-elem"><a class="title">Good</a><a class="img-wrap" href="/ok"></a></div>
        """
        with self.assertLogs("event_scraper.extractor", level="WARNING") as logs:
            events = extract_events(html, _config())
        self.assertEqual([e.title for e in events], ["Good"])
        self.assertIn("Skipping element 0", logs.output[0])

    def test_no_matching_ancestors_returns_empty_list(self):
        """Zero matches is a valid, empty result."""
        self.assertEqual(extract_events(PAGE, _config(ancestor_selector="section.none")), [])

    def test_extraction_is_deterministic(self):
        """The same HTML and config always give the same ordered records."""
        self.assertEqual(extract_events(PAGE, _config()), extract_events(PAGE, _config()))

    def test_empty_document_raises_parse_error(self):
        """A payload with no elements cannot be treated as a document."""
        with self.assertRaises(DocumentParseError):
            extract_events("", _config())

    def test_non_text_payload_raises_parse_error(self):
        """Only str or bytes payloads are accepted."""
        with self.assertRaises(DocumentParseError):
            extract_events(None, _config())

    def test_invalid_ancestor_selector_raises_parse_error(self):
        """A broken ancestor selector fails the whole extraction."""
        with self.assertRaises(DocumentParseError):
            extract_events(PAGE, _config(ancestor_selector="div[class"))

    def test_invalid_field_selector_skips_records(self):
        """A broken field selector is a per-record failure."""
        with self.assertLogs("event_scraper.extractor", level="WARNING"):
            events = extract_events(PAGE, _config(title_selector="a[class"))
        self.assertEqual(events, [])


class TestResolveLink(unittest.TestCase):
    """Verify URL reference resolution."""

    def test_absolute_href_is_kept(self):
        """An absolute href ignores the base."""
        self.assertEqual(resolve_link(BASE_URL, "https://other.org/x"), "https://other.org/x")

    def test_blank_href_falls_back(self):
        """Whitespace-only href is treated as missing."""
        self.assertEqual(resolve_link(BASE_URL, "  "), BASE_URL)

    def test_parent_reference(self):
        """Dot segments are resolved."""
        self.assertEqual(resolve_link(BASE_URL, "../up"), "https://example.com/up")

    def test_broken_href_raises(self):
        """An href that cannot be parsed raises FieldExtractionError."""
        with self.assertRaises(FieldExtractionError):
            resolve_link(BASE_URL, "http://[broken")


if __name__ == "__main__":
    unittest.main()
