"""Tests for loading site configs from JSON."""

import json
import os
import tempfile
import unittest

from event_scraper.config import load_site_configs

SITE = {
    "UrlToVisit": "https://bar.example.com/events/koncert",
    "EventType": "concert",
    "AnchestorSelector": "div.events-elem",
    "TitleSelector": "a.title",
}


class TestLoadSiteConfigs(unittest.TestCase):
    """Verify parsing and validation of site config files."""

    def setUp(self):
        """Create a scratch directory for config files."""
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)

    def _write(self, content: str) -> str:
        path = os.path.join(self._tmp.name, "sites.json")
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        return path

    def test_loads_array(self):
        """A JSON array of site objects is loaded in order."""
        second = dict(SITE, EventType="theatre")
        configs = load_site_configs(self._write(json.dumps([SITE, second])))
        self.assertEqual([c.event_type for c in configs], ["concert", "theatre"])
        self.assertEqual(configs[0].ancestor_selector, "div.events-elem")

    def test_loads_sites_object(self):
        """An object with a sites array is accepted too."""
        configs = load_site_configs(self._write(json.dumps({"sites": [SITE]})))
        self.assertEqual(len(configs), 1)

    def test_invalid_json_raises(self):
        """Syntax errors are reported as ValueError."""
        with self.assertRaises(ValueError):
            load_site_configs(self._write("[{"))

    def test_empty_list_raises(self):
        """A file without configs is rejected."""
        with self.assertRaises(ValueError):
            load_site_configs(self._write("[]"))

    def test_non_object_entry_raises(self):
        """Every entry must be a JSON object."""
        with self.assertRaises(ValueError) as ctx:
            load_site_configs(self._write(json.dumps([SITE, "oops"])))
        self.assertIn("#1", str(ctx.exception))

    def test_missing_required_field_raises(self):
        """An entry without UrlToVisit is rejected with its position."""
        broken = {k: v for k, v in SITE.items() if k != "UrlToVisit"}
        with self.assertRaises(ValueError) as ctx:
            load_site_configs(self._write(json.dumps([broken])))
        self.assertIn("url_to_visit", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
