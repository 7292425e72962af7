from __future__ import annotations

import json
import logging
from typing import List

from .models import SiteScrapeConfig

logger = logging.getLogger(__name__)


def load_site_configs(path: str) -> List[SiteScrapeConfig]:
    """Load site scrape configs from a JSON file.

    The file holds either a JSON array of site objects or an object with a
    "sites" array. Keys may use snake_case or the legacy UrlToVisit style."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Error parsing site config file {path}: {exc}") from exc

    if isinstance(raw, dict):
        raw = raw.get("sites")
    if not isinstance(raw, list):
        raise ValueError(f"{path} must contain a JSON array of site configs")

    configs: List[SiteScrapeConfig] = []
    for position, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValueError(f"site config #{position} in {path} is not a JSON object")
        try:
            configs.append(SiteScrapeConfig.from_dict(item))
        except ValueError as exc:
            raise ValueError(f"site config #{position} in {path}: {exc}") from exc

    if not configs:
        raise ValueError(f"No site configs found in {path}")
    logger.info("Loaded %d site configs from %s", len(configs), path)
    return configs
