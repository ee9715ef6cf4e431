import logging
from typing import List, Optional, Tuple
from urllib.parse import parse_qs, urlsplit

logger = logging.getLogger(__name__)


class URLParser:
    def parse_url_list(self, raw_value: str, name: str) -> List[str]:
        items = [v.strip() for v in raw_value.split(",") if v.strip()]

        valid_items = [
            v for v in items if v.startswith("http://") or v.startswith("https://")
        ]

        if items and not valid_items:
            logger.warning("No valid URLs found in %s", name)

        return valid_items

    def query_params(
        self, url: str, *names: str
    ) -> Tuple[Optional[str], ...]:
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"Not an absolute URL: {url!r}")

        query = parse_qs(parts.query)
        return tuple(query.get(name, [None])[0] for name in names)


parser = URLParser()
