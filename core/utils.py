import hashlib
import logging
import re
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(value: Any) -> str:
    """Lowercase and collapse anything non-alphanumeric into single dashes.

    "San Francisco, CA" -> "san-francisco-ca"
    """
    if value is None:
        return ""
    return _SLUG_RE.sub("-", str(value).lower()).strip("-")


def split_list(value: Any) -> List[str]:
    """Accept a comma separated string or an iterable and return clean, non-empty items."""
    if value is None:
        return []
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = value
    else:
        items = [value]
    return [str(i).strip() for i in items if str(i).strip()]


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (or pass a datetime through), always timezone-aware.

    Returns None for missing or unparsable values.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            logger.warning(f"Could not parse timestamp: {value!r}")
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class JobFingerprinter:
    """
    Pure logic for creating deterministic job identifiers.
    """

    @staticmethod
    def calculate(company: str, title: str, location_text: str) -> str:
        """
        Create a deterministic hash of the core immutable fields.
        Formula: SHA256(lowercase(Company) + lowercase(JobTitle) + lowercase(City/Location))
        """
        raw_string = f"{(company or '').lower().strip()}|{(title or '').lower().strip()}|{(location_text or '').lower().strip()}"
        return hashlib.sha256(raw_string.encode('utf-8')).hexdigest()

    @staticmethod
    def normalize_location(location: Any) -> str:
        """
        Normalize location data which can be a dict, string, or list.
        """
        location_text = "Unknown"
        if isinstance(location, dict):
            location_text = location.get('city') or location.get('country') or "Unknown"
            if isinstance(location_text, list):  # Handle ["london", "uk"]
                location_text = location_text[0]
        elif isinstance(location, (list, tuple)):
            location_text = location[0] if location else "Unknown"
        elif isinstance(location, str) and location.strip():
            location_text = location
        return str(location_text)
