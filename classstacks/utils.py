"""Helper functions for building requests and presenting ClassStacks data."""

import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import urlparse

from .const import (
	DEFAULT_ONLINE_THRESHOLD,
	DEFAULT_WEBSITE_ICON,
	DEVICE_DESKTOP,
	DEVICE_MOBILE,
	DEVICE_TABLET,
	WEBSITE_ICONS,
	WEBSITE_NAMES,
)

_LOGGER = logging.getLogger(__name__)

_MOBILE_RE = re.compile(r"Mobile|Android|iPhone|iPad|iPod")
_TABLET_RE = re.compile(r"Tablet|iPad")
_HOST_RE = re.compile(r"(?:https?://)?(?:www\.)?([^/]+)", re.IGNORECASE)


def now_ms() -> int:
	"""Current wall-clock time in epoch milliseconds."""
	return int(time.time() * 1000)


def format_param(value: Any) -> str:
	"""Flatten a parameter value into its query-string form."""
	if isinstance(value, bool):
		return "true" if value else "false"
	if isinstance(value, (list, tuple)):
		return ",".join(format_param(item) for item in value)
	return str(value)


def build_query_params(action: str, params: Optional[Mapping[str, Any]] = None) -> List[Tuple[str, str]]:
	"""Build the ordered query pairs for an action.

	The action always comes first. Parameters whose value is None are left
	out entirely; everything else is passed through as a string.
	"""
	query = [("action", action)]
	for key, value in (params or {}).items():
		if value is None:
			continue
		query.append((key, format_param(value)))
	return query


def index_by_id(records: Optional[Iterable[Dict[str, Any]]]) -> Dict[str, Dict[str, Any]]:
	"""Map records by their ``id`` field as a string; later duplicates win.

	The sheet returns numeric ids for some rows, so 5 and "5" share a key.
	"""
	indexed: Dict[str, Dict[str, Any]] = {}
	for record in records or []:
		indexed[str(record.get("id"))] = record
	return indexed


def get_device_info(user_agent: Optional[str]) -> str:
	"""Classify a user agent string as Mobile, Tablet or Desktop."""
	ua = user_agent or ""
	if _MOBILE_RE.search(ua):
		return DEVICE_MOBILE
	if _TABLET_RE.search(ua):
		return DEVICE_TABLET
	return DEVICE_DESKTOP


def extract_domain(url: str) -> str:
	"""Return the hostname of ``url`` without a leading ``www.``.

	Inputs that do not parse as an absolute URL fall back to a regex that
	grabs whatever precedes the first slash.
	"""
	try:
		hostname = urlparse(url).hostname
	except ValueError:
		hostname = None

	if hostname:
		return hostname[4:] if hostname.startswith("www.") else hostname

	match = _HOST_RE.match(url or "")
	if match:
		return match.group(1)
	return url


def get_website_name(domain: str) -> str:
	return WEBSITE_NAMES.get(domain, domain)


def get_website_icon(domain: str) -> str:
	return WEBSITE_ICONS.get(domain, DEFAULT_WEBSITE_ICON)


def parse_timestamp_ms(value: Union[int, float, str, None]) -> Optional[float]:
	"""Convert an epoch-millisecond number or ISO-8601 string to epoch ms."""
	if value is None or isinstance(value, bool):
		return None
	if isinstance(value, (int, float)):
		return float(value)
	if isinstance(value, str):
		text = value.strip()
		if not text:
			return None
		if text.endswith("Z"):
			text = text[:-1] + "+00:00"
		try:
			parsed = datetime.fromisoformat(text)
		except ValueError:
			_LOGGER.debug(f"Unparseable lastActive timestamp: {value!r}")
			return None
		if parsed.tzinfo is None:
			parsed = parsed.replace(tzinfo=timezone.utc)
		return parsed.timestamp() * 1000
	return None


def is_student_online(
	student: Optional[Dict[str, Any]],
	now: Optional[float] = None,
	threshold_ms: float = DEFAULT_ONLINE_THRESHOLD.total_seconds() * 1000,
) -> bool:
	"""Whether the student was active within the threshold (exclusive)."""
	if not student or not student.get("lastActive"):
		return False

	last_active = parse_timestamp_ms(student.get("lastActive"))
	if last_active is None:
		return False

	current = now_ms() if now is None else now
	return (current - last_active) < threshold_ms
