"""Configuration loading for the ClassStacks client."""

import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Mapping, Optional, Union
from urllib.parse import urlparse

import voluptuous as vol
from dotenv import load_dotenv

from .const import (
	CONF_BASE_URL,
	CONF_ONLINE_THRESHOLD,
	CONF_REQUEST_TIMEOUT,
	CONF_STORAGE_PATH,
	CONF_STUDENT_POLL_INTERVAL,
	CONF_TEACHER_POLL_INTERVAL,
	CONF_USER_AGENT,
	DEFAULT_ONLINE_THRESHOLD,
	DEFAULT_STUDENT_POLL_INTERVAL,
	DEFAULT_TEACHER_POLL_INTERVAL,
	DEFAULT_USER_AGENT,
	ENV_PREFIX,
)
from .exceptions import ClassStacksConfigError

_LOGGER = logging.getLogger(__name__)

DEFAULT_STORAGE_PATH = Path.home() / ".classstacks" / "storage.json"


def _http_url(value: Any) -> str:
	"""Validate an absolute http(s) URL."""
	url = vol.Coerce(str)(value).strip()
	parsed = urlparse(url)
	if parsed.scheme not in ("http", "https") or not parsed.netloc:
		raise vol.Invalid(f"expected an http(s) URL, got {value!r}")
	return url


def _seconds(value: Any) -> timedelta:
	"""Accept seconds as a number/string or an existing timedelta."""
	if isinstance(value, timedelta):
		seconds = value.total_seconds()
	else:
		seconds = vol.Coerce(float)(value)
	if seconds <= 0:
		raise vol.Invalid("interval must be positive")
	return timedelta(seconds=seconds)


CONFIG_SCHEMA = vol.Schema(
	{
		vol.Required(CONF_BASE_URL): _http_url,
		vol.Optional(CONF_USER_AGENT, default=DEFAULT_USER_AGENT): str,
		vol.Optional(CONF_STUDENT_POLL_INTERVAL, default=DEFAULT_STUDENT_POLL_INTERVAL): _seconds,
		vol.Optional(CONF_TEACHER_POLL_INTERVAL, default=DEFAULT_TEACHER_POLL_INTERVAL): _seconds,
		vol.Optional(CONF_ONLINE_THRESHOLD, default=DEFAULT_ONLINE_THRESHOLD): _seconds,
		vol.Optional(CONF_REQUEST_TIMEOUT, default=None): vol.Any(None, vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False))),
		vol.Optional(CONF_STORAGE_PATH, default=DEFAULT_STORAGE_PATH): vol.Coerce(Path),
	},
	extra=vol.REMOVE_EXTRA,
)


@dataclass
class ClassStacksConfig:
	"""Validated client settings."""
	base_url: str
	user_agent: str = DEFAULT_USER_AGENT
	student_poll_interval: timedelta = DEFAULT_STUDENT_POLL_INTERVAL
	teacher_poll_interval: timedelta = DEFAULT_TEACHER_POLL_INTERVAL
	online_threshold: timedelta = DEFAULT_ONLINE_THRESHOLD
	request_timeout: Optional[float] = None
	storage_path: Path = field(default_factory=lambda: DEFAULT_STORAGE_PATH)

	@classmethod
	def from_dict(cls, data: Mapping[str, Any]) -> "ClassStacksConfig":
		"""Validate a mapping and build a config from it."""
		try:
			validated = CONFIG_SCHEMA(dict(data))
		except vol.Invalid as err:
			raise ClassStacksConfigError(f"Invalid configuration: {err}") from err
		return cls(**validated)


def load_config(env_file: Optional[Union[str, Path]] = None) -> ClassStacksConfig:
	"""Build a config from ``CLASSSTACKS_*`` environment variables.

	Args:
		env_file: Optional path to a .env file. Variables already present in
			the environment take precedence over the file.

	Returns:
		Validated ClassStacksConfig
	"""
	if env_file is not None:
		load_dotenv(env_file)
	else:
		load_dotenv()

	data = {}
	for key in CONFIG_SCHEMA.schema:
		name = str(key)
		value = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
		if value not in (None, ""):
			data[name] = value

	if CONF_BASE_URL not in data:
		raise ClassStacksConfigError(f"{ENV_PREFIX}{CONF_BASE_URL.upper()} is not set")

	config = ClassStacksConfig.from_dict(data)
	_LOGGER.debug(f"Loaded configuration for {config.base_url}")
	return config
