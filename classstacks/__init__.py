"""ClassStacks client package.

Async client for the ClassStacks classroom API with response caching and
polling-driven update events.
"""

from .client import ClassStacksClient
from .config import ClassStacksConfig, load_config
from .events import EventBus
from .exceptions import (
	ClassStacksAuthError,
	ClassStacksConfigError,
	ClassStacksConnectionError,
	ClassStacksDataError,
	ClassStacksError,
	ClassStacksRequestError,
)
from .scheduler import RepeatingJob, Scheduler
from .storage import MemoryStorage, SessionStorage

__version__ = "1.0.0"
__all__ = [
	"ClassStacksClient",
	"ClassStacksConfig",
	"load_config",
	"EventBus",
	"RepeatingJob",
	"Scheduler",
	"MemoryStorage",
	"SessionStorage",
	"ClassStacksError",
	"ClassStacksAuthError",
	"ClassStacksConfigError",
	"ClassStacksRequestError",
	"ClassStacksConnectionError",
	"ClassStacksDataError",
]
