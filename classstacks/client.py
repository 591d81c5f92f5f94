"""Main client for the ClassStacks spreadsheet API."""

import asyncio
import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

import aiohttp

from .config import ClassStacksConfig, load_config
from .const import (
	ACTION_ADD_STUDENT_TO_CLASS,
	ACTION_CREATE_CLASS,
	ACTION_GET_ACTIVITY,
	ACTION_GET_CLASSES,
	ACTION_GET_MESSAGES,
	ACTION_GET_STUDENTS,
	ACTION_LOCK_STUDENT,
	ACTION_LOG_ACTIVITY,
	ACTION_REGISTER_SCHOOL,
	ACTION_REGISTER_STUDENT,
	ACTION_REGISTER_TEACHER,
	ACTION_SEND_MESSAGE,
	ACTION_UNLOCK_STUDENT,
	ACTION_UPDATE_STUDENT_ACTIVITY,
	DEFAULT_ACTIVITY_LIMIT,
	EVENT_LOCKED,
	EVENT_MESSAGE,
	EVENT_UPDATE,
	POLL_KEY_TEACHER,
	ROLE_SCHOOL,
	ROLE_TEACHER,
	STORAGE_KEY_STUDENT,
	STORAGE_KEY_USER,
)
from .events import EventBus
from .exceptions import (
	ClassStacksAuthError,
	ClassStacksConnectionError,
	ClassStacksDataError,
	ClassStacksRequestError,
)
from .models import ClientCache, StudentSession, UserSession
from .scheduler import Scheduler
from .storage import SessionStorage
from . import utils

_LOGGER = logging.getLogger(__name__)

JSON_HEADERS = {
	"Accept": "application/json, text/javascript, */*; q=0.01",
}


class ClassStacksClient:
	"""Client for the ClassStacks classroom API.

	Owns its HTTP session, the response cache, the polling scheduler and the
	event bus that polling publishes to.
	"""

	def __init__(
		self,
		config: Optional[ClassStacksConfig] = None,
		session: Optional[aiohttp.ClientSession] = None,
		storage=None,
		events: Optional[EventBus] = None,
		scheduler: Optional[Scheduler] = None,
		clock: Callable[[], float] = utils.now_ms,
	):
		"""Initialise ClassStacks client.

		Args:
			config: Validated client configuration. If None, it is loaded
				from CLASSSTACKS_* environment variables.
			session: Optional aiohttp session. If None, one is created on first use.
			storage: Session descriptor storage. Defaults to a JSON file at
				``config.storage_path``.
			events: Event bus that polling publishes to.
			scheduler: Scheduler for polling jobs.
			clock: Returns the current time in epoch milliseconds.
		"""
		self.config = config if config is not None else load_config()
		self._session = session
		self._own_session = session is None
		self.storage = storage if storage is not None else SessionStorage(self.config.storage_path)
		self.events = events if events is not None else EventBus()
		self.scheduler = scheduler if scheduler is not None else Scheduler()
		self.cache = ClientCache()
		self._clock = clock
		self._closed = False

	async def __aenter__(self):
		"""Async context manager entry."""
		self._ensure_session()
		return self

	async def __aexit__(self, exc_type, exc_val, exc_tb):
		"""Async context manager exit."""
		await self.async_close()

	async def async_close(self) -> None:
		"""Stop polling and close the HTTP session if this client created it.

		Ticks already in flight are not cancelled; their later requests fail
		with ClassStacksConnectionError instead of opening a new session.
		"""
		self._closed = True
		self.stop_all_polling()
		if self._own_session and self._session and not self._session.closed:
			await self._session.close()
		if self._own_session:
			self._session = None

	def _ensure_session(self) -> aiohttp.ClientSession:
		if self._closed:
			raise ClassStacksConnectionError("Client is closed")
		if self._session is None:
			self._session = aiohttp.ClientSession()
			self._own_session = True
		return self._session

	async def async_request(self, action: str, params: Optional[Mapping[str, Any]] = None) -> Any:
		"""Send an action to the API and return the decoded JSON body.

		Args:
			action: Remote action name
			params: Query parameters; None values are omitted

		Returns:
			Decoded JSON response, unmodified

		Raises:
			ClassStacksConnectionError: Transport failure or timeout
			ClassStacksDataError: Body is not valid JSON
			ClassStacksRequestError: Non-200 status
		"""
		try:
			session = self._ensure_session()
		except ClassStacksConnectionError as err:
			_LOGGER.error(f"API request failed for {action}: {err}")
			raise

		query = utils.build_query_params(action, params)
		headers = dict(JSON_HEADERS)
		headers["User-Agent"] = self.config.user_agent

		request_kwargs: Dict[str, Any] = {"params": query, "headers": headers}
		if self.config.request_timeout:
			request_kwargs["timeout"] = aiohttp.ClientTimeout(total=self.config.request_timeout)

		_LOGGER.debug(f"Requesting action {action} with {len(query) - 1} parameter(s)")

		try:
			async with session.get(self.config.base_url, **request_kwargs) as resp:
				if resp.status != 200:
					raise ClassStacksRequestError(f"Action {action} failed: HTTP {resp.status}")

				try:
					return await resp.json()
				except aiohttp.ContentTypeError:
					# Apps Script sometimes serves JSON as text/plain or text/html
					text = await resp.text()
					try:
						return json.loads(text)
					except ValueError as e:
						raise ClassStacksDataError(
							f"Invalid JSON response for {action}: {text[:200]}"
						) from e
				except ValueError as e:
					raise ClassStacksDataError(f"Invalid JSON response for {action}: {e}") from e

		except ClassStacksRequestError as err:
			_LOGGER.error(f"API request failed: {err}")
			raise
		except (aiohttp.ClientError, asyncio.TimeoutError) as err:
			_LOGGER.error(f"API request failed for {action}: {err!r}")
			raise ClassStacksConnectionError(f"Connection error during {action}: {err!r}") from err

	async def register_school(self, name: str, email: str, password: str) -> Any:
		"""Register a school and remember it as the current user."""
		response = await self.async_request(ACTION_REGISTER_SCHOOL, {
			"name": name,
			"email": email,
			"password": password,
		})

		if _succeeded(response):
			user = UserSession(
				id=response.get("id"),
				name=name,
				email=email,
				role=ROLE_SCHOOL,
				school_code=response.get("schoolCode"),
			)
			await self.storage.async_set(STORAGE_KEY_USER, user.to_dict())
			_LOGGER.info(f"Registered school {name} with code {user.school_code}")

		return response

	async def login_school(self, email: str, password: str) -> UserSession:
		"""Sign a school in against the locally stored session.

		The password is not checked and the server is not contacted; only the
		email and role of the stored session are compared.
		"""
		return await self._login_stored_user(email, ROLE_SCHOOL)

	async def register_teacher(self, name: str, email: str, password: str, school: str) -> Any:
		"""Register a teacher and remember them as the current user."""
		response = await self.async_request(ACTION_REGISTER_TEACHER, {
			"name": name,
			"email": email,
			"password": password,
			"school": school,
		})

		if _succeeded(response):
			user = UserSession(
				id=response.get("id"),
				name=name,
				email=email,
				role=ROLE_TEACHER,
				school=school,
			)
			await self.storage.async_set(STORAGE_KEY_USER, user.to_dict())
			_LOGGER.info(f"Registered teacher {name}")

		return response

	async def login_teacher(self, email: str, password: str) -> UserSession:
		"""Sign a teacher in against the locally stored session (no server check)."""
		return await self._login_stored_user(email, ROLE_TEACHER)

	async def _login_stored_user(self, email: str, role: str) -> UserSession:
		_LOGGER.warning(f"{role} login is checked against local storage only")
		data = await self.storage.async_get(STORAGE_KEY_USER) or {}

		if data.get("email") == email and data.get("role") == role:
			return UserSession.from_dict(data)

		raise ClassStacksAuthError("Invalid credentials")

	async def register_student(self, first_name: str, last_name: str, school_code: str) -> Any:
		"""Register this device as a student and start polling for it.

		Args:
			first_name: Student first name
			last_name: Student last name
			school_code: Join code issued to the school

		Returns:
			Decoded registration response
		"""
		device = self.get_device_info()
		response = await self.async_request(ACTION_REGISTER_STUDENT, {
			"firstName": first_name,
			"lastName": last_name,
			"schoolCode": school_code,
			"device": device,
		})

		if _succeeded(response):
			student = StudentSession(
				id=response.get("studentId"),
				first_name=first_name,
				last_name=last_name,
				school_code=school_code,
				last_active=int(self._clock()),
				device=device,
			)
			await self.storage.async_set(STORAGE_KEY_STUDENT, student.to_dict())
			_LOGGER.info(f"Registered student {student.name} as {student.id}")
			self.start_student_polling(student.id)

		return response

	async def login_student(self, first_name: str, last_name: str, school_code: str) -> StudentSession:
		"""Resume the stored student session on this device and start polling."""
		_LOGGER.warning("student login is checked against local storage only")
		data = await self.storage.async_get(STORAGE_KEY_STUDENT) or {}

		if (
			data.get("id")
			and data.get("firstName") == first_name
			and data.get("lastName") == last_name
			and data.get("schoolCode") == school_code
		):
			student = StudentSession.from_dict(data)
			self.start_student_polling(student.id)
			return student

		raise ClassStacksAuthError("Invalid credentials")

	async def get_current_user(self) -> Optional[UserSession]:
		data = await self.storage.async_get(STORAGE_KEY_USER)
		return UserSession.from_dict(data) if data else None

	async def get_current_student(self) -> Optional[StudentSession]:
		data = await self.storage.async_get(STORAGE_KEY_STUDENT)
		return StudentSession.from_dict(data) if data else None

	async def logout(self) -> None:
		"""Stop polling, drop cached records and forget both stored sessions."""
		self.stop_all_polling()
		self.cache.clear()
		await self.storage.async_remove(STORAGE_KEY_USER)
		await self.storage.async_remove(STORAGE_KEY_STUDENT)

	async def get_students(self, school_code: Optional[str] = None) -> List[Dict[str, Any]]:
		"""Fetch the roster and replace the cached students with it.

		Args:
			school_code: Optional school filter

		Returns:
			List of student records as returned by the API
		"""
		params = {}
		if school_code:
			params["schoolCode"] = school_code

		response = await self.async_request(ACTION_GET_STUDENTS, params)
		students = _records(response, "students", ACTION_GET_STUDENTS)
		self.cache.students = utils.index_by_id(students)
		_LOGGER.debug(f"Cached {len(self.cache.students)} students")
		return students

	async def update_student_activity(self, student_id: str) -> Any:
		return await self.async_request(ACTION_UPDATE_STUDENT_ACTIVITY, {
			"studentId": student_id,
		})

	async def add_student_to_class(self, student_id: str, class_code: str) -> Any:
		return await self.async_request(ACTION_ADD_STUDENT_TO_CLASS, {
			"studentId": student_id,
			"classCode": class_code,
		})

	async def create_class(
		self,
		name: str,
		teacher_id: str,
		subject: str,
		grade: str,
		blocked_sites: Iterable[str] = (),
	) -> Any:
		"""Create a class; blocked sites are sent as one comma-separated value."""
		return await self.async_request(ACTION_CREATE_CLASS, {
			"name": name,
			"teacherId": teacher_id,
			"subject": subject,
			"grade": grade,
			"blockedSites": ",".join(blocked_sites),
		})

	async def get_classes(self, teacher_id: Optional[str] = None) -> List[Dict[str, Any]]:
		"""Fetch classes and replace the cached classes with them."""
		params = {}
		if teacher_id:
			params["teacherId"] = teacher_id

		response = await self.async_request(ACTION_GET_CLASSES, params)
		classes = _records(response, "classes", ACTION_GET_CLASSES)
		self.cache.classes = utils.index_by_id(classes)
		_LOGGER.debug(f"Cached {len(self.cache.classes)} classes")
		return classes

	async def send_message_to_student(self, student_id: str, message: str, sender: str) -> Any:
		return await self.async_request(ACTION_SEND_MESSAGE, {
			"studentId": student_id,
			"message": message,
			"from": sender,
		})

	async def get_messages(self, student_id: str) -> List[Dict[str, Any]]:
		"""Fetch a student's messages, newest first, and cache them."""
		response = await self.async_request(ACTION_GET_MESSAGES, {
			"studentId": student_id,
		})

		messages = _records(response, "messages", ACTION_GET_MESSAGES)
		self.cache.messages[str(student_id)] = messages
		return messages

	async def lock_student(self, student_id: str) -> Any:
		return await self.async_request(ACTION_LOCK_STUDENT, {
			"studentId": student_id,
		})

	async def unlock_student(self, student_id: str) -> Any:
		return await self.async_request(ACTION_UNLOCK_STUDENT, {
			"studentId": student_id,
		})

	async def log_activity(self, student_id: str, action: str, class_code: str = "") -> Any:
		return await self.async_request(ACTION_LOG_ACTIVITY, {
			"studentId": student_id,
			"action": action,
			"classCode": class_code,
		})

	async def get_activity(
		self,
		student_id: Optional[str] = None,
		limit: int = DEFAULT_ACTIVITY_LIMIT,
	) -> List[Dict[str, Any]]:
		"""Fetch activity records. Not cached."""
		params: Dict[str, Any] = {"limit": limit}
		if student_id:
			params["studentId"] = student_id

		response = await self.async_request(ACTION_GET_ACTIVITY, params)
		return _records(response, "activities", ACTION_GET_ACTIVITY)

	def start_student_polling(self, student_id: str) -> None:
		"""Poll activity, messages and lock state for a student.

		The job is keyed by the student id; starting it again is a no-op.
		"""
		if self.scheduler.is_running(student_id):
			return

		async def _tick() -> None:
			await self.async_student_tick(student_id)

		self.scheduler.start(student_id, self.config.student_poll_interval, _tick)
		_LOGGER.info(f"Started student polling for {student_id}")

	def start_teacher_polling(self, school_code: Optional[str] = None) -> None:
		"""Poll the roster and class list for a teacher dashboard."""
		if self.scheduler.is_running(POLL_KEY_TEACHER):
			return

		async def _tick() -> None:
			await self.async_teacher_tick(school_code)

		self.scheduler.start(POLL_KEY_TEACHER, self.config.teacher_poll_interval, _tick)
		_LOGGER.info(f"Started teacher polling for school {school_code}")

	def stop_polling(self, key: str) -> None:
		if self.scheduler.is_running(key):
			self.scheduler.stop(key)
			_LOGGER.info(f"Stopped polling {key}")

	def stop_all_polling(self) -> None:
		self.scheduler.stop_all()

	def is_polling(self, key: str) -> bool:
		return self.scheduler.is_running(key)

	@property
	def polling_keys(self) -> List[str]:
		return self.scheduler.names

	async def async_student_tick(self, student_id: str) -> None:
		"""Run one student polling cycle; failures are logged, not raised."""
		try:
			await self.update_student_activity(student_id)

			messages = await self.get_messages(student_id)
			last_message = messages[0] if messages else None
			if last_message and not last_message.get("read"):
				self.events.fire(EVENT_MESSAGE, last_message)

			# Lock state only arrives with the full roster
			students = await self.get_students()
			student = next(
				(s for s in students if str(s.get("id")) == str(student_id)),
				None,
			)
			if student and student.get("locked"):
				self.events.fire(EVENT_LOCKED, {"locked": True})

		except Exception as err:  # pylint: disable=broad-except
			_LOGGER.error(f"Polling error: {err}")

	async def async_teacher_tick(self, school_code: Optional[str] = None) -> None:
		"""Run one teacher polling cycle; failures are logged, not raised."""
		try:
			students = await self.get_students(school_code)
			classes = await self.get_classes()

			self.events.fire(EVENT_UPDATE, {
				"students": students,
				"classes": classes,
				"timestamp": int(self._clock()),
			})

		except Exception as err:  # pylint: disable=broad-except
			_LOGGER.error(f"Teacher polling error: {err}")

	def get_device_info(self) -> str:
		return utils.get_device_info(self.config.user_agent)

	@staticmethod
	def extract_domain(url: str) -> str:
		return utils.extract_domain(url)

	@staticmethod
	def get_website_name(domain: str) -> str:
		return utils.get_website_name(domain)

	@staticmethod
	def get_website_icon(domain: str) -> str:
		return utils.get_website_icon(domain)

	def is_student_online(self, student: Optional[Dict[str, Any]]) -> bool:
		"""Whether the student was active within the online threshold."""
		return utils.is_student_online(
			student,
			now=self._clock(),
			threshold_ms=self.config.online_threshold.total_seconds() * 1000,
		)

	# Cached data

	def get_cached_students(self) -> List[Dict[str, Any]]:
		return list(self.cache.students.values())

	def get_cached_classes(self) -> List[Dict[str, Any]]:
		return list(self.cache.classes.values())

	def get_cached_student(self, student_id: str) -> Optional[Dict[str, Any]]:
		return self.cache.students.get(str(student_id))

	def get_cached_class(self, class_id: str) -> Optional[Dict[str, Any]]:
		return self.cache.classes.get(str(class_id))

	def get_cached_messages(self, student_id: str) -> List[Dict[str, Any]]:
		return list(self.cache.messages.get(str(student_id), []))


def _succeeded(response: Any) -> bool:
	return isinstance(response, dict) and bool(response.get("success"))


def _records(response: Any, key: str, action: str) -> List[Dict[str, Any]]:
	"""Pull the record list out of a read response."""
	if not isinstance(response, dict) or not isinstance(response.get(key), list):
		_LOGGER.error(f"API request failed: response for {action} has no '{key}' list")
		raise ClassStacksDataError(f"Response for {action} has no '{key}' list")
	return response[key]
