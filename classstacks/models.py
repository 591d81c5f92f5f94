"""Data models for ClassStacks sessions and the client cache."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .const import ROLE_SCHOOL


@dataclass
class UserSession:
	"""Session descriptor for a signed-in school or teacher."""
	id: str
	name: str
	email: str
	role: str
	school_code: Optional[str] = None
	school: Optional[str] = None

	def to_dict(self) -> Dict[str, Any]:
		data = {
			"id": self.id,
			"name": self.name,
			"email": self.email,
			"role": self.role,
		}
		# Schools carry their join code, teachers the school they belong to
		if self.role == ROLE_SCHOOL:
			data["schoolCode"] = self.school_code
		else:
			data["school"] = self.school
		return data

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "UserSession":
		return cls(
			id=data.get("id"),
			name=data.get("name", ""),
			email=data.get("email", ""),
			role=data.get("role", ""),
			school_code=data.get("schoolCode"),
			school=data.get("school"),
		)


@dataclass
class StudentSession:
	"""Session descriptor for a registered student device."""
	id: str
	first_name: str
	last_name: str
	school_code: str
	last_active: int
	device: str
	class_code: str = ""
	connected: bool = True
	tabs: List[Dict[str, Any]] = field(default_factory=list)
	active_tab: int = 0

	@property
	def name(self) -> str:
		return f"{self.first_name} {self.last_name}"

	def to_dict(self) -> Dict[str, Any]:
		return {
			"id": self.id,
			"firstName": self.first_name,
			"lastName": self.last_name,
			"name": self.name,
			"schoolCode": self.school_code,
			"classCode": self.class_code,
			"lastActive": self.last_active,
			"device": self.device,
			"connected": self.connected,
			"tabs": list(self.tabs),
			"activeTab": self.active_tab,
		}

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "StudentSession":
		return cls(
			id=data.get("id"),
			first_name=data.get("firstName", ""),
			last_name=data.get("lastName", ""),
			school_code=data.get("schoolCode", ""),
			last_active=data.get("lastActive", 0),
			device=data.get("device", ""),
			class_code=data.get("classCode", ""),
			connected=data.get("connected", True),
			tabs=list(data.get("tabs") or []),
			active_tab=data.get("activeTab", 0),
		)


@dataclass
class ClientCache:
	"""In-memory snapshot of the last fetched records, keyed by server id.

	Records are the raw JSON objects returned by the API. Each read replaces
	its mapping wholesale; nothing is written back to the server.
	"""
	students: Dict[str, Dict[str, Any]] = field(default_factory=dict)
	classes: Dict[str, Dict[str, Any]] = field(default_factory=dict)
	messages: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
	activities: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)

	def clear(self) -> None:
		self.students = {}
		self.classes = {}
		self.messages = {}
		self.activities = {}
