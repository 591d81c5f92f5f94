"""Constants for the ClassStacks client."""

from datetime import timedelta

DOMAIN = "classstacks"

# Configuration
CONF_BASE_URL = "base_url"
CONF_USER_AGENT = "user_agent"
CONF_STUDENT_POLL_INTERVAL = "student_poll_interval"
CONF_TEACHER_POLL_INTERVAL = "teacher_poll_interval"
CONF_ONLINE_THRESHOLD = "online_threshold"
CONF_REQUEST_TIMEOUT = "request_timeout"
CONF_STORAGE_PATH = "storage_path"

ENV_PREFIX = "CLASSSTACKS_"

# Default values
DEFAULT_USER_AGENT = "ClassStacks/1.0 (Desktop)"
DEFAULT_STUDENT_POLL_INTERVAL = timedelta(seconds=5)
DEFAULT_TEACHER_POLL_INTERVAL = timedelta(seconds=3)
DEFAULT_ONLINE_THRESHOLD = timedelta(seconds=30)
DEFAULT_ACTIVITY_LIMIT = 100

# Roles
ROLE_SCHOOL = "school"
ROLE_TEACHER = "teacher"

# Storage keys
STORAGE_KEY_USER = "currentUser"
STORAGE_KEY_STUDENT = "currentStudent"

# Polling job names
POLL_KEY_TEACHER = "teacher"

# Remote actions
ACTION_REGISTER_SCHOOL = "registerSchool"
ACTION_REGISTER_TEACHER = "registerTeacher"
ACTION_REGISTER_STUDENT = "registerStudent"
ACTION_GET_STUDENTS = "getStudents"
ACTION_UPDATE_STUDENT_ACTIVITY = "updateStudentActivity"
ACTION_ADD_STUDENT_TO_CLASS = "addStudentToClass"
ACTION_CREATE_CLASS = "createClass"
ACTION_GET_CLASSES = "getClasses"
ACTION_SEND_MESSAGE = "sendMessage"
ACTION_GET_MESSAGES = "getMessages"
ACTION_LOCK_STUDENT = "lockStudent"
ACTION_UNLOCK_STUDENT = "unlockStudent"
ACTION_LOG_ACTIVITY = "logActivity"
ACTION_GET_ACTIVITY = "getActivity"

# Event types
EVENT_MESSAGE = f"{DOMAIN}:message"
EVENT_LOCKED = f"{DOMAIN}:locked"
EVENT_UPDATE = f"{DOMAIN}:update"

# Device classes
DEVICE_MOBILE = "Mobile"
DEVICE_TABLET = "Tablet"
DEVICE_DESKTOP = "Desktop"

DEFAULT_WEBSITE_ICON = "🌐"

WEBSITE_NAMES = {
	"google.com": "Google",
	"youtube.com": "YouTube",
	"wikipedia.org": "Wikipedia",
	"khanacademy.org": "Khan Academy",
	"github.com": "GitHub",
	"stackoverflow.com": "Stack Overflow",
	"code.org": "Code.org",
	"duolingo.com": "Duolingo",
	"coursera.org": "Coursera",
}

WEBSITE_ICONS = {
	"google.com": "🔍",
	"youtube.com": "📺",
	"wikipedia.org": "📚",
	"khanacademy.org": "🎓",
	"github.com": "💻",
	"stackoverflow.com": "💡",
	"code.org": "👨‍💻",
	"duolingo.com": "🦉",
	"coursera.org": "🎓",
}
