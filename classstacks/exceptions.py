"""Custom exceptions for the ClassStacks client."""


class ClassStacksError(Exception):
	"""Base exception for ClassStacks errors."""
	pass


class ClassStacksAuthError(ClassStacksError):
	"""Credentials did not match the stored session."""
	pass


class ClassStacksConfigError(ClassStacksError):
	"""Configuration is missing or invalid."""
	pass


class ClassStacksRequestError(ClassStacksError):
	"""API request failed."""
	pass


class ClassStacksConnectionError(ClassStacksRequestError):
	"""Connection to the ClassStacks endpoint failed."""
	pass


class ClassStacksDataError(ClassStacksRequestError):
	"""Response could not be decoded."""
	pass
