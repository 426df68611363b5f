"""
domain.exceptions - Custom exception hierarchy for the agent runtime.

All domain-level errors inherit from AgentRuntimeError so callers can catch
broad or specific exceptions as needed.
"""


class AgentRuntimeError(Exception):
    """Base exception for all domain-level errors."""


class GatewayError(AgentRuntimeError):
    """Raised when the language-model backend cannot be reached or answers garbage."""


class ToolError(AgentRuntimeError):
    """Base for failures local to a single tool call."""


class UnknownToolError(ToolError):
    """Raised when the model requests a tool that is not registered."""


class ToolArgumentError(ToolError):
    """Raised when a tool's argument payload fails its declared schema."""


class ToolTimeoutError(ToolError):
    """Raised when a tool exceeds its wall-clock budget."""


class SelfModificationRefused(ToolError):
    """Raised when a command or edit would damage the installation root."""


class RecipeNotFoundError(AgentRuntimeError):
    """Raised when an automation recipe id does not exist."""
