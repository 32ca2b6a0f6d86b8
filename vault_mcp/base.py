"""
MCP Tool Base Classes

Tool model, parameter definitions and the error taxonomy shared by the
registry, the validator and the dispatcher.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

PARAMETER_TYPES = ("string", "integer", "number", "boolean", "array", "object")


@dataclass(frozen=True)
class ToolParameter:
    """Definition of a tool parameter."""
    name: str
    type: str
    description: str
    required: bool = True
    default: Any = None
    enum: Optional[Tuple[Any, ...]] = None
    items_type: Optional[str] = None

    def __post_init__(self):
        if self.type not in PARAMETER_TYPES:
            raise ValueError(f"Unsupported parameter type for {self.name}: {self.type}")


@dataclass(frozen=True)
class ToolDefinition:
    """Complete definition of an MCP tool. Immutable once registered."""
    name: str
    description: str
    parameters: Tuple[ToolParameter, ...] = field(default_factory=tuple)
    handler: Optional[Callable[..., Awaitable[Any]]] = None
    category: str = "general"

    def input_schema(self) -> Dict[str, Any]:
        """JSON Schema advertised to clients as the tool's inputSchema."""
        properties: Dict[str, Dict[str, Any]] = {}
        required: List[str] = []

        for param in self.parameters:
            prop: Dict[str, Any] = {
                "type": param.type,
                "description": param.description,
            }
            if param.type == "array":
                prop["items"] = {"type": param.items_type or "string"}
            if param.enum:
                prop["enum"] = list(param.enum)
            if param.default is not None:
                prop["default"] = param.default

            properties[param.name] = prop
            if param.required:
                required.append(param.name)

        schema: Dict[str, Any] = {"type": "object", "properties": properties}
        if required:
            schema["required"] = required
        return schema


@dataclass
class ToolResult:
    """Handler return value that also asks for a user-visible notice."""
    payload: Any
    notice_key: Optional[str] = None
    notice_params: Dict[str, Any] = field(default_factory=dict)


class MCPToolError(Exception):
    """Base exception for MCP tool errors."""
    def __init__(self, message: str, tool_name: str = None, details: Dict = None):
        self.message = message
        self.tool_name = tool_name
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(MCPToolError):
    """Raised when tool input validation fails."""
    def __init__(self, message: str, field_errors: List[Dict[str, Any]] = None, tool_name: str = None):
        self.field_errors = field_errors or []
        super().__init__(message, tool_name=tool_name, details={"details": self.field_errors})


class ExecutionError(MCPToolError):
    """Raised when tool execution fails."""
    pass


class DuplicateToolError(MCPToolError):
    """Raised when two tool definitions share a name."""
    pass


class ConfigurationError(Exception):
    """Raised for invalid server configuration (e.g. an out-of-range port)."""
    pass


class CapabilityError(Exception):
    """Base exception for failures raised by the host capability provider."""
    pass


class FileNotFoundInVault(CapabilityError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File not found: {path}")


class NoActiveEditor(CapabilityError):
    def __init__(self):
        super().__init__("No active markdown editor")


class CommandNotFound(CapabilityError):
    def __init__(self, command_id: str):
        self.command_id = command_id
        super().__init__(f"Command not found: {command_id}")


class MCPTool(ABC):
    """
    Abstract base class for MCP tools.

    All tools must inherit from this class and implement:
    - name: Tool identifier
    - description: What the tool does
    - parameters: List of ToolParameter definitions
    - execute(): The actual tool logic, given the capability provider
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for the tool."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what the tool does."""
        pass

    @property
    def parameters(self) -> List[ToolParameter]:
        """List of parameters the tool accepts."""
        return []

    @property
    def category(self) -> str:
        """Category for grouping tools."""
        return "general"

    @abstractmethod
    async def execute(self, provider, **kwargs) -> Any:
        """
        Execute the tool with validated parameters.
        `provider` is the host CapabilityProvider; all side effects go through it.
        """
        pass

    def to_definition(self) -> ToolDefinition:
        """Convert tool to ToolDefinition for registry."""
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=tuple(self.parameters),
            handler=self.execute,
            category=self.category,
        )
