"""
Tool Dispatcher

Routes a call to the matching tool in the active snapshot, validates its
arguments and runs the handler. Every outcome, including handler crashes,
comes back as a CallEnvelope; nothing raised by a tool reaches the
transport.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .base import CapabilityError, ExecutionError, ToolResult, ValidationError
from .messages import Lookup
from .notifications import NotificationSink
from .registry import ActiveToolSnapshot
from .validation import validate

logger = logging.getLogger(__name__)


@dataclass
class CallEnvelope:
    """One tool invocation: the inbound call and, after dispatch, its outcome."""
    tool_name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    result: Any = None
    error: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_payload(self) -> Any:
        """The body returned to the client: the result, or {"error": ...}."""
        return self.result if self.ok else self.error


class Dispatcher:
    """
    Executes calls against a snapshot using the host capability provider.

    Concurrent calls are not serialized against each other; ordering is
    whatever the provider imposes.
    """

    def __init__(self, provider, notifier: NotificationSink = None, lookup: Lookup = None):
        self.provider = provider
        self.notifier = notifier
        self.lookup = lookup

    async def dispatch(self, snapshot: ActiveToolSnapshot, envelope: CallEnvelope) -> CallEnvelope:
        name = envelope.tool_name
        definition = snapshot.get(name)

        if definition is None or definition.handler is None:
            logger.info(f"Rejected call to unknown or disabled tool: {name}")
            envelope.error = {"error": f"Tool not found: {name}", "tool": name}
            return envelope

        try:
            validated = validate(definition.parameters, envelope.arguments, tool_name=name)
        except ValidationError as e:
            logger.info(f"Validation error in {name}: {e.field_errors}")
            envelope.error = {"error": e.message, "details": e.field_errors}
            return envelope

        try:
            result = await definition.handler(self.provider, **validated)
        except ExecutionError as e:
            logger.warning(f"Execution error in {name}: {e.message}")
            envelope.error = {"error": e.message, **e.details}
            return envelope
        except CapabilityError as e:
            logger.warning(f"Capability error in {name}: {e}")
            envelope.error = {"error": str(e)}
            return envelope
        except Exception as e:
            logger.exception(f"Unexpected error in {name}")
            envelope.error = {"error": f"Failed to execute {name}: {e}"}
            return envelope

        if isinstance(result, ToolResult):
            if result.notice_key and self.notifier is not None and self.lookup is not None:
                self.notifier.notify(self.lookup(result.notice_key, result.notice_params))
            result = result.payload

        envelope.result = result
        return envelope

