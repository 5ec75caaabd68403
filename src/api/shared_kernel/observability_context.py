"""Observation context for domain-oriented observability.

Observation contexts collect and manage contextual metadata for instrumentation,
following the Domain Oriented Observability pattern.

The tenant code is deliberately absent: it is bound into structlog's
context-local variables by the tenant scope and merged into every event.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class ObservationContext:
    """Immutable context containing metadata for observability.

    Attributes:
        request_id: Unique identifier for the current request/operation.
        trigger: What started the operation (startup, schedule, api).
        extra: Additional contextual metadata.

    Example:
        context = ObservationContext(request_id="req-123", trigger="api")
        probe = DefaultTenantServiceProbe().with_context(context)
    """

    request_id: str | None = None
    trigger: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for logging.

        Only includes non-None values to keep logs clean.
        """
        result: dict[str, Any] = {}
        if self.request_id is not None:
            result["request_id"] = self.request_id
        if self.trigger is not None:
            result["trigger"] = self.trigger
        result.update(self.extra)
        return result

    def with_request(self, request_id: str) -> ObservationContext:
        """Create a new context with the request id set."""
        return replace(self, request_id=request_id)

    def with_trigger(self, trigger: str) -> ObservationContext:
        """Create a new context with the trigger set."""
        return replace(self, trigger=trigger)

    def with_extra(self, **kwargs: Any) -> ObservationContext:
        """Create a new context with additional metadata."""
        return replace(self, extra={**self.extra, **kwargs})
