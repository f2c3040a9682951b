"""Unified exception taxonomy.

Provides a shared base exception hierarchy for the correlation pipeline,
the feature source and places adapters, and the enrichment coordinator.
Every domain exception inherits from ``PipelineError`` and carries
structured context fields so that startup failures, dropped geometries
and in-session errors are reported consistently.

Taxonomy categories
-------------------
- ``ValidationError``   — input/contract violations, never retryable.
- ``TransientError``    — temporary failures (network, throttle), retryable.
- ``PermanentError``    — unrecoverable domain failures, not retryable.
- ``ContractError``     — payload/schema drift from an external service.

Every exception exposes ``to_error_dict()`` for a stable structured
error payload suitable for logging and session outcomes.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Pipeline stage where the error occurred
            (e.g. ``"startup"``, ``"enrichment"``).
        code: Machine-readable error code (e.g. ``"SOURCE_UNAVAILABLE"``).
        retryable: Whether the operation may succeed if attempted again.
        correlation_id: Session or request correlation identifier.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ContractError):
            return "contract"
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(PipelineError):
    """Input or domain-model validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(PipelineError):
    """Temporary failure that may succeed on retry."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(PipelineError):
    """Unrecoverable domain failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(PipelineError):
    """Payload or schema drift from an external service. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Geometry errors
# ---------------------------------------------------------------------------


class InvalidGeometryOperand(ValidationError):
    """A geometry operator received an unusable operand.

    Raised by ``project``/``union``/``intersects`` wrappers when an
    operand is missing, empty, degenerate, or in a different spatial
    reference than its partner.  Callers recover locally by skipping the
    offending geometry; this error is never surfaced to the operator.

    Attributes:
        operation: Operator name (``"project"``, ``"union"``, ``"intersects"``).
    """

    default_stage = "geometry"
    default_code = "INVALID_GEOMETRY_OPERAND"

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.operation}: {self.message}"


class GeometryOperatorUnavailable(PermanentError):
    """The geometry engine could not be initialised (e.g. missing PROJ data)."""

    default_stage = "startup"
    default_code = "GEOMETRY_OPERATOR_UNAVAILABLE"
