"""Custom exception hierarchy for pipewright.

This module defines the exception classes used throughout pipewright:
- PipewrightError: Base exception for all pipewright errors
- StructuralError: Raised when a source document does not have AST shape
- CompilationError: Raised when the compiler cannot proceed at all
- ExpressionSyntaxError: Raised when an interpolated expression cannot be parsed
- ConfigurationError: Raised when compiler configuration is invalid

Problems found in user workflows are never raised. They are reported as
Diagnostic values on the CompileResult. Exceptions are reserved for host
and programming errors.

User-facing messages are safe to display; technical details are logged
internally via structlog.
"""

from __future__ import annotations

import structlog

logger = structlog.get_logger(__name__)


class PipewrightError(Exception):
    """Base exception for pipewright.

    Args:
        user_message: Safe message to display to the user.
        internal_details: Optional technical details for logging. This is
            logged internally but never part of the user message.

    Example:
        >>> raise PipewrightError(
        ...     "Compilation failed",
        ...     internal_details="ImportGraph.get_topological_order on cyclic graph",
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        """Initialize PipewrightError with user message and optional internal details.

        Args:
            user_message: Safe message to display to the user.
            internal_details: Technical details for internal logging only.
        """
        super().__init__(user_message)
        self.user_message = user_message

        if internal_details:
            logger.error(
                "pipewright_error",
                error_type=self.__class__.__name__,
                user_message=user_message,
                internal_details=internal_details,
            )


class StructuralError(PipewrightError):
    """Raised when a source document violates the required AST shape.

    Use this exception when:
    - The AST document is not valid YAML/JSON
    - A node is missing a required attribute (e.g. a job with a null step list)
    - A node carries an unknown ``kind`` discriminator

    Attributes:
        file_path: Path of the offending source file (if known).
        problems: One line per violated constraint.
    """

    def __init__(
        self,
        user_message: str,
        *,
        file_path: str | None = None,
        problems: list[str] | None = None,
        internal_details: str | None = None,
    ) -> None:
        """Initialize StructuralError with file context.

        Args:
            user_message: Safe message to display to the user.
            file_path: Path of the source file (optional).
            problems: Violated constraints, one per entry (optional).
            internal_details: Technical details for internal logging only.
        """
        full_message = f"{user_message} (in {file_path})" if file_path else user_message
        super().__init__(full_message, internal_details=internal_details)
        self.file_path = file_path
        self.problems = problems or []


class CompilationError(PipewrightError):
    """Raised when compilation cannot proceed.

    Use this exception when:
    - A topological order is requested from a cyclic graph
    - An IR node of an unknown variant reaches the emitter
    """

    pass


class ExpressionSyntaxError(PipewrightError):
    """Raised when an interpolated expression cannot be parsed.

    Attributes:
        source: Expression text that failed to parse.
        position: Character offset of the failure.
    """

    def __init__(self, user_message: str, *, source: str, position: int) -> None:
        """Initialize ExpressionSyntaxError with the failing text and offset.

        Args:
            user_message: Safe message to display to the user.
            source: Expression text that failed to parse.
            position: Character offset of the failure.
        """
        super().__init__(f"{user_message} at offset {position} in '{source}'")
        self.source = source
        self.position = position


class ConfigurationError(PipewrightError):
    """Raised when compiler configuration parsing or validation fails.

    Attributes:
        field_path: Name of the invalid setting (e.g. "matrix_warning_threshold").
        env_var: Environment variable the value came from (if any).

    Example:
        >>> raise ConfigurationError(
        ...     "Invalid matrix warning threshold",
        ...     field_path="matrix_warning_threshold",
        ...     env_var="PIPEWRIGHT_MATRIX_WARNING_THRESHOLD",
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        field_path: str | None = None,
        env_var: str | None = None,
        internal_details: str | None = None,
    ) -> None:
        """Initialize ConfigurationError with context.

        Args:
            user_message: Safe message to display to the user.
            field_path: Name of the invalid setting (optional).
            env_var: Source environment variable (optional).
            internal_details: Technical details for internal logging only.
        """
        context_parts: list[str] = []
        if field_path:
            context_parts.append(f"field '{field_path}'")
        if env_var:
            context_parts.append(f"from {env_var}")

        if context_parts:
            full_message = f"{user_message} ({', '.join(context_parts)})"
        else:
            full_message = user_message

        super().__init__(full_message, internal_details=internal_details)

        self.field_path = field_path
        self.env_var = env_var
