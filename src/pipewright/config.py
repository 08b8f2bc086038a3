"""Compiler configuration for pipewright.

CompilerConfig carries the tunable knobs of the analysis pipeline. Values
come from keyword arguments or from PIPEWRIGHT_* environment variables.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from pipewright.errors import ConfigurationError

# Hard platform ceiling on jobs generated from one matrix
MATRIX_JOB_LIMIT = 256

# Default threshold above which a matrix draws a warning
DEFAULT_MATRIX_WARNING_THRESHOLD = 200

# Default source file extension for imports
DEFAULT_SOURCE_EXTENSION = ".pipe"

# Prefix of every environment variable CompilerConfig reads
ENV_PREFIX = "PIPEWRIGHT_"


class CompilerConfig(BaseSettings):
    """Configuration for the compiler pipeline.

    Can be loaded from environment variables with PIPEWRIGHT_ prefix.
    Keyword arguments win over the environment.

    Attributes:
        matrix_warning_threshold: Matrix size above which a warning is emitted.
        suggestion_max_distance: Maximum edit distance for "did you mean" hints.
        source_extension: Mandatory extension of importable source files.
        project_root: Root directory imports must stay within ("" = cwd-relative).
        default_runner: Runner used to keep generation going for jobs without target.
        agent_action: Action reference that agent tasks compile to.

    Example:
        >>> # From environment
        >>> config = CompilerConfig()
        >>>
        >>> # Explicit
        >>> config = CompilerConfig(matrix_warning_threshold=150)
        >>> config.matrix_warning_threshold
        150
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        frozen=True,
        extra="forbid",
    )

    matrix_warning_threshold: int = Field(
        default=DEFAULT_MATRIX_WARNING_THRESHOLD,
        ge=1,
        le=MATRIX_JOB_LIMIT,
        description="Matrix job count above which a warning is emitted",
    )
    suggestion_max_distance: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Maximum edit distance for name suggestions",
    )
    source_extension: str = Field(
        default=DEFAULT_SOURCE_EXTENSION,
        min_length=2,
        description="Mandatory source file extension for imports",
    )
    project_root: str = Field(
        default="",
        description="Project root directory imports must not escape",
    )
    default_runner: str = Field(
        default="ubuntu-latest",
        min_length=1,
        description="Placeholder runner for jobs missing a target",
    )
    agent_action: str = Field(
        default="anthropics/claude-code-action@v1",
        min_length=1,
        description="Action reference used for agent tasks",
    )

    @field_validator("source_extension")
    @classmethod
    def validate_source_extension(cls, v: str) -> str:
        """Require a leading dot on the source extension."""
        if not v.startswith("."):
            msg = f"source_extension must start with '.', got '{v}'"
            raise ValueError(msg)
        return v


    @classmethod
    def from_env(cls, **overrides: Any) -> CompilerConfig:
        """Build configuration from PIPEWRIGHT_* environment variables.

        Args:
            **overrides: Explicit values taking precedence over the environment.

        Returns:
            Validated CompilerConfig.

        Raises:
            ConfigurationError: If a variable holds an invalid value.

        Example:
            >>> # PIPEWRIGHT_MATRIX_WARNING_THRESHOLD=120
            >>> CompilerConfig.from_env().matrix_warning_threshold
            120
        """
        try:
            return cls(**overrides)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field_name = str(first["loc"][0]) if first["loc"] else None
            raise ConfigurationError(
                "Invalid compiler configuration",
                field_path=field_name,
                env_var=f"{ENV_PREFIX}{field_name.upper()}" if field_name else None,
                internal_details=str(e),
            ) from e
