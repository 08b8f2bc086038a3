"""Diagnostic code catalog.

Codes are grouped into disjoint numeric ranges, one per category:

    PW0000-0999  structural
    PW1000-1999  import/path
    PW2000-2999  type-system
    PW3000-3999  schema
    PW4000-4999  required-field
    PW5000-5999  cycle-termination
    PW6000-6999  matrix-limit
    PW7000-7999  expression-type
    PW8000-8999  job-graph
    PW9000-9999  fragment
"""

from __future__ import annotations

from enum import Enum

CODE_PREFIX = "PW"


class Severity(str, Enum):
    """Severity of a diagnostic.

    Attributes:
        ERROR: Blocks a successful compile
        WARNING: Likely problem; compilation still succeeds
        INFO: Informational note
    """

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class DiagnosticCategory(str, Enum):
    """Diagnostic category, each owning one range of codes."""

    STRUCTURAL = "structural"
    IMPORT = "import"
    TYPE_SYSTEM = "type-system"
    SCHEMA = "schema"
    REQUIRED_FIELD = "required-field"
    CYCLE_TERMINATION = "cycle-termination"
    MATRIX_LIMIT = "matrix-limit"
    EXPRESSION_TYPE = "expression-type"
    JOB_GRAPH = "job-graph"
    FRAGMENT = "fragment"


# Thousands digit of the numeric code -> category
_CATEGORY_BY_RANGE: dict[int, DiagnosticCategory] = {
    0: DiagnosticCategory.STRUCTURAL,
    1: DiagnosticCategory.IMPORT,
    2: DiagnosticCategory.TYPE_SYSTEM,
    3: DiagnosticCategory.SCHEMA,
    4: DiagnosticCategory.REQUIRED_FIELD,
    5: DiagnosticCategory.CYCLE_TERMINATION,
    6: DiagnosticCategory.MATRIX_LIMIT,
    7: DiagnosticCategory.EXPRESSION_TYPE,
    8: DiagnosticCategory.JOB_GRAPH,
    9: DiagnosticCategory.FRAGMENT,
}


class DiagnosticCode(str, Enum):
    """Every diagnostic code the compiler can report."""

    # structural
    STRUCTURAL_INVALID = "PW0001"
    DUPLICATE_JOB = "PW0002"

    # import/path
    UNRESOLVABLE_IMPORT = "PW1001"
    CIRCULAR_IMPORT = "PW1002"
    PATH_ESCAPES_ROOT = "PW1003"
    MISSING_EXTENSION = "PW1004"
    ABSOLUTE_PATH = "PW1005"
    NAME_NOT_EXPORTED = "PW1006"
    IMPORT_NAME_COLLISION = "PW1007"
    DUPLICATE_IMPORT = "PW1008"
    IMPORT_FROM_CYCLE = "PW1009"

    # type-system
    DUPLICATE_TYPE = "PW2001"
    UNDEFINED_TYPE = "PW2002"
    UNKNOWN_PROPERTY = "PW2003"

    # schema
    UNKNOWN_PRIMITIVE = "PW3001"
    EMPTY_OBJECT = "PW3002"
    INVALID_UNION = "PW3003"
    DUPLICATE_FIELD = "PW3004"

    # required-field
    MISSING_TARGET = "PW4001"
    MISSING_TERMINATION = "PW4002"
    MISSING_PROMPT = "PW4003"
    MISSING_OUTPUT_SCHEMA = "PW4004"
    EMPTY_WORKFLOW = "PW4005"

    # cycle-termination
    UNBOUNDED_CYCLE = "PW5001"
    INVALID_MAX_ITERS = "PW5002"

    # matrix-limit
    MATRIX_LIMIT_EXCEEDED = "PW6001"
    MATRIX_NEAR_LIMIT = "PW6002"
    EMPTY_MATRIX_AXIS = "PW6003"

    # expression-type
    COMPARISON_TYPE_MISMATCH = "PW7001"
    NON_NUMERIC_ARITHMETIC = "PW7002"

    # job-graph
    UNKNOWN_NEEDS = "PW8001"
    NEEDS_CYCLE = "PW8002"
    DUPLICATE_OUTPUT = "PW8003"
    REFERENCE_NOT_IN_NEEDS = "PW8004"
    UNKNOWN_JOB_OUTPUT = "PW8005"
    UNKNOWN_ARTIFACT = "PW8006"

    # fragment
    FRAGMENT_NOT_FOUND = "PW9001"
    MISSING_FRAGMENT_PARAM = "PW9002"
    UNKNOWN_FRAGMENT_PARAM = "PW9003"
    FRAGMENT_PARAM_TYPE_MISMATCH = "PW9004"
    DUPLICATE_FRAGMENT = "PW9005"
    RECURSIVE_FRAGMENT = "PW9006"

    @property
    def category(self) -> DiagnosticCategory:
        """Category owning this code's range."""
        return category_of(self.value)

    @property
    def default_severity(self) -> Severity:
        """Severity reported when the caller does not override it."""
        return _DEFAULT_SEVERITY.get(self, Severity.ERROR)


_DEFAULT_SEVERITY: dict[DiagnosticCode, Severity] = {
    DiagnosticCode.PATH_ESCAPES_ROOT: Severity.WARNING,
    DiagnosticCode.ABSOLUTE_PATH: Severity.WARNING,
    DiagnosticCode.INVALID_UNION: Severity.WARNING,
    DiagnosticCode.EMPTY_WORKFLOW: Severity.WARNING,
    DiagnosticCode.UNBOUNDED_CYCLE: Severity.WARNING,
    DiagnosticCode.MATRIX_NEAR_LIMIT: Severity.WARNING,
    DiagnosticCode.EMPTY_MATRIX_AXIS: Severity.WARNING,
    DiagnosticCode.COMPARISON_TYPE_MISMATCH: Severity.WARNING,
    DiagnosticCode.NON_NUMERIC_ARITHMETIC: Severity.INFO,
}


def category_of(code: str) -> DiagnosticCategory:
    """Map a code string such as ``"PW6001"`` to its category.

    Raises:
        ValueError: If the code is malformed.
    """
    digits = code[len(CODE_PREFIX) :]
    if not code.startswith(CODE_PREFIX) or len(digits) != 4 or not digits.isdigit():
        msg = f"Malformed diagnostic code: '{code}'"
        raise ValueError(msg)
    return _CATEGORY_BY_RANGE[int(digits) // 1000]
