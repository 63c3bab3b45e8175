"""
Graph validation - actionable findings before evaluation.

Every finding answers what is wrong, where in the graph, and how to fix
it. Findings are reported, never raised, unless the caller asks for
``raise_if_invalid()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from soundgraph.errors import GraphError


class ValidationSeverity(str, Enum):
    """Severity level for validation issues."""

    ERROR = "error"      # Graph cannot be evaluated as intended
    WARNING = "warning"  # Graph evaluates but some outputs will be null
    INFO = "info"        # Suggestion for improvement


@dataclass
class ValidationError:
    """A single validation issue with actionable details.

    - location: Path to the problematic element (e.g., "nodes[join1].audio2")
    - message: Human-readable description of the issue
    - severity: ERROR, WARNING, or INFO
    - suggestion: Actionable fix suggestion
    """
    location: str
    message: str
    severity: ValidationSeverity = ValidationSeverity.ERROR
    suggestion: str | None = None

    # Context for programmatic handling
    code: str = "UNKNOWN"  # e.g., "MISSING_INPUT"
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"{self.severity.value.upper()}: {self.location}: {self.message}"]
        if self.suggestion:
            parts.append(f"  Suggestion: {self.suggestion}")
        return "\n".join(parts)

    @classmethod
    def missing_input(cls, node_id: str, port: str) -> ValidationError:
        """Factory for required inputs with no connection."""
        return cls(
            location=f"nodes[{node_id}].{port}",
            message=f"Required input '{port}' is not connected",
            severity=ValidationSeverity.WARNING,
            suggestion=f"Connect an upstream output to '{port}'",
            code="MISSING_INPUT",
            context={"node_id": node_id, "port": port},
        )

    @classmethod
    def isolated_node(cls, node_id: str) -> ValidationError:
        """Factory for nodes with no connections at all."""
        return cls(
            location=f"nodes[{node_id}]",
            message=f"Node '{node_id}' is not connected to anything",
            severity=ValidationSeverity.INFO,
            suggestion="Connect the node or remove it",
            code="ISOLATED_NODE",
            context={"node_id": node_id},
        )

    @classmethod
    def empty_source(cls, node_id: str) -> ValidationError:
        """Factory for source nodes without loaded audio."""
        return cls(
            location=f"nodes[{node_id}]",
            message=f"Source '{node_id}' has no audio loaded",
            severity=ValidationSeverity.WARNING,
            suggestion="Load a WAV file into the source",
            code="EMPTY_SOURCE",
            context={"node_id": node_id},
        )

    @classmethod
    def source_decode_failed(cls, node_id: str, reason: str) -> ValidationError:
        """Factory for sources whose last load could not be decoded."""
        return cls(
            location=f"nodes[{node_id}]",
            message=f"Source '{node_id}' failed to decode: {reason}",
            severity=ValidationSeverity.ERROR,
            suggestion="Load a valid PCM WAV file or clear the source",
            code="SOURCE_DECODE_FAILED",
            context={"node_id": node_id, "reason": reason},
        )


@dataclass
class ValidationResult:
    """Result of graph validation.

    Contains all validation errors organized by severity.
    """
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """True if no ERROR-level issues."""
        return not any(e.severity == ValidationSeverity.ERROR for e in self.errors)

    @property
    def has_warnings(self) -> bool:
        return any(e.severity == ValidationSeverity.WARNING for e in self.errors)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self.errors if e.severity == ValidationSeverity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self.errors if e.severity == ValidationSeverity.WARNING)

    def filter_by_severity(self, severity: ValidationSeverity) -> list[ValidationError]:
        return [e for e in self.errors if e.severity == severity]

    def filter_by_code(self, code: str) -> list[ValidationError]:
        return [e for e in self.errors if e.code == code]

    def add(self, error: ValidationError) -> None:
        self.errors.append(error)

    def raise_if_invalid(self) -> None:
        """Raise GraphValidationException if any ERROR-level issues."""
        if not self.is_valid:
            raise GraphValidationException(self)

    def __str__(self) -> str:
        if not self.errors:
            return "Validation passed"
        lines = [f"Validation found {len(self.errors)} issue(s):"]
        for err in self.errors:
            lines.append(f"  {err}")
        return "\n".join(lines)

    def __bool__(self) -> bool:
        """False if any errors, True if clean."""
        return self.is_valid

    def __iter__(self):
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)


class GraphValidationException(GraphError):
    """Raised when graph validation fails with ERROR-level issues."""

    def __init__(self, result: ValidationResult):
        super().__init__(str(result), {"error_count": result.error_count})
        self.result = result
