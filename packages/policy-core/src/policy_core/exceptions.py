"""
Exception classes for policy compilation and reconciliation.

This module defines the errors the pipeline raises:
- PolicyCompilerError: Base class, carries a `kind` characterization
- InvalidPathError: A request path breaks the gateway class -> gateway ->
  listener -> route -> route-rule chain (kind "structural")
- ArtifactSerializationError: A compiled artifact cannot be encoded as JSON
  (kind "serialization")
- SinkError: Reading or writing deployed state failed (kind "sink")

Unresolvable policy targets are not errors: the graph builder records them
as unattached policies.

Per project patterns:
- Inherit from Exception for base exception type
- Store context data in attributes for error handling
- Include descriptive message with relevant details
"""


class PolicyCompilerError(Exception):
    """
    Base class for every error raised by the compiler.

    Attributes:
        kind: Short characterization of the failure ("structural",
            "serialization", "sink")
    """

    kind: str = "internal"


class InvalidPathError(PolicyCompilerError):
    """
    Raised when a request path is structurally invalid.

    Attributes:
        index: Position in the path where validation failed (-1 for an
            empty path)
        reason: What is wrong at that position
    """

    kind = "structural"

    def __init__(self, index: int, reason: str) -> None:
        self.index = index
        self.reason = reason
        if index < 0:
            super().__init__(f"Invalid request path: {reason}")
        else:
            super().__init__(f"Invalid request path at index {index}: {reason}")


class ArtifactSerializationError(PolicyCompilerError):
    """
    Raised when a compiled artifact cannot be serialized.

    Attributes:
        artifact: Name of the artifact being serialized
        cause: The underlying encoder error
    """

    kind = "serialization"

    def __init__(self, artifact: str, cause: Exception) -> None:
        self.artifact = artifact
        self.cause = cause
        super().__init__(f"Failed to serialize {artifact}: {cause}")


class SinkError(PolicyCompilerError):
    """
    Raised when a sink fails to read or write deployed state.

    Attributes:
        operation: "read" or "write"
        target: What was being read or written (e.g. "limits",
            "filter config default/gw")
        cause: The underlying error
    """

    kind = "sink"

    def __init__(self, operation: str, target: str, cause: Exception) -> None:
        self.operation = operation
        self.target = target
        self.cause = cause
        super().__init__(f"Sink {operation} of {target} failed: {cause}")
