"""
Exception types shared across InfraViz modules.
"""

from typing import List, Optional


class InfravizError(Exception):
    """Base class for InfraViz errors."""


class GraphValidationError(InfravizError):
    """Raised when an imported graph document is structurally invalid."""

    def __init__(self, issues: List[str], message: Optional[str] = None):
        self.issues = list(issues)
        if message is None:
            message = "Invalid graph: " + "; ".join(self.issues)
        super().__init__(message)


class GenerationError(InfravizError):
    """Raised when the remote generation service fails or returns garbage."""


class ProjectNotFoundError(InfravizError, FileNotFoundError):
    """Raised when a stored project does not exist."""


class UnknownFindingError(InfravizError, KeyError):
    """Raised when an auto-fix targets an unknown rule or node."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Unknown finding"
