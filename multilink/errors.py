"""
Exception types raised by the layout core.

The session service maps these onto HTTP status codes:
- ValueError family -> 400
- KeyError family -> 404
- RuntimeError family -> 409
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .validation import ValidationIssue


class MultilinkError(Exception):
    """Base class for all layout core errors."""


class NetworkValidationError(MultilinkError, ValueError):
    """A network failed its structural preconditions (e.g. a dangling link)."""

    def __init__(self, issues: list["ValidationIssue"]):
        self.issues = issues
        details = "; ".join(issue.message for issue in issues)
        super().__init__(f"Invalid network: {details}")


class StaleSimulationError(MultilinkError, RuntimeError):
    """An operation was attempted on a destroyed simulation."""


class PositionOwnershipError(MultilinkError, RuntimeError):
    """A node position was written while the simulation owns positions."""


class UnknownNodeError(MultilinkError, KeyError):
    """A node id does not exist in the bound network."""

    def __str__(self) -> str:
        return f"Node not found: {self.args[0]}" if self.args else "Node not found"
