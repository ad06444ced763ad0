"""
Network validation - Check networks for structural issues.

Used by the simulation controller as a fail-fast precondition check, and by
the session service to report issues on the bound network.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .errors import NetworkValidationError

if TYPE_CHECKING:
    from .models import Network

logger = logging.getLogger(__name__)


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Invalid state, the simulation cannot run
    WARNING = "warning"  # Potential problem, should review
    INFO = "info"        # Informational, may be intentional


@dataclass
class ValidationIssue:
    """A single validation issue found in a network."""
    severity: IssueSeverity
    message: str
    node_id: str | None = None
    link_id: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.severity.value,
            "message": self.message
        }
        if self.node_id:
            result["node_id"] = self.node_id
        if self.link_id:
            result["link_id"] = self.link_id
        return result


def validate_network(network: "Network") -> list[ValidationIssue]:
    """
    Validate a network and return a list of issues.

    Checks for:
    - Duplicate node ids - ERROR
    - Duplicate link ids - ERROR
    - Dangling link endpoints (source/target doesn't exist) - ERROR
    - Self-referencing links - WARNING
    - Orphan nodes (no links) - INFO
    - Empty network - INFO

    Args:
        network: The network to validate

    Returns:
        List of ValidationIssue objects
    """
    issues: list[ValidationIssue] = []

    if not network.nodes:
        issues.append(ValidationIssue(
            severity=IssueSeverity.INFO,
            message="Network has no nodes"
        ))

    node_ids: set[str] = set()
    for node in network.nodes:
        if node.id in node_ids:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Duplicate node id: {node.id}",
                node_id=node.id
            ))
        node_ids.add(node.id)

    link_ids: set[str] = set()
    for link in network.links:
        if link.id in link_ids:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Duplicate link id: {link.id}",
                link_id=link.id
            ))
        link_ids.add(link.id)

    # Dangling endpoints
    for link in network.links:
        if link.source not in node_ids:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Link references non-existent source node: {link.source}",
                link_id=link.id
            ))
        if link.target not in node_ids:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Link references non-existent target node: {link.target}",
                link_id=link.id
            ))

    for link in network.links:
        if link.source == link.target:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message="Self-referencing link (node points to itself)",
                link_id=link.id,
                node_id=link.source
            ))

    connected: set[str] = set()
    for link in network.links:
        connected.add(link.source)
        connected.add(link.target)
    orphans = [n.id for n in network.nodes if n.id not in connected]
    if orphans and network.links:
        issues.append(ValidationIssue(
            severity=IssueSeverity.INFO,
            message=f"Orphan nodes (no links): {', '.join(orphans)}"
        ))

    return issues


def require_valid_network(network: "Network") -> list[ValidationIssue]:
    """
    Raise NetworkValidationError if the network has any ERROR issues.

    Returns the non-fatal issues so callers can log or report them.
    """
    issues = validate_network(network)
    errors = [i for i in issues if i.severity == IssueSeverity.ERROR]
    if errors:
        logger.warning("Rejecting network with %d error(s)", len(errors))
        raise NetworkValidationError(errors)
    return issues


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """
    Create a summary of validation issues.

    Args:
        issues: List of validation issues

    Returns:
        Dictionary with counts by severity
    """
    errors = len([i for i in issues if i.severity == IssueSeverity.ERROR])
    return {
        "total": len(issues),
        "errors": errors,
        "warnings": len([i for i in issues if i.severity == IssueSeverity.WARNING]),
        "info": len([i for i in issues if i.severity == IssueSeverity.INFO]),
        "valid": errors == 0
    }
