"""Ownership guard for mutating managed KV entries."""
from dataclasses import dataclass
from typing import Optional

from .errors import NotManagedError


@dataclass(frozen=True)
class OwnershipDecision:
    allowed: bool
    reason: str = ""


def check_ownership(existing_tag: Optional[str], expected_tag: str) -> OwnershipDecision:
    """
    Decide whether an entry carrying ``existing_tag`` may be mutated.

    Only call this for entries whose metadata exists. A path without any
    metadata is a first write and is claimed without consulting the guard.

    Args:
        existing_tag: The entry's ``managed_by`` value, None if the tag is missing
        expected_tag: This configuration's identity

    Returns:
        OwnershipDecision with allowed=False and a reason on mismatch
    """
    if existing_tag is None:
        return OwnershipDecision(False, "entry has no managed_by tag")
    if existing_tag != expected_tag:
        return OwnershipDecision(False, f"entry is managed by {existing_tag!r}")
    return OwnershipDecision(True)


def require_ownership(key: str, existing_tag: Optional[str], expected_tag: str) -> None:
    """Raise NotManagedError unless ``check_ownership`` allows the mutation."""
    decision = check_ownership(existing_tag, expected_tag)
    if not decision.allowed:
        raise NotManagedError(key, existing_tag, decision.reason)
