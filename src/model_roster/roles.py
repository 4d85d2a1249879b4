"""Agent roles for model roster planning.

The role set and its processing order are fixed constants. The order in
PRIMARY_ASSIGNMENT_ORDER decides which role claims scarce providers first,
so it must not be derived from input or reordered.
"""

from typing import Dict, FrozenSet, Optional, Tuple

ORCHESTRATOR = "orchestrator"
ORACLE = "oracle"
DESIGNER = "designer"
EXPLORER = "explorer"
LIBRARIAN = "librarian"
FIXER = "fixer"

# Canonical role list (coordinator first, then the five specialists)
ROLES: Tuple[str, ...] = (
    ORCHESTRATOR,
    ORACLE,
    DESIGNER,
    EXPLORER,
    LIBRARIAN,
    FIXER,
)

# Order in which roles claim their primary model
PRIMARY_ASSIGNMENT_ORDER: Tuple[str, ...] = (
    ORACLE,
    ORCHESTRATOR,
    FIXER,
    DESIGNER,
    LIBRARIAN,
    EXPLORER,
)

# Qualitative effort tier attached to each assignment
ROLE_VARIANT: Dict[str, Optional[str]] = {
    ORCHESTRATOR: None,
    ORACLE: "high",
    DESIGNER: "medium",
    EXPLORER: "low",
    LIBRARIAN: "low",
    FIXER: "low",
}

# Roles that cannot work without tool invocation
TOOLCALL_REQUIRED_ROLES: FrozenSet[str] = frozenset(
    {ORCHESTRATOR, EXPLORER, LIBRARIAN, FIXER}
)

# Roles served by the secondary pin of a pinned provider
SECONDARY_PIN_ROLES: FrozenSet[str] = frozenset({EXPLORER, LIBRARIAN, FIXER})


def is_valid_role(name: str) -> bool:
    """Check whether a name is one of the fixed roles."""
    return name in ROLES


__all__ = [
    "ORCHESTRATOR",
    "ORACLE",
    "DESIGNER",
    "EXPLORER",
    "LIBRARIAN",
    "FIXER",
    "ROLES",
    "PRIMARY_ASSIGNMENT_ORDER",
    "ROLE_VARIANT",
    "TOOLCALL_REQUIRED_ROLES",
    "SECONDARY_PIN_ROLES",
    "is_valid_role",
]
