"""Feature weights for the feature-vector scorer (engine v2).

Each role starts from BASE_WEIGHTS and overrides the features it cares
about. Penalty features carry negative weights.
"""

from typing import Dict, Tuple

FEATURE_NAMES: Tuple[str, ...] = (
    "status",
    "context",
    "output",
    "version_bonus",
    "reasoning",
    "toolcall",
    "attachment",
    "quality",
    "coding",
    "latency_penalty",
    "price_penalty",
)

BASE_WEIGHTS: Dict[str, float] = {
    "status": 22,
    "context": 6,
    "output": 6,
    "version_bonus": 8,
    "reasoning": 10,
    "toolcall": 16,
    "attachment": 2,
    "quality": 14,
    "coding": 18,
    "latency_penalty": -3,
    "price_penalty": -2,
}

ROLE_WEIGHT_OVERRIDES: Dict[str, Dict[str, float]] = {
    "orchestrator": {
        "reasoning": 22,
        "toolcall": 22,
        "quality": 16,
        "coding": 16,
        "latency_penalty": -2,
    },
    "oracle": {
        "reasoning": 26,
        "quality": 20,
        "coding": 18,
        "latency_penalty": -2,
        "output": 7,
    },
    "designer": {
        "attachment": 12,
        "output": 10,
        "quality": 16,
        "coding": 10,
    },
    "explorer": {
        "latency_penalty": -8,
        "toolcall": 24,
        "reasoning": 2,
        "context": 4,
        "output": 4,
    },
    "librarian": {
        "context": 14,
        "output": 10,
        "quality": 18,
        "coding": 14,
    },
    "fixer": {
        "coding": 28,
        "toolcall": 22,
        "reasoning": 12,
        "output": 10,
    },
}


def get_feature_weights(role: str) -> Dict[str, float]:
    """Effective weights for a role (base table plus role overrides)."""
    weights = dict(BASE_WEIGHTS)
    weights.update(ROLE_WEIGHT_OVERRIDES.get(role, {}))
    return weights
