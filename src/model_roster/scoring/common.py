"""Eligibility and ordering helpers shared by both scoring engines."""

import math
from enum import Enum
from typing import Optional, Tuple

from ..metadata.types import ModelRecord, ModelStatus
from ..roles import TOOLCALL_REQUIRED_ROLES

# Sentinel totals kept for numeric comparisons (quality windows, swap losses)
TOOLCALL_FLOOR_SCORE = -10_000.0
DEPRECATED_FLOOR_SCORE = -5_000.0


class Ineligibility(str, Enum):
    """Reason a model is pushed below every eligible candidate."""

    TOOLCALL_REQUIRED = "toolcall_required"
    DEPRECATED = "deprecated"


def role_eligibility(role: str, model: ModelRecord) -> Optional[Ineligibility]:
    """Return why a model is ineligible for a role, or None if eligible.

    A model stays sortable either way; ineligible models rank after every
    eligible one.
    """
    if role in TOOLCALL_REQUIRED_ROLES and not model.toolcall:
        return Ineligibility.TOOLCALL_REQUIRED
    if model.status == ModelStatus.DEPRECATED:
        return Ineligibility.DEPRECATED
    return None


def round_score(value: float) -> float:
    """Round to 3 decimals, halves away from negative infinity."""
    return math.floor(value * 1000 + 0.5) / 1000


def ranking_key(
    model: ModelRecord,
    score: float,
    ineligible: Optional[Ineligibility],
) -> Tuple[bool, float, str, str]:
    """Sort key: eligible first, score descending, provider then id ascending."""
    return (ineligible is not None, -score, model.provider_id, model.full_id)
