"""Plan types for model roster planning.

A ModelPlan is the single output of a planning call: one assignment, one
fallback chain and one provenance record per role, plus scoring metadata.
Plans are built once at the end of a call and never mutated afterwards.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

ScoringEngineVersion = Literal["v1", "v2", "v2-shadow"]
SCORING_ENGINE_VERSIONS = ("v1", "v2", "v2-shadow")


class ResolutionLayer(str, Enum):
    """Precedence layers, highest priority first."""

    DIRECT_OVERRIDE = "opencode-direct-override"
    MANUAL_USER_PLAN = "manual-user-plan"
    PINNED_MODEL = "pinned-model"
    DYNAMIC_RECOMMENDATION = "dynamic-recommendation"
    PROVIDER_FALLBACK_POLICY = "provider-fallback-policy"
    SYSTEM_DEFAULT = "system-default"


# Layers that express an explicit user decision; their winners are never reassigned
USER_LAYERS = frozenset(
    {
        ResolutionLayer.DIRECT_OVERRIDE,
        ResolutionLayer.MANUAL_USER_PLAN,
        ResolutionLayer.PINNED_MODEL,
    }
)


@dataclass(frozen=True)
class AgentAssignment:
    """Final model for one role plus its effort tier."""

    model: str
    variant: Optional[str] = None


@dataclass(frozen=True)
class ResolutionProvenance:
    """Which precedence layer produced a role's final model."""

    winner_layer: ResolutionLayer
    winner_model: str


@dataclass(frozen=True)
class ShadowDiff:
    """Top pick of each engine for one role in shadow mode."""

    v1_top_model: Optional[str] = None
    v2_top_model: Optional[str] = None


@dataclass(frozen=True)
class PlanScoringMeta:
    """Which engine was applied and, in shadow mode, how the engines differ."""

    engine_version_applied: Literal["v1", "v2"]
    shadow_compared: bool = False
    diffs: Optional[Dict[str, ShadowDiff]] = None


@dataclass(frozen=True)
class ModelPlan:
    """Immutable role-to-model plan.

    Attributes:
        agents: Role -> assignment
        chains: Role -> ordered fallback chain (starts with the assigned model)
        provenance: Role -> winning precedence layer
        scoring: Engine metadata
    """

    agents: Dict[str, AgentAssignment]
    chains: Dict[str, List[str]]
    provenance: Dict[str, ResolutionProvenance] = field(default_factory=dict)
    scoring: Optional[PlanScoringMeta] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to plain JSON-compatible types."""
        result: Dict[str, Any] = {
            "agents": {
                role: (
                    {"model": a.model, "variant": a.variant}
                    if a.variant
                    else {"model": a.model}
                )
                for role, a in self.agents.items()
            },
            "chains": {role: list(chain) for role, chain in self.chains.items()},
            "provenance": {
                role: {
                    "winner_layer": p.winner_layer.value,
                    "winner_model": p.winner_model,
                }
                for role, p in self.provenance.items()
            },
        }
        if self.scoring is not None:
            scoring: Dict[str, Any] = {
                "engine_version_applied": self.scoring.engine_version_applied,
                "shadow_compared": self.scoring.shadow_compared,
            }
            if self.scoring.diffs is not None:
                scoring["diffs"] = {
                    role: {
                        "v1_top_model": diff.v1_top_model,
                        "v2_top_model": diff.v2_top_model,
                    }
                    for role, diff in self.scoring.diffs.items()
                }
            result["scoring"] = scoring
        return result


__all__ = [
    "SCORING_ENGINE_VERSIONS",
    "USER_LAYERS",
    "AgentAssignment",
    "ModelPlan",
    "PlanScoringMeta",
    "ResolutionLayer",
    "ResolutionProvenance",
    "ScoringEngineVersion",
    "ShadowDiff",
]
