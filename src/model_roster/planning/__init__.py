"""Role-to-model planning.

Example usage:
    from model_roster.planning import build_model_plan
    from model_roster.unified_config import PlannerConfig

    config = PlannerConfig(providers={"openai": True, "anthropic": True})
    plan = build_model_plan(catalog, config, external_signals=signals)
    if plan is None:
        print("Enable more providers")
"""

from .balancing import MAX_SWAP_SCORE_LOSS, rebalance_for_subscription_mode, rescue_unused_providers
from .planner import build_model_plan
from .precedence import (
    AgentLayerInput,
    ResolvedAgent,
    dedupe,
    resolve_agent_with_precedence,
    terminate_chain,
)
from .selection import (
    finalize_chain_with_tail,
    get_provider_bundle,
    provider_targets,
    select_primary_with_diversity,
    select_top_models_per_provider,
)
from .types import (
    AgentAssignment,
    ModelPlan,
    PlanScoringMeta,
    ResolutionLayer,
    ResolutionProvenance,
    ScoringEngineVersion,
    ShadowDiff,
)

__all__ = [
    # Entry point
    "build_model_plan",
    # Plan types
    "AgentAssignment",
    "ModelPlan",
    "PlanScoringMeta",
    "ResolutionLayer",
    "ResolutionProvenance",
    "ScoringEngineVersion",
    "ShadowDiff",
    # Precedence
    "AgentLayerInput",
    "ResolvedAgent",
    "dedupe",
    "resolve_agent_with_precedence",
    "terminate_chain",
    # Selection
    "finalize_chain_with_tail",
    "get_provider_bundle",
    "provider_targets",
    "select_primary_with_diversity",
    "select_top_models_per_provider",
    # Balancing
    "MAX_SWAP_SCORE_LOSS",
    "rebalance_for_subscription_mode",
    "rescue_unused_providers",
]
