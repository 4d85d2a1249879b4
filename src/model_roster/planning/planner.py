"""Role-to-model planning entry point.

build_model_plan() turns a discovered catalog, the planner configuration and
optional external signals into one ModelPlan:

1. Filter the catalog to enabled providers (plus synthetic pinned models)
2. Reduce each provider to its two strongest models
3. For each role in PRIMARY_ASSIGNMENT_ORDER: pick a diversity-aware
   primary, build the fallback chain, resolve precedence layers
4. Rescue unused paid providers, then optionally balance provider usage

All mutable state (usage counts, rank cache, shadow diffs) lives in a
_PlanningRun owned by a single call, so the function is safe to call
repeatedly and concurrently.
"""

import logging
import re
from collections import Counter
from typing import Dict, List, Optional

from ..config import AGGREGATOR_PROVIDER, DEFAULT_FREE_MODEL, FREE_PROVIDER
from ..metadata.recency import get_version_recency_map
from ..metadata.types import ModelRecord, SignalMap, provider_of
from ..roles import PRIMARY_ASSIGNMENT_ORDER, ROLE_VARIANT, ROLES
from ..scoring.engine import rank_models_v2
from ..scoring.heuristic import rank_models_v1
from ..unified_config import PlannerConfig
from .balancing import WorkingAssignment, rebalance_for_subscription_mode, rescue_unused_providers
from .precedence import AgentLayerInput, dedupe, resolve_agent_with_precedence, terminate_chain
from .selection import (
    FREE_BIASED_PROVIDERS,
    ensure_synthetic_model,
    finalize_chain_with_tail,
    get_provider_bundle,
    provider_targets,
    select_primary_with_diversity,
    select_top_models_per_provider,
)
from .types import (
    USER_LAYERS,
    AgentAssignment,
    ModelPlan,
    PlanScoringMeta,
    ResolutionLayer,
    ResolutionProvenance,
    ScoringEngineVersion,
    ShadowDiff,
)

logger = logging.getLogger(__name__)

# Aggregator-hosted qwen models are never planned
_EXCLUDED_AGGREGATOR_MODELS = re.compile(r"qwen", re.IGNORECASE)


class _PlanningRun:
    """State of one build_model_plan() call."""

    def __init__(
        self,
        catalog: List[ModelRecord],
        config: PlannerConfig,
        signals: Optional[SignalMap],
        engine_version: ScoringEngineVersion,
    ):
        self.config = config
        self.signals = signals
        self.engine_version = engine_version
        self.has_paid_provider = config.providers.has_paid_provider

        with_pins = list(catalog)
        for model_id in config.get_selected_models():
            with_pins = ensure_synthetic_model(with_pins, model_id)

        enabled = set(config.get_enabled_providers())
        self.universe = [
            model
            for model in with_pins
            if model.provider_id in enabled
            and not (
                model.provider_id == AGGREGATOR_PROVIDER
                and _EXCLUDED_AGGREGATOR_MODELS.search(model.full_id)
            )
        ]
        self.version_recency = get_version_recency_map(self.universe)
        self.candidates = select_top_models_per_provider(
            self.universe, engine_version, signals, self.version_recency
        )

        self.paid_providers = sorted(
            dedupe(m.provider_id for m in self.candidates if m.provider_id != FREE_PROVIDER)
        )
        self.targets = provider_targets(self.paid_providers)

        self.usage: Counter = Counter()
        self.assignments: Dict[str, WorkingAssignment] = {}
        self.shadow_diffs: Dict[str, ShadowDiff] = {}
        self._rank_cache: Dict[str, List[ModelRecord]] = {}

    def ranked_models(self, role: str) -> List[ModelRecord]:
        """Candidates ranked for a role by the applied engine (cached)."""
        cached = self._rank_cache.get(role)
        if cached is not None:
            return cached

        ranked_v1 = rank_models_v1(self.candidates, role, self.signals)
        ranked = ranked_v1
        if self.engine_version != "v1":
            ranked_v2 = [c.model for c in rank_models_v2(self.candidates, role, self.signals)]
            if self.engine_version == "v2-shadow":
                self.shadow_diffs[role] = ShadowDiff(
                    v1_top_model=ranked_v1[0].full_id if ranked_v1 else None,
                    v2_top_model=ranked_v2[0].full_id if ranked_v2 else None,
                )
            else:
                ranked = ranked_v2

        self._rank_cache[role] = ranked
        return ranked

    def pinned_model_for_provider(self, role: str, provider_id: str) -> Optional[str]:
        return self.config.get_pinned_model_for_provider(role, provider_id)

    def _dynamic_chain(self, role: str, primary: ModelRecord, ranked: List[ModelRecord]) -> List[str]:
        per_provider: List[str] = []
        for provider_id in dedupe(m.provider_id for m in ranked):
            provider_models = [m for m in ranked if m.provider_id == provider_id]
            pinned = self.pinned_model_for_provider(role, provider_id)
            if pinned and any(m.full_id == pinned for m in provider_models):
                per_provider.append(pinned)
            else:
                per_provider.extend(
                    get_provider_bundle(provider_models, role, self.signals, self.version_recency)
                )

        free_prefix = f"{FREE_PROVIDER}/"
        non_free = [model for model in per_provider if not model.startswith(free_prefix)]
        free = [model for model in per_provider if model.startswith(free_prefix)]

        selected_free = self.config.get_selected_free_model(role)
        selected_chutes = self.config.get_selected_chutes_model(role)
        chain = dedupe([primary.full_id, *non_free, selected_chutes, selected_free, *free])

        tail = selected_free or (free[0] if free else None)
        if tail is None:
            tail = next((m.full_id for m in ranked if m.full_id.startswith(free_prefix)), None)
        return finalize_chain_with_tail(chain, tail)

    def assign(self, index: int, role: str) -> None:
        """Select, chain and resolve one role."""
        ranked = self.ranked_models(role)
        if not ranked:
            return

        pool = ranked
        if self.has_paid_provider:
            pool = [m for m in ranked if m.provider_id not in FREE_BIASED_PROVIDERS] or ranked

        primary = select_primary_with_diversity(
            pool,
            role,
            self.usage,
            self.targets,
            len(PRIMARY_ASSIGNMENT_ORDER) - index,
            self.signals,
            self.version_recency,
        ) or ranked[0]

        selected_free = self.config.get_selected_free_model(role)
        selected_chutes = self.config.get_selected_chutes_model(role)
        manual_plan = self.config.manual_plans.get(role)
        system_default = [selected_free or DEFAULT_FREE_MODEL]

        resolved = resolve_agent_with_precedence(
            AgentLayerInput(
                agent_name=role,
                direct_override=self.config.overrides.get(role),
                manual_user_plan=manual_plan.models() if manual_plan else [],
                pinned_model=self.config.pinned_models.get(role),
                dynamic_recommendation=self._dynamic_chain(role, primary, ranked),
                provider_fallback_policy=dedupe([selected_chutes, selected_free]),
                system_default=system_default,
            )
        )

        model = resolved.model
        chain = resolved.chain
        layer = resolved.provenance.winner_layer
        locked = layer in USER_LAYERS

        if not locked:
            forced = None
            if model.startswith(f"{FREE_PROVIDER}/") and selected_free:
                forced = selected_free
            elif model.startswith(f"{AGGREGATOR_PROVIDER}/") and selected_chutes:
                forced = selected_chutes
            if forced:
                model = forced
                chain = terminate_chain([forced] + chain, system_default)
                layer = ResolutionLayer.MANUAL_USER_PLAN

        logger.debug(
            f"{role}: primary {primary.full_id}, final {model} via {layer.value}, "
            f"chain {chain}"
        )
        self.assignments[role] = WorkingAssignment(
            model=model,
            chain=chain,
            winner_layer=layer,
            system_default=system_default,
            locked=locked,
        )
        self.usage[self.assignments[role].provider_id] += 1

    def run(self) -> Optional[ModelPlan]:
        if not self.candidates:
            logger.info("No candidate models for the enabled providers; no plan built")
            return None

        for index, role in enumerate(PRIMARY_ASSIGNMENT_ORDER):
            self.assign(index, role)

        if self.has_paid_provider:
            rescued = rescue_unused_providers(
                self.assignments,
                self.paid_providers,
                self.usage,
                self.ranked_models,
                self.pinned_model_for_provider,
                self.signals,
                self.version_recency,
            )
            if rescued:
                logger.debug(f"Rescued unused providers: {rescued}")

        if self.config.balance_provider_usage and self.has_paid_provider:
            swaps = rebalance_for_subscription_mode(
                self.assignments,
                self.paid_providers,
                self.ranked_models,
                self.pinned_model_for_provider,
                self.targets,
                self.engine_version,
                self.signals,
                self.version_recency,
            )
            if swaps:
                logger.debug(f"Balancer applied {swaps} swap(s)")

        if not self.assignments:
            return None
        return self._to_plan()

    def _to_plan(self) -> ModelPlan:
        roles = [role for role in ROLES if role in self.assignments]
        shadow = self.engine_version == "v2-shadow"
        plan = ModelPlan(
            agents={
                role: AgentAssignment(
                    model=self.assignments[role].model, variant=ROLE_VARIANT[role]
                )
                for role in roles
            },
            chains={role: list(self.assignments[role].chain) for role in roles},
            provenance={
                role: ResolutionProvenance(
                    winner_layer=self.assignments[role].winner_layer,
                    winner_model=self.assignments[role].model,
                )
                for role in roles
            },
            scoring=PlanScoringMeta(
                engine_version_applied="v2" if self.engine_version == "v2" else "v1",
                shadow_compared=shadow,
                diffs=dict(self.shadow_diffs) if shadow else None,
            ),
        )
        providers = Counter(provider_of(a.model) for a in plan.agents.values())
        logger.info(
            f"Built model plan for {len(roles)} roles "
            f"(engine {self.engine_version}, providers {dict(providers)})"
        )
        return plan


def build_model_plan(
    catalog: List[ModelRecord],
    config: PlannerConfig,
    external_signals: Optional[SignalMap] = None,
    scoring_engine: Optional[ScoringEngineVersion] = None,
) -> Optional[ModelPlan]:
    """Assign every role a model, a fallback chain and a provenance record.

    Args:
        catalog: Discovered models
        config: Provider access, pins, user decisions and engine settings
        external_signals: Optional signal map keyed by normalized alias
        scoring_engine: Overrides config.scoring_engine when given

    Returns:
        ModelPlan, or None when no enabled provider offers a candidate
        (the caller should ask for more provider access)

    Example:
        >>> plan = build_model_plan(catalog, PlannerConfig(providers={"openai": True}))
        >>> plan.agents["oracle"].model
        'openai/gpt-5.3-codex'
    """
    engine_version = scoring_engine or config.scoring_engine
    return _PlanningRun(catalog, config, external_signals, engine_version).run()


__all__ = ["build_model_plan"]
