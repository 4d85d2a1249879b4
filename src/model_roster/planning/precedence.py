"""Six-layer precedence resolver.

Layers, highest priority first:
1. Direct platform override (single model)
2. Manual user plan (ordered list)
3. Pinned model (single model)
4. Dynamic recommendation (chain built by the selector)
5. Provider fallback policy (explicit provider pins)
6. System default

The first non-empty layer wins and its first model is the role's final
model. Scores are never compared across layers. The exposed chain is the
deduplicated concatenation of the winning layer and every layer below it,
terminated by the system default.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from ..config import DEFAULT_FREE_MODEL, MAX_CHAIN_LENGTH
from .types import ResolutionLayer, ResolutionProvenance


@dataclass
class AgentLayerInput:
    """Everything the resolver knows about one role."""

    agent_name: str
    system_default: List[str]
    direct_override: Optional[str] = None
    manual_user_plan: List[str] = field(default_factory=list)
    pinned_model: Optional[str] = None
    dynamic_recommendation: List[str] = field(default_factory=list)
    provider_fallback_policy: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ResolvedAgent:
    """Resolver output for one role."""

    model: str
    chain: List[str]
    provenance: ResolutionProvenance


def dedupe(models: Iterable[Optional[str]]) -> List[str]:
    """Drop empty entries and repeats, keeping first occurrences in order."""
    seen = set()
    result = []
    for model in models:
        if not model or model in seen:
            continue
        seen.add(model)
        result.append(model)
    return result


def terminate_chain(
    models: Sequence[Optional[str]],
    system_default: Sequence[str],
    limit: int = MAX_CHAIN_LENGTH,
) -> List[str]:
    """Deduplicate, cap and move the system default to the end of a chain.

    When the chain starts with a system default model, that model is the
    role's final model and keeps its place.
    """
    defaults = dedupe(system_default) or [DEFAULT_FREE_MODEL]
    merged = dedupe(list(models) + defaults)
    if merged[0] in defaults:
        return merged[:limit]
    head = [model for model in merged if model not in defaults]
    return head[: max(limit - len(defaults), 1)] + defaults[:limit]


def _layer_order(layer_input: AgentLayerInput) -> List[Tuple[ResolutionLayer, List[str]]]:
    return [
        (
            ResolutionLayer.DIRECT_OVERRIDE,
            [layer_input.direct_override] if layer_input.direct_override else [],
        ),
        (ResolutionLayer.MANUAL_USER_PLAN, dedupe(layer_input.manual_user_plan)),
        (
            ResolutionLayer.PINNED_MODEL,
            [layer_input.pinned_model] if layer_input.pinned_model else [],
        ),
        (ResolutionLayer.DYNAMIC_RECOMMENDATION, dedupe(layer_input.dynamic_recommendation)),
        (ResolutionLayer.PROVIDER_FALLBACK_POLICY, dedupe(layer_input.provider_fallback_policy)),
        (ResolutionLayer.SYSTEM_DEFAULT, dedupe(layer_input.system_default)),
    ]


def resolve_agent_with_precedence(layer_input: AgentLayerInput) -> ResolvedAgent:
    """Resolve one role's final model, chain and provenance.

    Args:
        layer_input: Candidate lists for every layer

    Returns:
        ResolvedAgent; the system default layer wins when every other layer
        is empty

    Example:
        >>> resolved = resolve_agent_with_precedence(
        ...     AgentLayerInput(
        ...         agent_name="oracle",
        ...         direct_override="anthropic/claude-opus-4-6",
        ...         dynamic_recommendation=["openai/gpt-5.3-codex"],
        ...         system_default=["opencode/big-pickle"],
        ...     )
        ... )
        >>> resolved.model
        'anthropic/claude-opus-4-6'
    """
    layers = _layer_order(layer_input)
    winner_index = next(
        (index for index, (_, models) in enumerate(layers) if models),
        len(layers) - 1,
    )
    winner_layer = layers[winner_index][0]

    below = [model for _, models in layers[winner_index:] for model in models]
    chain = terminate_chain(below, layer_input.system_default)
    model = chain[0]

    return ResolvedAgent(
        model=model,
        chain=chain,
        provenance=ResolutionProvenance(winner_layer=winner_layer, winner_model=model),
    )


__all__ = [
    "AgentLayerInput",
    "ResolvedAgent",
    "dedupe",
    "resolve_agent_with_precedence",
    "terminate_chain",
]
