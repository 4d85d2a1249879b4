"""Model Roster - assigns agent roles to the best available models.

Usage:
    from model_roster import build_model_plan, get_config
    from model_roster.metadata import discover_model_catalog
    from model_roster.external_signals import fetch_external_model_signals

    catalog = (await discover_model_catalog()).models
    signals = (await fetch_external_model_signals()).signals
    plan = build_model_plan(catalog, get_config(), external_signals=signals)
    print(plan.agents["oracle"].model)
"""

from model_roster.external_signals import ExternalSignalFetchResult, fetch_external_model_signals
from model_roster.metadata import (
    CatalogDiscoveryResult,
    ExternalSignal,
    ModelRecord,
    ModelStatus,
    discover_model_catalog,
)
from model_roster.planning import (
    AgentAssignment,
    ModelPlan,
    ResolutionLayer,
    build_model_plan,
)
from model_roster.roles import PRIMARY_ASSIGNMENT_ORDER, ROLES
from model_roster.unified_config import PlannerConfig, get_config, reload_config

__version__ = "0.1.0"

__all__ = [
    # Planning
    "build_model_plan",
    "AgentAssignment",
    "ModelPlan",
    "ResolutionLayer",
    # Roles
    "ROLES",
    "PRIMARY_ASSIGNMENT_ORDER",
    # Catalog and signals
    "CatalogDiscoveryResult",
    "ExternalSignal",
    "ExternalSignalFetchResult",
    "ModelRecord",
    "ModelStatus",
    "discover_model_catalog",
    "fetch_external_model_signals",
    # Configuration
    "PlannerConfig",
    "get_config",
    "reload_config",
    # Version
    "__version__",
]
