"""Tests for role-to-model planning."""

import logging
from collections import Counter

import pytest

from model_roster.metadata.types import ModelStatus
from model_roster.planning import ResolutionLayer, build_model_plan
from model_roster.unified_config import PlannerConfig

ALL_ROLES = ["designer", "explorer", "fixer", "librarian", "oracle", "orchestrator"]

FREE_PINS = {
    "enabled": True,
    "primary": "opencode/glm-4.7-free",
    "secondary": "opencode/gpt-5-nano",
}
CHUTES_PINS = {"primary": "chutes/kimi-k2.5", "secondary": "chutes/minimax-m2.1"}


def planner_config(providers, **kwargs) -> PlannerConfig:
    """Config with the usual free-tier and aggregator pins."""
    return PlannerConfig(
        providers={name: True for name in providers},
        free_models=FREE_PINS,
        chutes_models=CHUTES_PINS,
        **kwargs,
    )


def provider_usage(plan) -> Counter:
    return Counter(a.model.split("/")[0] for a in plan.agents.values())


@pytest.fixture
def mixed_catalog(make_model):
    return [
        make_model("openai/gpt-5.3-codex"),
        make_model("openai/gpt-5.1-codex-mini"),
        make_model("github-copilot/grok-code-fast-1"),
        make_model("zai-coding-plan/glm-4.7"),
        make_model("chutes/kimi-k2.5"),
        make_model("chutes/minimax-m2.1"),
    ]


@pytest.fixture
def matrix_catalog(make_model):
    return [
        make_model("openai/gpt-5.3-codex"),
        make_model("openai/gpt-5.1-codex-mini"),
        make_model("anthropic/claude-opus-4-6"),
        make_model("anthropic/claude-sonnet-4-5"),
        make_model("anthropic/claude-haiku-4-5", reasoning=False),
        make_model("github-copilot/grok-code-fast-1"),
        make_model("zai-coding-plan/glm-4.7"),
        make_model("google/antigravity-gemini-3-pro"),
        make_model("google/antigravity-gemini-3-flash"),
        make_model("chutes/kimi-k2.5"),
        make_model("chutes/minimax-m2.1"),
        make_model("kimi-for-coding/k2p5"),
        make_model("opencode/glm-4.7-free"),
        make_model("opencode/gpt-5-nano"),
        make_model("opencode/big-pickle"),
    ]


@pytest.fixture
def base_config():
    return planner_config(["openai", "github_copilot", "zai_coding_plan", "chutes"])


class TestBuildModelPlan:
    """End-to-end planning behavior."""

    def test_assigns_all_six_roles(self, mixed_catalog, base_config):
        plan = build_model_plan(mixed_catalog, base_config)

        assert plan is not None
        assert sorted(plan.agents) == ALL_ROLES
        assert not plan.agents["oracle"].model.startswith("opencode/")
        assert not plan.agents["orchestrator"].model.startswith("opencode/")
        assert any(m.startswith("openai/") for m in plan.chains["oracle"])
        assert "chutes/kimi-k2.5" in plan.chains["orchestrator"]
        assert "opencode/gpt-5-nano" in plan.chains["explorer"]
        assert plan.chains["fixer"][-1] == "opencode/gpt-5-nano"
        assert plan.provenance["oracle"].winner_layer == ResolutionLayer.DYNAMIC_RECOMMENDATION
        assert plan.scoring.engine_version_applied == "v1"

    def test_chains_start_with_final_model(self, mixed_catalog, base_config):
        plan = build_model_plan(mixed_catalog, base_config)
        for role, assignment in plan.agents.items():
            chain = plan.chains[role]
            assert chain[0] == assignment.model
            assert len(chain) == len(set(chain))
            assert len(chain) <= 10
            assert plan.provenance[role].winner_model == assignment.model

    def test_variants(self, mixed_catalog, base_config):
        plan = build_model_plan(mixed_catalog, base_config)
        assert plan.agents["oracle"].variant == "high"
        assert plan.agents["designer"].variant == "medium"
        assert plan.agents["fixer"].variant == "low"
        assert plan.agents["orchestrator"].variant is None

    def test_shadow_mode_keeps_v1_applied(self, make_model, base_config):
        plan = build_model_plan(
            [
                make_model("openai/gpt-5.3-codex"),
                make_model("chutes/kimi-k2.5"),
                make_model("opencode/gpt-5-nano"),
            ],
            base_config,
            scoring_engine="v2-shadow",
        )

        assert plan is not None
        assert plan.scoring.engine_version_applied == "v1"
        assert plan.scoring.shadow_compared is True
        assert plan.scoring.diffs["oracle"] is not None
        assert sorted(plan.scoring.diffs) == ALL_ROLES

    def test_engine_from_config(self, mixed_catalog):
        config = planner_config(["openai", "chutes"], scoring_engine="v2")
        plan = build_model_plan(mixed_catalog, config)
        assert plan.scoring.engine_version_applied == "v2"
        assert plan.scoring.diffs is None

    def test_balances_provider_usage(self, make_model):
        catalog = [
            make_model("openai/gpt-5.3-codex"),
            make_model("openai/gpt-5.1-codex-mini"),
            make_model("zai-coding-plan/glm-4.7"),
            make_model("zai-coding-plan/glm-4.7-flash"),
            make_model("chutes/moonshotai/Kimi-K2.5-TEE"),
            make_model("chutes/Qwen/Qwen3-Coder-480B-A35B-Instruct-FP8-TEE"),
        ]
        config = planner_config(
            ["openai", "zai_coding_plan", "chutes"], balance_provider_usage=True
        )

        plan = build_model_plan(catalog, config, scoring_engine="v2")

        usage = provider_usage(plan)
        assert usage["openai"] == 2
        assert usage["zai-coding-plan"] == 2
        assert usage["chutes"] == 2

    def test_returns_none_without_candidates(self, make_model):
        config = PlannerConfig(providers={"openai": True})
        assert build_model_plan([make_model("anthropic/claude-opus-4-6")], config) is None
        assert build_model_plan([], config) is None

    def test_deterministic(self, mixed_catalog, base_config):
        first = build_model_plan(mixed_catalog, base_config).to_dict()
        second = build_model_plan(mixed_catalog, base_config).to_dict()
        reordered = build_model_plan(list(reversed(mixed_catalog)), base_config).to_dict()
        assert first == second
        assert first == reordered

    def test_aggregator_qwen_models_are_excluded(self, make_model):
        catalog = [
            make_model("openai/gpt-5.3-codex"),
            make_model("chutes/Qwen/Qwen3-Coder-480B-A35B-Instruct-FP8-TEE"),
        ]
        plan = build_model_plan(catalog, PlannerConfig(providers={"openai": True, "chutes": True}))
        for chain in plan.chains.values():
            assert not any("Qwen" in model for model in chain)

    def test_logs_plan_summary(self, mixed_catalog, base_config, caplog):
        with caplog.at_level(logging.INFO, logger="model_roster.planning.planner"):
            build_model_plan(mixed_catalog, base_config)
        assert "Built model plan for 6 roles" in caplog.text


class TestEligibilityInPlans:
    """Hard floors hold through the whole pipeline."""

    def test_toolcall_roles_never_get_toolless_model(self, make_model):
        catalog = [
            make_model("openai/gpt-5.3-codex", toolcall=False),
            make_model("anthropic/claude-opus-4-6"),
            make_model("anthropic/claude-sonnet-4-5"),
        ]
        plan = build_model_plan(
            catalog, PlannerConfig(providers={"openai": True, "anthropic": True})
        )

        for role in ("orchestrator", "explorer", "librarian", "fixer"):
            assert plan.agents[role].model.startswith("anthropic/")

    def test_deprecated_model_loses_to_active_sibling(self, make_model):
        catalog = [
            make_model("openai/gpt-4-turbo", status=ModelStatus.DEPRECATED),
            make_model("openai/gpt-5.3-codex"),
            make_model("anthropic/claude-opus-4-6"),
        ]
        plan = build_model_plan(
            catalog, PlannerConfig(providers={"openai": True, "anthropic": True})
        )
        assert all(a.model != "openai/gpt-4-turbo" for a in plan.agents.values())

    def test_deprecated_model_used_when_sole_candidate(self, make_model):
        catalog = [make_model("openai/gpt-4-turbo", status=ModelStatus.DEPRECATED)]
        plan = build_model_plan(catalog, PlannerConfig(providers={"openai": True}))
        assert {a.model for a in plan.agents.values()} == {"openai/gpt-4-turbo"}

    @pytest.mark.parametrize("engine", ["v1", "v2"])
    def test_balancing_keeps_toolcall_roles_on_capable_models(self, make_model, engine):
        """An under-target provider only offering a toolless model cannot take tool roles."""
        catalog = [
            make_model("openai/gpt-5.3-codex", context_limit=100_000),
            make_model("openai/gpt-5.1-codex-mini", context_limit=100_000),
            make_model("anthropic/claude-opus-4-6", toolcall=False, context_limit=1_000_000),
        ]
        config = PlannerConfig(
            providers={"openai": True, "anthropic": True},
            balance_provider_usage=True,
            scoring_engine=engine,
        )

        plan = build_model_plan(catalog, config)

        for role in ("orchestrator", "explorer", "librarian", "fixer"):
            assert plan.agents[role].model.startswith("openai/"), role
        assert "anthropic" in provider_usage(plan)


class TestProviderDiversity:
    """Spread of roles across providers."""

    PROVIDERS = [
        "openai",
        "anthropic",
        "github-copilot",
        "zai-coding-plan",
        "kimi-for-coding",
        "google",
    ]

    def test_six_providers_each_get_a_role(self, make_model):
        catalog = []
        for provider in self.PROVIDERS:
            catalog.append(make_model(f"{provider}/reasoner-model"))
            catalog.append(make_model(f"{provider}/quick-mini", reasoning=False))
        config = PlannerConfig(
            providers={
                "openai": True,
                "anthropic": True,
                "github_copilot": True,
                "zai_coding_plan": True,
                "kimi_for_coding": True,
                "google": True,
            }
        )

        plan = build_model_plan(catalog, config)

        usage = provider_usage(plan)
        assert set(usage) == set(self.PROVIDERS)
        assert max(usage.values()) <= 2

    def test_rescue_gives_unused_provider_a_role(self, make_model):
        """A weak but enabled paid provider still receives one role."""
        catalog = [
            make_model("openai/gpt-5.3-codex", context_limit=400000, output_limit=128000),
            make_model("openai/gpt-5.1-codex-mini"),
            make_model("zai-coding-plan/weak-model", reasoning=False, context_limit=16000),
        ]
        plan = build_model_plan(
            catalog, PlannerConfig(providers={"openai": True, "zai_coding_plan": True})
        )
        usage = provider_usage(plan)
        assert usage["zai-coding-plan"] >= 1
        rescued = [
            role
            for role, assignment in plan.agents.items()
            if assignment.model == "zai-coding-plan/weak-model"
        ]
        assert plan.provenance[rescued[0]].winner_layer in (
            ResolutionLayer.DYNAMIC_RECOMMENDATION,
            ResolutionLayer.PROVIDER_FALLBACK_POLICY,
        )

    def test_free_only_plan(self, make_model):
        catalog = [make_model("opencode/glm-4.7-free"), make_model("opencode/gpt-5-nano")]
        plan = build_model_plan(catalog, PlannerConfig(free_models={"enabled": True}))

        assert plan is not None
        for role, assignment in plan.agents.items():
            assert assignment.model.startswith("opencode/")
            assert plan.chains[role][-1] == "opencode/big-pickle"

    def test_free_models_are_not_primaries_with_paid_access(self, make_model, base_config):
        catalog = [
            make_model("openai/gpt-5.3-codex"),
            make_model("opencode/gpt-5-nano", context_limit=1_000_000),
        ]
        plan = build_model_plan(catalog, base_config)
        assert plan.agents["oracle"].model == "openai/gpt-5.3-codex"


class TestUserDecisions:
    """Overrides, manual plans and pins take precedence and stay fixed."""

    def test_override_and_manual_plan_win(self, mixed_catalog):
        config = planner_config(
            ["openai", "github_copilot", "zai_coding_plan", "chutes"],
            balance_provider_usage=True,
            overrides={"oracle": "anthropic/claude-opus-4-6"},
            manual_plans={
                "fixer": {
                    "primary": "openai/gpt-5.1-codex-mini",
                    "fallback1": "zai-coding-plan/glm-4.7",
                }
            },
        )

        plan = build_model_plan(mixed_catalog, config)

        assert plan.agents["oracle"].model == "anthropic/claude-opus-4-6"
        assert plan.provenance["oracle"].winner_layer == ResolutionLayer.DIRECT_OVERRIDE
        assert plan.agents["fixer"].model == "openai/gpt-5.1-codex-mini"
        assert plan.chains["fixer"][:2] == ["openai/gpt-5.1-codex-mini", "zai-coding-plan/glm-4.7"]
        assert plan.provenance["fixer"].winner_layer == ResolutionLayer.MANUAL_USER_PLAN

    def test_pinned_model(self, mixed_catalog, base_config):
        config = base_config.model_copy(
            update={"pinned_models": {"designer": "zai-coding-plan/glm-4.7"}}
        )
        plan = build_model_plan(mixed_catalog, config)
        assert plan.agents["designer"].model == "zai-coding-plan/glm-4.7"
        assert plan.provenance["designer"].winner_layer == ResolutionLayer.PINNED_MODEL

    def test_aggregator_roles_use_role_pin(self, matrix_catalog):
        """Aggregator assignments always land on the role's aggregator pin."""
        plan = build_model_plan(matrix_catalog, planner_config(["openai", "anthropic", "chutes"]))

        chutes_roles = [r for r, a in plan.agents.items() if a.model.startswith("chutes/")]
        assert chutes_roles
        for role in chutes_roles:
            expected = (
                CHUTES_PINS["secondary"]
                if role in ("explorer", "librarian", "fixer")
                else CHUTES_PINS["primary"]
            )
            assert plan.agents[role].model == expected


class TestPlanSerialization:
    def test_to_dict(self, mixed_catalog, base_config):
        data = build_model_plan(mixed_catalog, base_config, scoring_engine="v2-shadow").to_dict()

        assert data["agents"]["orchestrator"] == {"model": data["chains"]["orchestrator"][0]}
        assert data["agents"]["oracle"]["variant"] == "high"
        assert data["provenance"]["oracle"]["winner_layer"] in {layer.value for layer in ResolutionLayer}
        assert data["scoring"]["shadow_compared"] is True
        assert set(data["scoring"]["diffs"]["oracle"]) == {"v1_top_model", "v2_top_model"}


MATRIX_SCENARIOS = [
    pytest.param(
        ["openai", "anthropic", "chutes"],
        {
            "oracle": "openai/gpt-5.3-codex",
            "orchestrator": "openai/gpt-5.3-codex",
            "fixer": "chutes/minimax-m2.1",
            "designer": "chutes/kimi-k2.5",
            "librarian": "anthropic/claude-opus-4-6",
            "explorer": "chutes/minimax-m2.1",
        },
        {
            "oracle": "openai/gpt-5.3-codex",
            "orchestrator": "openai/gpt-5.3-codex",
            "fixer": "chutes/minimax-m2.1",
            "designer": "chutes/kimi-k2.5",
            "librarian": "anthropic/claude-opus-4-6",
            "explorer": "chutes/minimax-m2.1",
        },
        id="openai-anthropic-chutes",
    ),
    pytest.param(
        ["openai", "github_copilot", "zai_coding_plan", "google"],
        {
            "oracle": "openai/gpt-5.3-codex",
            "orchestrator": "openai/gpt-5.3-codex",
            "fixer": "github-copilot/grok-code-fast-1",
            "designer": "google/antigravity-gemini-3-pro",
            "librarian": "zai-coding-plan/glm-4.7",
            "explorer": "google/antigravity-gemini-3-flash",
        },
        {
            "oracle": "openai/gpt-5.3-codex",
            "orchestrator": "openai/gpt-5.3-codex",
            "fixer": "github-copilot/grok-code-fast-1",
            "designer": "zai-coding-plan/glm-4.7",
            "librarian": "google/antigravity-gemini-3-pro",
            "explorer": "google/antigravity-gemini-3-flash",
        },
        id="openai-copilot-zai-google",
    ),
    pytest.param(
        ["kimi_for_coding", "google", "chutes"],
        {
            "oracle": "google/antigravity-gemini-3-pro",
            "orchestrator": "chutes/kimi-k2.5",
            "fixer": "google/antigravity-gemini-3-pro",
            "designer": "chutes/kimi-k2.5",
            "librarian": "kimi-for-coding/k2p5",
            "explorer": "google/antigravity-gemini-3-flash",
        },
        {
            "oracle": "google/antigravity-gemini-3-pro",
            "orchestrator": "chutes/kimi-k2.5",
            "fixer": "google/antigravity-gemini-3-pro",
            "designer": "chutes/kimi-k2.5",
            "librarian": "kimi-for-coding/k2p5",
            "explorer": "google/antigravity-gemini-3-flash",
        },
        id="kimi-google-chutes",
    ),
    pytest.param(
        ["anthropic", "github_copilot"],
        {
            "oracle": "anthropic/claude-opus-4-6",
            "orchestrator": "github-copilot/grok-code-fast-1",
            "fixer": "github-copilot/grok-code-fast-1",
            "designer": "anthropic/claude-opus-4-6",
            "librarian": "github-copilot/grok-code-fast-1",
            "explorer": "github-copilot/grok-code-fast-1",
        },
        {
            "oracle": "anthropic/claude-opus-4-6",
            "orchestrator": "github-copilot/grok-code-fast-1",
            "fixer": "github-copilot/grok-code-fast-1",
            "designer": "anthropic/claude-opus-4-6",
            "librarian": "github-copilot/grok-code-fast-1",
            "explorer": "github-copilot/grok-code-fast-1",
        },
        id="anthropic-copilot",
    ),
    pytest.param(
        ["openai", "kimi_for_coding", "zai_coding_plan", "chutes"],
        {
            "oracle": "openai/gpt-5.3-codex",
            "orchestrator": "openai/gpt-5.3-codex",
            "fixer": "chutes/minimax-m2.1",
            "designer": "chutes/kimi-k2.5",
            "librarian": "zai-coding-plan/glm-4.7",
            "explorer": "chutes/minimax-m2.1",
        },
        {
            "oracle": "openai/gpt-5.3-codex",
            "orchestrator": "openai/gpt-5.3-codex",
            "fixer": "chutes/minimax-m2.1",
            "designer": "chutes/kimi-k2.5",
            "librarian": "zai-coding-plan/glm-4.7",
            "explorer": "chutes/minimax-m2.1",
        },
        id="openai-kimi-zai-chutes",
    ),
    pytest.param(
        ["google", "anthropic", "chutes"],
        {
            "oracle": "google/antigravity-gemini-3-pro",
            "orchestrator": "chutes/kimi-k2.5",
            "fixer": "google/antigravity-gemini-3-pro",
            "designer": "anthropic/claude-opus-4-6",
            "librarian": "chutes/minimax-m2.1",
            "explorer": "google/antigravity-gemini-3-flash",
        },
        {
            "oracle": "google/antigravity-gemini-3-pro",
            "orchestrator": "chutes/kimi-k2.5",
            "fixer": "google/antigravity-gemini-3-pro",
            "designer": "anthropic/claude-opus-4-6",
            "librarian": "chutes/minimax-m2.1",
            "explorer": "google/antigravity-gemini-3-flash",
        },
        id="google-anthropic-chutes",
    ),
]


@pytest.mark.integration
class TestProviderMatrix:
    """Expected assignments for common provider combinations."""

    @pytest.mark.parametrize("providers,expected_v1,expected_v2", MATRIX_SCENARIOS)
    def test_scenario(self, matrix_catalog, providers, expected_v1, expected_v2):
        config = planner_config(providers)

        v1 = build_model_plan(matrix_catalog, config, scoring_engine="v1")
        shadow = build_model_plan(matrix_catalog, config, scoring_engine="v2-shadow")
        v2 = build_model_plan(matrix_catalog, config, scoring_engine="v2")

        assert v1 is not None and v2 is not None and shadow is not None
        assert {role: a.model for role, a in v1.agents.items()} == expected_v1
        assert {role: a.model for role, a in v2.agents.items()} == expected_v2

        assert shadow.agents == v1.agents
        assert shadow.scoring.engine_version_applied == "v1"
        assert shadow.scoring.shadow_compared is True
