"""
Routing Configuration Loader.

Loads and validates the atlas_routing.yaml configuration file
using Pydantic models for type-safe access.

Every threshold the engine applies (tier cutoffs, enrichment fan-out,
learning increments) lives here so deployments can tune routing without
code changes.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger(__name__)


# =============================================================================
# Tier 1 Configuration
# =============================================================================


class Tier1Config(BaseModel):
    """Deterministic routing thresholds."""

    confidence_threshold: float = Field(
        default=0.7, ge=0, le=1, description="Minimum specialization score for a Tier 1 hit"
    )
    route_limit: int = Field(default=5, ge=1, description="Ranked specialists returned")
    intent_confidence_floor: float = Field(
        default=0.7, ge=0, le=1, description="Intent confidence that permits Tier 1"
    )
    erratic_confidence_floor: float = Field(
        default=0.4,
        ge=0,
        le=1,
        description="Average confidence below which a specialist needs LLM fallback",
    )
    approval_confidence: float = Field(
        default=0.9, ge=0, le=1, description="Plan confidence at or above which no approval is needed"
    )


# =============================================================================
# Enrichment Configuration
# =============================================================================


class EnrichmentConfig(BaseModel):
    """Fan-out limits for the memory and context enricher."""

    max_priority_agents: int = Field(default=5, ge=1)
    memories_per_agent: int = Field(default=3, ge=0)
    specializations_per_agent: int = Field(default=3, ge=0)
    min_specialization_score: float = Field(default=0.3, ge=0, le=1)
    memory_scan_limit: int = Field(
        default=50, ge=1, description="Recent memories scanned per agent for relevance ranking"
    )
    synergy_partner_threshold: float = Field(default=0.6, ge=0, le=1)
    max_partners: int = Field(default=3, ge=0)


# =============================================================================
# Reasoning Configuration
# =============================================================================


class ReasoningConfig(BaseModel):
    """Prompt assembly and post-reasoning bookkeeping."""

    conversation_turns: int = Field(default=15, ge=0)
    catalog_limit: int = Field(default=50, ge=1)
    memory_agents: int = Field(
        default=3, ge=0, description="Recommended agents that get an interaction memory"
    )
    skill_gained_confidence: float = Field(default=0.8, ge=0, le=1)
    max_tokens: int = Field(default=2048, ge=100)
    temperature: float = Field(default=0.3, ge=0, le=1)


# =============================================================================
# Learning Configuration
# =============================================================================


class LearningConfig(BaseModel):
    """Learning ledger increments and seeds."""

    success_importance: float = Field(default=0.6, ge=0, le=1)
    failure_importance: float = Field(default=0.8, ge=0, le=1)
    synergy_success_step: float = Field(default=0.02, ge=0, le=1)
    synergy_failure_step: float = Field(default=0.01, ge=0, le=1)
    new_synergy_success: float = Field(default=0.55, ge=0, le=1)
    new_synergy_failure: float = Field(default=0.45, ge=0, le=1)
    experience_cap: int = Field(
        default=50, ge=1, description="Task count at which experience saturates"
    )
    specialization_up_threshold: float = Field(default=0.7, ge=0, le=1)
    cas_attempts: int = Field(
        default=3, ge=1, description="Compare-and-swap attempts for contended rows"
    )


# =============================================================================
# Root Configuration
# =============================================================================


class RoutingConfig(BaseModel):
    """Complete routing engine configuration."""

    tier1: Tier1Config = Field(default_factory=Tier1Config)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    reasoning: ReasoningConfig = Field(default_factory=ReasoningConfig)
    learning: LearningConfig = Field(default_factory=LearningConfig)

    @model_validator(mode="after")
    def check_tier_ordering(self) -> "RoutingConfig":
        """Warn when the approval bar sits below the routing bar."""
        if self.tier1.approval_confidence < self.tier1.confidence_threshold:
            logger.warning(
                "tier1.approval_confidence is below tier1.confidence_threshold; "
                "every Tier 1 plan will skip approval"
            )
        return self

    @classmethod
    def from_yaml(cls, path: Path | str) -> "RoutingConfig":
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            logger.warning(f"Config file not found at {path}, using defaults")
            return cls()

        with open(path, "r") as f:
            data = yaml.safe_load(f)

        return cls.model_validate(data or {})


# =============================================================================
# Loader
# =============================================================================

_cached_config: Optional[RoutingConfig] = None


def load_routing_config(
    config_path: Optional[Path | str] = None,
    force_reload: bool = False,
) -> RoutingConfig:
    """
    Load the routing configuration.

    Args:
        config_path: Optional path to config file. If not provided, uses
                     ATLAS_ROUTING_CONFIG or config/atlas_routing.yaml
        force_reload: If True, reload config even if cached

    Returns:
        RoutingConfig instance
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    if config_path is None:
        config_path = os.environ.get("ATLAS_ROUTING_CONFIG")

    if config_path is None:
        project_root = Path(__file__).parent.parent.parent.parent
        config_path = project_root / "config" / "atlas_routing.yaml"

    _cached_config = RoutingConfig.from_yaml(config_path)
    logger.info(f"Loaded routing config from {config_path}")

    return _cached_config
