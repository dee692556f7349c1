from atlas.config.loader import (
    EnrichmentConfig,
    LearningConfig,
    ReasoningConfig,
    RoutingConfig,
    Tier1Config,
    load_routing_config,
)

__all__ = [
    "EnrichmentConfig",
    "LearningConfig",
    "ReasoningConfig",
    "RoutingConfig",
    "Tier1Config",
    "load_routing_config",
]
