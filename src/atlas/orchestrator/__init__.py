"""
Atlas routing engine.

Three-tier routing over a learning store:
- Tier 1: deterministic lookup of proven specialists
- Tier 2/3: completion-service reasoning grounded in memory and specializations
- Learning ledger: outcomes feed back into specialization scores and synergy
"""

from atlas.orchestrator.deferred import DeferredWrite, run_deferred
from atlas.orchestrator.engine import HandlerContext, HandlerResult, orchestrate
from atlas.orchestrator.handlers import dispatch
from atlas.orchestrator.intent_classifier import IntentClassifier, classify_intent
from atlas.orchestrator.plan_parser import extract_first_json_object, parse_plan

__all__ = [
    "DeferredWrite",
    "HandlerContext",
    "HandlerResult",
    "IntentClassifier",
    "classify_intent",
    "dispatch",
    "extract_first_json_object",
    "orchestrate",
    "parse_plan",
    "run_deferred",
]
