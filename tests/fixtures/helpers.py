"""Shared builders for Atlas tests.

Agent ids are fixed UUIDs so tests can assert on canonical pair ordering
and interaction-memory eligibility.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from atlas.config.loader import RoutingConfig
from atlas.orchestrator.engine import HandlerContext
from tests.fixtures.mocks.databases import MockSupabaseClient
from tests.fixtures.mocks.llm import MockCompletionService

SCRIBE_ID = "11111111-1111-4111-8111-111111111111"
HERALD_ID = "22222222-2222-4222-8222-222222222222"
LEDGER_ID = "33333333-3333-4333-8333-333333333333"
SLEEPER_ID = "44444444-4444-4444-8444-444444444444"
USER_ID = "99999999-9999-4999-8999-999999999999"


def agent_row(agent_id: str, name: str, **overrides: Any) -> Dict[str, Any]:
    row = {
        "id": agent_id,
        "name": name,
        "sector": "communications",
        "description": f"{name} agent",
        "capabilities": ["writing"],
        "status": "ACTIVE",
        "total_tasks_completed": 10,
        "success_rate": 0.8,
        "specialization_level": "apprentice",
        "learning_velocity": 0.5,
        "task_specializations": {},
        "preferred_task_types": [],
    }
    row.update(overrides)
    return row


def score_row(agent_id: str, task_type: str, score: float, **overrides: Any) -> Dict[str, Any]:
    row = {
        "agent_id": agent_id,
        "task_type": task_type,
        "specialization_score": score,
        "success_count": 8,
        "failure_count": 2,
        "total_execution_time_ms": 1000,
        "avg_confidence": 0.8,
    }
    row.update(overrides)
    return row


def default_agents() -> List[Dict[str, Any]]:
    return [
        agent_row(SCRIBE_ID, "Scribe", success_rate=0.9),
        agent_row(HERALD_ID, "Herald", success_rate=0.7),
        agent_row(LEDGER_ID, "Ledger", sector="finance", success_rate=0.6),
        agent_row(SLEEPER_ID, "Sleeper", status="DORMANT", success_rate=0.95),
    ]


def plan_reply(agents: Optional[List[Dict[str, Any]]] = None, **fields: Any) -> str:
    """A model reply wrapping a plan JSON object in prose."""
    plan = {
        "recommended_agents": agents
        if agents is not None
        else [
            {
                "agent_id": SCRIBE_ID,
                "agent_name": "Scribe",
                "role": "Drafts the reply",
                "confidence": 0.85,
                "requires_approval": True,
                "reasoning": "Strong drafting history",
                "specialization_match": "high",
            }
        ],
        "orchestration_plan": "Scribe drafts, user approves",
        "task_type": "communications_draft",
        "estimated_duration": "5 minutes",
        "learning_opportunity": "Tone matching",
    }
    plan.update(fields)
    return "Here is the plan:\n```json\n" + json.dumps(plan) + "\n```\nLet me know."


def make_context(
    client: Optional[MockSupabaseClient] = None,
    completion: Optional[MockCompletionService] = None,
    config: Optional[RoutingConfig] = None,
) -> HandlerContext:
    return HandlerContext.from_client(
        client if client is not None else MockSupabaseClient(),
        completion=completion or MockCompletionService(plan_reply()),
        config=config or RoutingConfig(),
    )
