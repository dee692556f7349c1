"""
Learning Ledger.

Records outcomes and turns them into the signals routing learns from:

- Performance records (append-only) and the memory derived from each one
- Specialization recalculation for the (agent, task type) row
- Pairwise relationship synergy after joint tasks
- Interaction memories and skill-gained events after Tier 3 plans

Row updates use compare-and-swap on a ``version`` column and are retried a
bounded number of times. Client-supplied ids (``recordId``, ``interactionId``)
make retries of the same outcome no-ops.
"""

import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from atlas.api.errors import DatabaseError, OrchestratorError
from atlas.config.loader import LearningConfig, ReasoningConfig
from atlas.models.entities import (
    LearningEvent,
    LearningEventType,
    Memory,
    MemoryType,
    PerformanceRecord,
    Relationship,
    SpecializationLevel,
    TaskScore,
    clamp_unit,
)
from atlas.models.orchestration import OrchestrationPlan
from atlas.orchestrator.deferred import DeferredWrite
from atlas.repositories.agents import AgentRepository
from atlas.repositories.base import is_unique_violation
from atlas.repositories.learning_events import LearningEventRepository
from atlas.repositories.memory import MemoryRepository
from atlas.repositories.performance import PerformanceRepository
from atlas.repositories.relationships import RelationshipRepository, canonical_pair
from atlas.repositories.task_scores import TaskScoreRepository

logger = logging.getLogger(__name__)

# Namespace for memory ids derived from client-supplied record ids
MEMORY_NAMESPACE = uuid.UUID("5b1f7e0c-6a3d-4c52-9d0e-0f3c2a7b9e11")

_AGENT_ID_RE = re.compile(r"^[0-9a-f-]{36}$", re.IGNORECASE)

PREFERRED_SCORE = 0.6
MAX_PREFERRED = 5
PROFILE_SCAN_LIMIT = 100


def is_agent_id(value: Optional[str]) -> bool:
    """True for strings shaped like a UUID."""
    return bool(value and _AGENT_ID_RE.match(value))


def specialization_score(
    success_count: int,
    failure_count: int,
    avg_confidence: float,
    learning_velocity: float = 0.5,
    experience_cap: int = 50,
) -> float:
    """
    Competence estimate for one (agent, task type) pair.

    Weighted blend of success rate (0.4), experience saturating at
    ``experience_cap`` tasks (0.3), average confidence (0.2) and a neutral
    satisfaction term (0.1), boosted by up to 20% for fast learners.
    """
    total = success_count + failure_count
    if total == 0:
        return 0.0

    blend = (
        (success_count / total) * 0.4
        + min(1.0, total / experience_cap) * 0.3
        + avg_confidence * 0.2
        + 0.5 * 0.1
    )
    return clamp_unit(min(1.0, blend * (1 + learning_velocity * 0.2)))


def performance_memory_content(record: PerformanceRecord) -> str:
    description = record.task_description or "task"
    if record.success:
        confidence = record.confidence_score if record.confidence_score is not None else "N/A"
        return f"Successfully completed {record.task_type} task: {description}. Confidence: {confidence}"
    return f"Failed {record.task_type} task: {description}. Error: {record.error_type or 'unknown'}"


@dataclass
class RecordOutcome:
    """Result of recording one performance outcome."""

    performance: PerformanceRecord
    memory: Optional[Memory] = None
    duplicate: bool = False
    deferred: List[DeferredWrite] = field(default_factory=list)


@dataclass
class RelationshipOutcome:
    relationship: Relationship
    created: bool = False
    duplicate: bool = False


class LearningLedger:
    """Outcome recorder and learning-signal writer."""

    def __init__(
        self,
        performance: PerformanceRepository,
        memories: MemoryRepository,
        task_scores: TaskScoreRepository,
        relationships: RelationshipRepository,
        events: LearningEventRepository,
        agents: AgentRepository,
        config: Optional[LearningConfig] = None,
        reasoning_config: Optional[ReasoningConfig] = None,
    ):
        self.performance = performance
        self.memories = memories
        self.task_scores = task_scores
        self.relationships = relationships
        self.events = events
        self.agents = agents
        self.config = config or LearningConfig()
        self.reasoning_config = reasoning_config or ReasoningConfig()

    # =========================================================================
    # Performance
    # =========================================================================

    async def record_performance(self, record: PerformanceRecord) -> RecordOutcome:
        """
        Append a performance record and derive its memory.

        The specialization recalculation is returned as a deferred write.
        A retried record (same id) is reported as a duplicate and does not
        schedule a second recalculation. The memory is best-effort: if it
        cannot be stored the outcome carries ``memory=None``.

        Raises:
            DatabaseError: If the performance record cannot be stored
        """
        stored = await self.performance.append(record)
        duplicate = stored is None
        if duplicate:
            logger.info(f"Performance record {record.id} already recorded; skipping recalculation")
            stored = record

        memory = Memory(
            id=str(uuid.uuid5(MEMORY_NAMESPACE, record.id)) if record.id else None,
            agent_id=record.agent_id,
            user_id=record.user_id,
            memory_type=(MemoryType.SUCCESS if record.success else MemoryType.ERROR).value,
            content=performance_memory_content(record),
            context={"task_type": record.task_type, "confidence": record.confidence_score},
            importance_score=(
                self.config.success_importance if record.success else self.config.failure_importance
            ),
        )
        try:
            saved_memory = await self.memories.remember(memory)
        except DatabaseError as e:
            logger.warning(
                f"Memory for performance record of agent {record.agent_id} not stored: {e}",
                extra={"agent_id": record.agent_id, "task_type": record.task_type},
            )
            saved_memory = None
            memory = None

        deferred = []
        if not duplicate:
            deferred.append(
                DeferredWrite(
                    name="recalculate_specialization",
                    func=lambda: self.recalculate_specialization(stored),
                    details={"agent_id": record.agent_id, "task_type": record.task_type},
                )
            )

        logger.info(
            f"Recorded {'success' if record.success else 'failure'} for agent "
            f"{record.agent_id} on '{record.task_type}'"
        )
        return RecordOutcome(
            performance=stored,
            memory=saved_memory or memory,
            duplicate=duplicate,
            deferred=deferred,
        )

    async def recalculate_specialization(self, record: PerformanceRecord) -> Optional[TaskScore]:
        """
        Fold one performance record into its TaskScore row.

        Returns:
            The updated row, or the unchanged row if this record was already applied

        Raises:
            OrchestratorError: If every compare-and-swap attempt lost a race
        """
        agent = await self.agents.get_by_id(record.agent_id)
        velocity = agent.learning_velocity if agent else 0.5

        for attempt in range(1, self.config.cas_attempts + 1):
            row = await self.task_scores.ensure_row(record.agent_id, record.task_type)
            if record.id and row.last_performance_id == record.id:
                logger.debug(f"Record {record.id} already applied to {record.task_type}")
                return row

            updates = self._fold_record(row, record, velocity)
            if row.id is None:
                return None

            saved = await self.task_scores.compare_and_swap(row.id, row.version, updates)
            if saved is not None:
                break
            logger.debug(
                f"Task score CAS conflict for {record.agent_id}/{record.task_type} "
                f"(attempt {attempt})"
            )
        else:
            raise OrchestratorError(
                f"Task score for {record.agent_id}/{record.task_type} stayed contended "
                f"after {self.config.cas_attempts} attempts",
                stage="specialization",
            )

        await self._refresh_agent(record.agent_id)

        if saved.specialization_score >= self.config.specialization_up_threshold:
            await self.events.append(
                LearningEvent(
                    agent_id=record.agent_id,
                    event_type=LearningEventType.SPECIALIZATION_UP.value,
                    event_data={
                        "task_type": record.task_type,
                        "new_score": saved.specialization_score,
                    },
                    impact_score=saved.specialization_score,
                )
            )

        logger.info(
            f"Specialization {record.agent_id}/{record.task_type} -> "
            f"{saved.specialization_score:.3f} ({saved.total_tasks} tasks)"
        )
        return saved

    def _fold_record(
        self, row: TaskScore, record: PerformanceRecord, velocity: float
    ) -> Dict[str, Any]:
        n = row.total_tasks
        successes = row.success_count + (1 if record.success else 0)
        failures = row.failure_count + (0 if record.success else 1)
        avg_confidence = (row.avg_confidence * n + (record.confidence_score or 0.0)) / (n + 1)

        updates: Dict[str, Any] = {
            "success_count": successes,
            "failure_count": failures,
            "total_execution_time_ms": row.total_execution_time_ms
            + (record.execution_time_ms or 0),
            "avg_confidence": round(avg_confidence, 6),
            "specialization_score": round(
                specialization_score(
                    successes,
                    failures,
                    avg_confidence,
                    learning_velocity=velocity,
                    experience_cap=self.config.experience_cap,
                ),
                6,
            ),
        }
        if record.created_at:
            updates["last_performed_at"] = record.created_at.isoformat()
        if record.id:
            updates["last_performance_id"] = record.id
        return updates

    async def _refresh_agent(self, agent_id: str) -> None:
        """Recompute agent aggregates from its task score rows."""
        rows = await self.task_scores.for_agent(agent_id, limit=PROFILE_SCAN_LIMIT)
        total = sum(r.total_tasks for r in rows)
        successes = sum(r.success_count for r in rows)

        preferred = [
            r.task_type for r in rows if r.specialization_score >= PREFERRED_SCORE
        ][:MAX_PREFERRED]

        await self.agents.update_aggregates(
            agent_id,
            {
                "task_specializations": {
                    r.task_type: r.specialization_score for r in rows if r.specialization_score > 0
                },
                "preferred_task_types": preferred,
                "total_tasks_completed": total,
                "success_rate": round(successes / total, 6) if total else 0.0,
                "specialization_level": SpecializationLevel.for_experience(total).value,
            },
        )

    # =========================================================================
    # Relationships
    # =========================================================================

    async def update_relationship(
        self,
        agent_x: str,
        agent_y: str,
        success: bool,
        interaction_id: Optional[str] = None,
    ) -> RelationshipOutcome:
        """
        Fold a joint outcome into the pair's relationship row.

        The pair is unordered: (x, y) and (y, x) update the same row.

        Raises:
            OrchestratorError: If the row stayed contended for every attempt
            DatabaseError: On store failure
        """
        agent_a, agent_b = canonical_pair(agent_x, agent_y)
        cfg = self.config

        for attempt in range(1, cfg.cas_attempts + 1):
            existing = await self.relationships.get_pair(agent_a, agent_b)

            if existing is None:
                created = await self._create_relationship(agent_a, agent_b, success, interaction_id)
                if created is not None:
                    return RelationshipOutcome(relationship=created, created=True)
                # Another writer created the row first; update it instead
                continue

            if interaction_id and existing.last_interaction_id == interaction_id:
                return RelationshipOutcome(relationship=existing, duplicate=True)

            updates = self._fold_relationship(existing, success, interaction_id)
            if existing.id is None:
                return RelationshipOutcome(relationship=existing.model_copy(update=updates))

            saved = await self.relationships.compare_and_swap(
                existing.id, existing.version, updates
            )
            if saved is not None:
                logger.info(
                    f"Relationship {agent_a}<->{agent_b}: synergy {saved.synergy_score:.2f} "
                    f"after {saved.interaction_count} interactions"
                )
                return RelationshipOutcome(relationship=saved)

            logger.debug(f"Relationship CAS conflict for {agent_a}<->{agent_b} (attempt {attempt})")

        raise OrchestratorError(
            f"Relationship {agent_a}<->{agent_b} stayed contended after {cfg.cas_attempts} attempts",
            stage="relationship",
        )

    def _fold_relationship(
        self, existing: Relationship, success: bool, interaction_id: Optional[str]
    ) -> Dict[str, Any]:
        n = existing.interaction_count
        prior_rate = existing.success_rate if existing.success_rate is not None else 0.5
        step = self.config.synergy_success_step if success else -self.config.synergy_failure_step

        updates: Dict[str, Any] = {
            "interaction_count": n + 1,
            "success_rate": round(clamp_unit((prior_rate * n + (1 if success else 0)) / (n + 1)), 6),
            "synergy_score": round(clamp_unit(existing.synergy_score + step), 6),
        }
        if interaction_id:
            updates["last_interaction_id"] = interaction_id
        return updates

    async def _create_relationship(
        self, agent_a: str, agent_b: str, success: bool, interaction_id: Optional[str]
    ) -> Optional[Relationship]:
        relationship = Relationship(
            agent_a_id=agent_a,
            agent_b_id=agent_b,
            synergy_score=(
                self.config.new_synergy_success if success else self.config.new_synergy_failure
            ),
            interaction_count=1,
            success_rate=1.0 if success else 0.0,
            last_interaction_id=interaction_id,
        )
        try:
            created = await self.relationships.create(relationship)
        except Exception as e:
            if is_unique_violation(e):
                logger.debug(f"Relationship {agent_a}<->{agent_b} created concurrently")
                return None
            raise

        logger.info(f"New relationship {agent_a}<->{agent_b} (success={success})")
        return created

    # =========================================================================
    # Post-reasoning bookkeeping
    # =========================================================================

    def plan_followups(
        self,
        plan: OrchestrationPlan,
        query: str,
        user_id: str,
        detected_task_type: Optional[str] = None,
    ) -> List[DeferredWrite]:
        """
        Deferred writes for a Tier 3 plan.

        The first few recommended agents with a usable id get an interaction
        memory; any of them recommended with high confidence also gets a
        skill-gained learning event.
        """
        task_type = plan.task_type or detected_task_type or "general"
        writes: List[DeferredWrite] = []

        eligible = [a for a in plan.recommended_agents if is_agent_id(a.agent_id)]
        for rec in eligible[: self.reasoning_config.memory_agents]:
            memory = Memory(
                agent_id=rec.agent_id,
                user_id=user_id,
                memory_type=MemoryType.INTERACTION.value,
                content=(
                    f'Assigned to "{task_type}" task: {query[:100]}. '
                    f"Role: {rec.role}. Match: {rec.specialization_match or 'unrated'}"
                ),
                context={
                    "task_type": task_type,
                    "confidence": rec.confidence,
                    "specialization_match": rec.specialization_match,
                    "learning_opportunity": plan.learning_opportunity,
                },
                importance_score=rec.confidence if rec.confidence is not None else 0.5,
            )
            writes.append(
                DeferredWrite(
                    name="interaction_memory",
                    func=lambda m=memory: self.memories.remember(m),
                    details={"agent_id": rec.agent_id},
                )
            )

            if (rec.confidence or 0.0) >= self.reasoning_config.skill_gained_confidence:
                event = LearningEvent(
                    agent_id=rec.agent_id,
                    event_type=LearningEventType.SKILL_GAINED.value,
                    event_data={
                        "task_type": task_type,
                        "confidence": rec.confidence,
                        "role": rec.role,
                    },
                    impact_score=rec.confidence,
                )
                writes.append(
                    DeferredWrite(
                        name="skill_gained",
                        func=lambda e=event: self.events.append(e),
                        details={"agent_id": rec.agent_id},
                    )
                )

        return writes

