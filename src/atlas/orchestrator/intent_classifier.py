"""Intent classification for the routing engine.

Deterministic, rule-based and side-effect free:
- A rule fires when its trigger word or any of its keywords appears
- Trigger hits outrank keyword-only hits; more keyword hits rank higher
- Confidence = min(1, base + 0.05 per keyword hit)

Unrecognized text returns task_type "unknown" with confidence 0 and
requires_llm set, which forces the reasoning tier.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from atlas.models.orchestration import IntentResult

logger = logging.getLogger(__name__)

KEYWORD_BONUS = 0.05


@dataclass(frozen=True)
class IntentRule:
    """Maps a trigger word and supporting keywords to a task type."""

    trigger: str
    task_type: str
    confidence: float
    domain: str
    keywords: Tuple[str, ...] = field(default_factory=tuple)


def _rule(trigger: str, task_type: str, confidence: float, domain: str, *keywords: str):
    return IntentRule(trigger, task_type, confidence, domain, tuple(keywords))


INTENT_RULES: Tuple[IntentRule, ...] = (
    # Communications
    _rule("draft", "communications_draft", 0.9, "communications",
          "reply", "respond", "email", "message", "response", "letter"),
    _rule("reply", "communications_draft", 0.9, "communications",
          "email", "message", "thread", "answer"),
    _rule("respond", "communications_draft", 0.9, "communications",
          "email", "message", "answer", "follow up"),
    _rule("email", "email_composition", 0.9, "communications",
          "send", "compose", "inbox", "newsletter"),
    # Calendar
    _rule("schedule", "scheduling", 0.9, "calendar",
          "meeting", "appointment", "book", "reserve"),
    _rule("remind", "scheduling", 0.9, "calendar", "reminder", "alert", "ping"),
    _rule("invite", "scheduling", 0.85, "calendar", "attendee", "guest", "participant"),
    _rule("call", "scheduling", 0.85, "calendar", "phone", "dial", "contact"),
    # Analytics
    _rule("analyze", "data_analysis", 0.85, "analytics", "report", "insight", "trend", "pattern"),
    _rule("report", "data_analysis", 0.9, "analytics", "dashboard", "metrics", "kpi", "stats"),
    _rule("chart", "data_analysis", 0.85, "analytics", "graph", "visualization", "plot"),
    _rule("benchmark", "data_analysis", 0.85, "analytics", "baseline", "target"),
    # Knowledge
    _rule("research", "research", 0.85, "knowledge", "find", "look up", "search", "investigate"),
    _rule("find", "research", 0.85, "knowledge", "locate", "discover", "where is"),
    _rule("define", "research", 0.9, "knowledge", "meaning", "definition", "what is"),
    _rule("summarize", "summarization", 0.9, "knowledge", "brief", "overview", "digest", "recap"),
    # Finance
    _rule("calculate", "financial_analysis", 0.9, "finance", "budget", "expense", "revenue", "cost"),
    _rule("budget", "financial_analysis", 0.9, "finance", "spending", "allocation", "funds"),
    _rule("invoice", "financial_analysis", 0.9, "finance", "bill", "payment", "charge", "receipt"),
    _rule("forecast", "financial_analysis", 0.85, "finance", "projection", "estimate", "predict"),
    _rule("tax", "financial_analysis", 0.9, "finance", "deduction", "filing", "irs"),
    # Documents
    _rule("write", "content_creation", 0.85, "creative", "compose", "author", "blog", "post"),
    _rule("create", "content_creation", 0.8, "creative", "design", "generate", "make", "build"),
    _rule("template", "content_creation", 0.85, "creative", "form", "format", "boilerplate"),
    _rule("review", "document_review", 0.85, "legal", "contract", "agreement", "terms", "policy"),
    _rule("edit", "document_review", 0.9, "legal", "revise", "modify", "change"),
    _rule("proofread", "document_review", 0.9, "legal", "check", "correct", "grammar", "spell"),
    # Strategy
    _rule("plan", "strategic_planning", 0.85, "strategy", "roadmap", "strategy", "objective"),
    _rule("goal", "strategic_planning", 0.9, "strategy", "objective", "target", "mission"),
    _rule("swot", "strategic_planning", 0.9, "strategy", "strength", "weakness", "threat"),
    # Automation and operations
    _rule("automate", "workflow_automation", 0.9, "automation",
          "workflow", "trigger", "process", "routine"),
    _rule("approve", "workflow_automation", 0.9, "automation", "authorize", "confirm", "sign off"),
    _rule("sync", "workflow_automation", 0.85, "automation", "synchronize", "refresh"),
    _rule("monitor", "monitoring", 0.85, "operations", "track", "watch", "alert", "notify"),
    _rule("optimize", "optimization", 0.85, "performance", "improve", "enhance", "streamline"),
    # Productivity and people
    _rule("task", "task_management", 0.9, "productivity", "todo", "checklist", "action item"),
    _rule("deadline", "task_management", 0.9, "productivity", "due", "timeline", "eta"),
    _rule("assign", "task_management", 0.85, "productivity", "delegate", "hand off"),
    _rule("hire", "hr_management", 0.9, "hr", "recruit", "candidate", "interview", "job"),
    _rule("audit", "security_audit", 0.9, "security", "vulnerability", "compliance", "access"),
    _rule("project", "project_management", 0.85, "productivity", "milestone", "sprint", "scope"),
    _rule("customer", "customer_management", 0.85, "sales", "lead", "client", "crm", "deal"),
    _rule("import", "integration", 0.85, "integration", "connect", "api", "webhook"),
)


INFLECTIONS = "s|es|ed|ing|ings|er|ers"


def _word_pattern(term: str) -> re.Pattern:
    # Whole word plus common inflections: "scheduled" hits "schedule", "important" misses "import"
    if term.endswith("e"):
        body = re.escape(term[:-1]) + "(?:e|es|ed|ing|ings|er|ers)"
    elif term.endswith("y"):
        body = re.escape(term[:-1]) + "(?:y|ies|ied|ying)"
    else:
        last = re.escape(term[-1])
        body = re.escape(term) + f"(?:{INFLECTIONS}|{last}ed|{last}ing|{last}er)?"
    return re.compile(r"\b" + body + r"\b", re.IGNORECASE)


class IntentClassifier:
    """Keyword/pattern intent classifier.

    Pure function of the query text: no I/O, no model calls.
    """

    def __init__(self, rules: Optional[Sequence[IntentRule]] = None):
        self.rules: Tuple[IntentRule, ...] = tuple(rules) if rules is not None else INTENT_RULES
        self._compiled = [
            (rule, _word_pattern(rule.trigger), [_word_pattern(kw) for kw in rule.keywords])
            for rule in self.rules
        ]

    def classify(self, query: str) -> IntentResult:
        """Classify a free-text request.

        Args:
            query: Raw request text

        Returns:
            IntentResult for the best-matching rule, or the unknown result
        """
        text = (query or "").strip()
        if not text:
            return IntentResult()

        best: Optional[Tuple[Tuple[int, int, float, int], IntentRule, List[str]]] = None

        for position, (rule, trigger, keyword_patterns) in enumerate(self._compiled):
            trigger_hit = bool(trigger.search(text))
            hits = [kw for kw, pat in zip(rule.keywords, keyword_patterns) if pat.search(text)]
            if not trigger_hit and not hits:
                continue

            # Earlier rules win exact ties
            rank = (int(trigger_hit), len(hits), rule.confidence, -position)
            if best is None or rank > best[0]:
                best = (rank, rule, hits)

        if best is None:
            logger.debug("No intent rule matched; reasoning tier required")
            return IntentResult()

        _, rule, hits = best
        confidence = min(1.0, rule.confidence + KEYWORD_BONUS * len(hits))
        logger.debug(
            f"Intent matched '{rule.trigger}' -> {rule.task_type} "
            f"({confidence:.2f}, keywords={hits})"
        )
        return IntentResult(
            task_type=rule.task_type,
            domain=rule.domain,
            confidence=confidence,
            requires_llm=False,
            matched_keywords=hits,
        )


def classify_intent(query: str) -> IntentResult:
    """Classify with the built-in rule table."""
    return _default_classifier.classify(query)


_default_classifier = IntentClassifier()
