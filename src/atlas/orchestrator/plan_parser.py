"""Tolerant parsing of model output into an orchestration plan.

Model replies are free text that usually, but not always, contains a JSON
object (sometimes inside a code fence, sometimes followed by commentary).
``extract_first_json_object`` finds the first balanced ``{...}`` that decodes
to a JSON object. Neither function raises: absence of a usable plan is a
normal outcome and yields None.
"""

import json
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from atlas.models.orchestration import OrchestrationPlan

logger = logging.getLogger(__name__)


def _balanced_end(text: str, start: int) -> Optional[int]:
    """Index just past the brace closing the one at ``start``, string-aware."""
    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1

    return None


def extract_first_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Return the first balanced JSON object embedded in text, or None.

    Unclosed braces and balanced candidates that are not valid JSON are
    skipped; the scan resumes at the next opening brace.
    """
    if not text:
        return None

    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        if end is None:
            start = text.find("{", start + 1)
            continue

        try:
            value = json.loads(text[start:end])
        except ValueError:
            value = None

        if isinstance(value, dict):
            return value

        start = text.find("{", start + 1)

    return None


def parse_plan(text: Optional[str]) -> Optional[OrchestrationPlan]:
    """Parse a reasoning reply into a plan; None when no usable plan is present."""
    payload = extract_first_json_object(text)
    if payload is None:
        logger.warning("Reasoning reply contained no JSON object; returning null plan")
        return None

    # Tier metadata is owned by the engine, not the model
    for key in ("routing_tier", "routing_time_ms", "llm_bypassed"):
        payload.pop(key, None)

    try:
        return OrchestrationPlan.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"Reasoning reply JSON did not match plan shape: {e.error_count()} errors")
        return None
    except (TypeError, ValueError) as e:
        logger.warning(f"Reasoning reply JSON could not be built into a plan: {e}")
        return None
