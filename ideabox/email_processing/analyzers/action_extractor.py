"""
Action Extractor

Decides whether an email asks the user to do something and, if so,
describes the single most important action: type, title, urgency,
deadline and effort.
"""

import logging
from typing import Any, Dict, Optional

from ideabox.config.analyzer_config import ACTION_TYPES
from ideabox.email_processing.base import BaseEmailAnalyzer
from ideabox.email_processing.models import UserContext

logger = logging.getLogger(__name__)

FUNCTION_NAME = "extract_action"

SYSTEM_PROMPT = """You are a task extraction specialist. Decide whether this email requires the user to DO something.

Only flag real actions: a question waiting for an answer, a document to review, a bill to pay,
a form to submit, a meeting to schedule, a decision to make. Newsletters, receipts and
notifications normally have no action.

When there is an action:
- action_type: respond, review, create, schedule, decide, pay, submit, register or book
- action_title: short imperative title, e.g. "Reply to Sarah about Q1 proposal"
- action_description: one or two sentences of detail
- urgency_score: 1 (whenever) to 10 (today)
- deadline: ISO 8601 date or datetime if one is stated, otherwise omit
- estimated_minutes: realistic effort

When there is no action set has_action to false and action_type to "none".
confidence is 0.0 to 1.0."""


class ActionExtractor(BaseEmailAnalyzer):
    """Extracts the primary action item from an email."""

    name = "action_extractor"

    def get_function_schema(self) -> Dict[str, Any]:
        return {
            "name": FUNCTION_NAME,
            "description": "Extracts the primary action the user needs to take, if any",
            "parameters": {
                "type": "object",
                "properties": {
                    "has_action": {"type": "boolean"},
                    "action_type": {"type": "string", "enum": list(ACTION_TYPES)},
                    "action_title": {"type": "string"},
                    "action_description": {"type": "string"},
                    "urgency_score": {"type": "integer", "minimum": 1, "maximum": 10},
                    "deadline": {"type": "string"},
                    "estimated_minutes": {"type": "integer"},
                    "confidence": {"type": "number", "minimum": 0, "maximum": 1},
                },
                "required": ["has_action", "action_type", "urgency_score", "confidence"],
            },
        }

    def get_system_prompt(self, context: Optional[UserContext] = None) -> str:
        return SYSTEM_PROMPT

    def normalize(self, data: Dict[str, Any], context: Optional[UserContext] = None) -> Dict[str, Any]:
        has_action = bool(data.get("has_action"))
        action_type = data.get("action_type")
        if action_type not in ACTION_TYPES:
            action_type = "review" if has_action else "none"
        if not has_action:
            action_type = "none"

        estimated_minutes = data.get("estimated_minutes")
        if isinstance(estimated_minutes, bool) or not isinstance(estimated_minutes, (int, float)):
            estimated_minutes = None

        return {
            "has_action": has_action,
            "action_type": action_type,
            "action_title": data.get("action_title") or None,
            "action_description": data.get("action_description") or None,
            "urgency_score": int(self._clamp(data.get("urgency_score"), 1, 10, 1)),
            "deadline": data.get("deadline") or None,
            "estimated_minutes": int(estimated_minutes) if estimated_minutes is not None else None,
            "confidence": self._clamp(data.get("confidence"), 0.0, 1.0, 0.5),
        }
