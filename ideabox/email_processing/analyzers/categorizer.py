"""
Email Categorizer

Assigns each email to exactly one life-bucket category, with a one-line
summary, topics and a quick triage action.

Design Considerations:
- Every email gets a category; there is no "other" bucket
- Model output outside the allowed vocabulary is normalized, never rejected
- Low temperature for repeatable classification
"""

import logging
from typing import Any, Dict, List, Optional

from ideabox.config.analyzer_config import DEFAULT_CATEGORY, EMAIL_CATEGORIES, QUICK_ACTIONS
from ideabox.email_processing.base import BaseEmailAnalyzer
from ideabox.email_processing.models import UserContext

logger = logging.getLogger(__name__)

FUNCTION_NAME = "categorize_email"

SYSTEM_PROMPT = f"""You are an intelligent email organizer protecting the user's attention.
Assign every email to ONE life-bucket category:

- newsletters_creator: Substacks, digests, curated reading material
- newsletters_industry: industry or professional newsletters
- news_politics: news outlets, political updates, government notices
- product_updates: tools and services the user actively uses
- local: community events and organizations near the user
- shopping: orders, shipping, deals, returns
- travel: flights, hotels, bookings, itineraries
- finance: bills, banking, investments, receipts
- family: kids, school, health, appointments
- clients: correspondence with people the user does paid work for
- work: professional but not a paying client
- personal_friends_family: personal relationships and social invitations
- notifications: automated alerts, security notices, verification codes

There is NO "other" option. Pick the best fit.

Also return:
- summary: one sentence briefing the user (who, what they want, any deadline)
- topics: 1-5 short keywords
- quick_action: one of {", ".join(QUICK_ACTIONS)}
- reasoning: one sentence on why this category fits
- confidence: 0.0 to 1.0; below 0.7 when torn between two buckets"""


class EmailCategorizer(BaseEmailAnalyzer):
    """Classifies an email into a life-bucket category."""

    name = "categorizer"

    def get_function_schema(self) -> Dict[str, Any]:
        return {
            "name": FUNCTION_NAME,
            "description": "Categorizes an email by life bucket and suggests a triage action",
            "parameters": {
                "type": "object",
                "properties": {
                    "category": {"type": "string", "enum": list(EMAIL_CATEGORIES)},
                    "confidence": {"type": "number", "minimum": 0, "maximum": 1},
                    "reasoning": {"type": "string"},
                    "topics": {"type": "array", "items": {"type": "string"}, "maxItems": 5},
                    "summary": {"type": "string"},
                    "quick_action": {"type": "string", "enum": list(QUICK_ACTIONS)},
                },
                "required": ["category", "confidence", "reasoning", "topics", "summary", "quick_action"],
            },
        }

    def get_system_prompt(self, context: Optional[UserContext] = None) -> str:
        return SYSTEM_PROMPT

    def normalize(self, data: Dict[str, Any], context: Optional[UserContext] = None) -> Dict[str, Any]:
        category = normalize_category(data.get("category"))
        if category != data.get("category"):
            logger.warning(f"Normalized unknown category {data.get('category')!r} to {category}")

        quick_action = data.get("quick_action")
        if quick_action not in QUICK_ACTIONS:
            quick_action = "none"

        topics: List[str] = [str(t) for t in data.get("topics") or []][:5]

        return {
            "category": category,
            "confidence": self._clamp(data.get("confidence"), 0.0, 1.0, 0.5),
            "reasoning": str(data.get("reasoning") or ""),
            "topics": topics,
            "summary": str(data.get("summary") or ""),
            "quick_action": quick_action,
        }


def normalize_category(value: Any) -> str:
    """Map model output onto the allowed categories, falling back to the default."""
    if not isinstance(value, str):
        return DEFAULT_CATEGORY
    candidate = value.strip().lower().replace("-", "_").replace(" ", "_")
    return candidate if candidate in EMAIL_CATEGORIES else DEFAULT_CATEGORY
