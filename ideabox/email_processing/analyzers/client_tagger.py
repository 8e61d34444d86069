"""
Client Tagger

Links an email to one of the user's known clients. The model proposes a
client by name; the claim is resolved against the roster and dropped when
no such client exists.
"""

import logging
from typing import Any, Dict, List, Optional

from ideabox.config.analyzer_config import RELATIONSHIP_SIGNALS
from ideabox.email_processing.base import BaseEmailAnalyzer
from ideabox.email_processing.models import Client, UserContext

logger = logging.getLogger(__name__)

FUNCTION_NAME = "tag_client"

PROMPT_TEMPLATE = """You are a client relationship specialist. Decide whether this email relates to one of the user's known clients.

Known clients:
{client_list}

Matching criteria, strongest first:
1. Sender domain matches one of the client's domains
2. The email names the client or its company
3. The email discusses a known project with the client

Only match when confident. Use the client name exactly as listed.
Extract project_name only when a project is clearly named.
relationship_signal: positive, neutral, negative or unknown, from the tone of the email.
match_confidence is 0.0 to 1.0; below 0.7 when the match rests on the domain alone."""

NO_CLIENTS_PROMPT = """You are a client relationship specialist. The user has no clients on file,
so set client_match to false. Still report relationship_signal (positive, neutral, negative
or unknown) from the tone of the email."""


def format_client_list(clients: List[Client]) -> str:
    lines = []
    for client in clients:
        line = f"- {client.name}"
        if client.company:
            line += f" ({client.company})"
        if client.email_domains:
            line += f" domains: {', '.join(client.email_domains)}"
        if client.keywords:
            line += f" keywords: {', '.join(client.keywords)}"
        line += f" priority: {client.priority}"
        lines.append(line)
    return "\n".join(lines)


def find_client_by_name(name: str, clients: List[Client]) -> Optional[Client]:
    """
    Resolve a client name proposed by the model.

    Exact name match first, then exact company match, then containment in
    either direction. Comparison is case-insensitive.
    """
    wanted = name.lower().strip()
    if not wanted:
        return None

    for client in clients:
        if client.name.lower().strip() == wanted:
            return client
    for client in clients:
        if client.company and client.company.lower().strip() == wanted:
            return client
    for client in clients:
        known = client.name.lower().strip()
        if known and (known in wanted or wanted in known):
            return client
    return None


class ClientTagger(BaseEmailAnalyzer):
    """Matches an email against the user's client roster."""

    name = "client_tagger"

    def get_function_schema(self) -> Dict[str, Any]:
        return {
            "name": FUNCTION_NAME,
            "description": "Links an email to a known client and extracts project information",
            "parameters": {
                "type": "object",
                "properties": {
                    "client_match": {"type": "boolean"},
                    "client_name": {"type": "string"},
                    "match_confidence": {"type": "number", "minimum": 0, "maximum": 1},
                    "project_name": {"type": "string"},
                    "relationship_signal": {"type": "string", "enum": list(RELATIONSHIP_SIGNALS)},
                },
                "required": ["client_match", "match_confidence", "relationship_signal"],
            },
        }

    def get_system_prompt(self, context: Optional[UserContext] = None) -> str:
        if not context or not context.clients:
            return NO_CLIENTS_PROMPT
        return PROMPT_TEMPLATE.format(client_list=format_client_list(context.clients))

    def normalize(self, data: Dict[str, Any], context: Optional[UserContext] = None) -> Dict[str, Any]:
        signal = data.get("relationship_signal")
        if signal not in RELATIONSHIP_SIGNALS:
            signal = "unknown"

        tagging = {
            "client_match": bool(data.get("client_match")),
            "client_name": data.get("client_name") or None,
            "client_id": None,
            "match_confidence": self._clamp(data.get("match_confidence"), 0.0, 1.0, 0.0),
            "project_name": data.get("project_name") or None,
            "relationship_signal": signal,
        }

        if not tagging["client_match"]:
            return tagging

        clients = context.clients if context else []
        client = find_client_by_name(tagging["client_name"] or "", clients)
        if client is None:
            logger.warning(f"Model claimed unknown client {tagging['client_name']!r}; dropping match")
            tagging.update(client_match=False, client_id=None, match_confidence=0.0)
        else:
            tagging.update(client_name=client.name, client_id=client.id)
        return tagging
