import logging
import time
from typing import Any, Dict, Optional

from ideabox.config.analyzer_config import ANALYZER_CONFIG
from ideabox.email_processing.models import AnalyzerResult, Email, UserContext
from ideabox.integrations.groq.client import EnhancedGroqClient

logger = logging.getLogger(__name__)


def truncate_body(body: str, max_chars: int = ANALYZER_CONFIG["content_processing"]["max_body_chars"]) -> str:
    """Shorten an email body to ``max_chars``, dropping the middle and keeping head and tail."""
    if len(body) <= max_chars:
        return body

    half = max_chars // 2
    removed = len(body) - max_chars
    logger.debug(f"Truncated email body from {len(body)} to {max_chars} chars")
    return (
        f"{body[:half]}\n\n"
        f"[...content truncated for AI processing ({removed} chars removed)...]\n\n"
        f"{body[-half:]}"
    )


class BaseEmailAnalyzer:
    """
    Base analyzer class defining the contract for email analysis implementations.

    Subclasses supply a name, a function schema and a system prompt, and may
    post-process the model's arguments. This class handles formatting the
    email, calling the LLM, timing, and converting every failure into an
    unsuccessful AnalyzerResult so that analyzers never raise.

    Attributes:
        name: Key of this analyzer in ANALYZER_CONFIG
        config: Analyzer settings (enabled flag and model parameters)
    """

    name: str = ""

    def __init__(self, client: Optional[EnhancedGroqClient] = None, config: Optional[Dict[str, Any]] = None):
        self.config = config or ANALYZER_CONFIG[self.name]
        self._client = client

    @property
    def client(self) -> EnhancedGroqClient:
        # created on first use so analyzers can be built without an API key
        if self._client is None:
            self._client = EnhancedGroqClient()
        return self._client

    @property
    def enabled(self) -> bool:
        return bool(self.config.get("enabled", True))

    async def analyze(self, email: Email, context: Optional[UserContext] = None) -> AnalyzerResult:
        """
        Analyze one email.

        Args:
            email: Email to analyze
            context: Owner and active clients, when the analyzer needs them

        Returns:
            AnalyzerResult; ``success`` is False when the analyzer is disabled
            or the call failed
        """
        started = time.perf_counter()

        if not self.enabled:
            logger.info(f"{self.name} disabled, skipping email {email.id}")
            return AnalyzerResult(success=False, error="Analyzer is disabled")

        try:
            model = self.config["model"]
            result = await self.client.call_function(
                self.get_system_prompt(context),
                self.format_email(email),
                self.get_function_schema(),
                model=model["name"],
                temperature=model["temperature"],
                max_tokens=model["max_tokens"],
            )
            data = self.normalize(result.data, context)
            elapsed_ms = int((time.perf_counter() - started) * 1000)

            logger.debug(f"{self.name} finished email {email.id}: {result.tokens_total} tokens in {elapsed_ms}ms")
            return AnalyzerResult(
                success=True,
                data=data,
                confidence=self._extract_confidence(data),
                tokens_used=result.tokens_total,
                estimated_cost=result.estimated_cost,
                processing_time_ms=elapsed_ms,
            )
        except Exception as e:
            logger.error(f"{self.name} failed for email {email.id}: {str(e)}")
            return AnalyzerResult(
                success=False,
                processing_time_ms=int((time.perf_counter() - started) * 1000),
                error=str(e),
            )

    def get_function_schema(self) -> Dict[str, Any]:
        raise NotImplementedError("Must implement get_function_schema")

    def get_system_prompt(self, context: Optional[UserContext] = None) -> str:
        raise NotImplementedError("Must implement get_system_prompt")

    def normalize(self, data: Dict[str, Any], context: Optional[UserContext] = None) -> Dict[str, Any]:
        """Coerce the model's arguments into this analyzer's data shape."""
        return data

    def format_email(self, email: Email) -> str:
        """
        Render an email as the user message sent to the model.

        Args:
            email: Email to render

        Returns:
            Headers, labels and the (possibly truncated) body
        """
        parts = [
            f"From: {email.sender_name or ''} <{email.sender_email}>",
            f"Date: {email.date.isoformat() if email.date else ''}",
            f"Subject: {email.subject or '(no subject)'}",
        ]
        if email.gmail_labels:
            parts.append(f"Labels: {', '.join(email.gmail_labels)}")

        parts.append("")
        parts.append("--- Email Body ---")

        if email.body_text:
            parts.append(truncate_body(email.body_text))
        elif email.snippet:
            parts.append(f"[Snippet only]: {email.snippet}")
        else:
            parts.append("[No body content available]")

        return "\n".join(parts)

    @staticmethod
    def _extract_confidence(data: Dict[str, Any]) -> float:
        for key in ("confidence", "match_confidence"):
            value = data.get(key)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return float(value)
        return 0.5

    @staticmethod
    def _clamp(value: Any, low: float, high: float, default: float) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return default
        return max(low, min(high, value))
