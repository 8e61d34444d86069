from groq import Groq
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple
from datetime import datetime
import asyncio
import json
import os
import time
from dotenv import load_dotenv
import logging

from ideabox.config.analyzer_config import ANALYZER_CONFIG
from ideabox.integrations.groq.constants import DEFAULT_MODEL, calculate_cost

logger = logging.getLogger(__name__)

METRICS_HISTORY_SIZE = 100


class TokenLimitError(Exception):
    """The completion was cut off by max_tokens; retrying yields the same result."""


@dataclass
class FunctionCallResult:
    """Parsed function-call arguments plus usage accounting."""
    data: Dict[str, Any]
    tokens_input: int
    tokens_output: int
    tokens_total: int
    estimated_cost: float
    duration_ms: int


class EnhancedGroqClient:
    """Enhanced Groq client with retry logic and error handling."""

    def __init__(self, api_key: Optional[str] = None, retry_base_delay: Optional[float] = None):
        """Initialize the enhanced Groq client with API key from environment or parameter."""
        load_dotenv(override=True)
        self.api_key = api_key or os.getenv('GROQ_API_KEY')
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided either through initialization or environment")

        self.client = Groq(api_key=self.api_key)
        self.retry_base_delay = (
            retry_base_delay if retry_base_delay is not None
            else ANALYZER_CONFIG['retry']['base_delay']
        )
        # Only the most recent entries are kept; totals live in 'performance'
        self.metrics = {
            'requests': deque(maxlen=METRICS_HISTORY_SIZE),
            'errors': deque(maxlen=METRICS_HISTORY_SIZE),
            'performance': {
                'avg_response_time': 0,
                'total_requests': 0,
                'total_errors': 0,
                'success_rate': 100
            }
        }

    async def process_with_retry(self,
                                 messages: List[Dict],
                                 max_retries: int = ANALYZER_CONFIG['retry']['max_attempts'],
                                 response_handler: Optional[Callable[[Any], Any]] = None,
                                 **kwargs) -> Any:
        """Process a request with retry logic and error handling.

        Args:
            messages: List of message dictionaries for the conversation
            max_retries: Maximum number of attempts
            response_handler: Optional parser applied to the response; its
                failures are retried like API failures
            **kwargs: Additional parameters for the API call

        Returns:
            API response object, or the handler's return value

        Raises:
            TokenLimitError: Propagated without retry
            Exception: When every attempt failed
        """
        start_time = datetime.now()
        retries = 0
        last_error = None

        while retries < max_retries:
            try:
                params = {
                    'model': DEFAULT_MODEL,
                    'temperature': 0.3,
                    **kwargs,
                    'messages': messages,
                }

                response = await asyncio.to_thread(self.client.chat.completions.create, **params)
                if response_handler is not None:
                    response = response_handler(response)

                self.record_success(start_time)
                return response

            except TokenLimitError as e:
                self.record_error(str(e))
                raise
            except Exception as e:
                retries += 1
                last_error = str(e)
                self.record_error(last_error)

                if retries == max_retries:
                    logger.error(f"Failed after {max_retries} retries: {last_error}")
                    raise Exception(f"Failed after {max_retries} retries: {last_error}")

                # Exponential backoff
                wait_time = self.retry_base_delay * 2 ** (retries - 1)
                logger.warning(f"Attempt {retries} failed. Waiting {wait_time} seconds before retry...")
                await asyncio.sleep(wait_time)

    async def call_function(self,
                            system_prompt: str,
                            user_content: str,
                            function_schema: Dict[str, Any],
                            model: str = DEFAULT_MODEL,
                            temperature: float = 0.3,
                            max_tokens: int = 500) -> FunctionCallResult:
        """Run a chat completion that must answer through a single function call.

        Args:
            system_prompt: Instructions for the model
            user_content: Formatted email content
            function_schema: JSON schema with name, description and parameters
            model: Groq model name
            temperature: Sampling temperature
            max_tokens: Completion token limit

        Returns:
            FunctionCallResult with the parsed arguments

        Raises:
            TokenLimitError: If the output was truncated by max_tokens
            Exception: If every attempt failed, including attempts where the
                model answered without calling the function
        """
        started = time.perf_counter()
        function_name = function_schema['name']
        logger.debug(f"Calling {model} for {function_name} ({len(user_content)} chars)")

        def parse_function_call(response: Any) -> Tuple[Dict[str, Any], Any]:
            choice = response.choices[0]
            if choice.finish_reason == 'length':
                logger.error(f"Response truncated at max_tokens={max_tokens} for {function_name}")
                raise TokenLimitError(
                    f"Response truncated: max_tokens ({max_tokens}) limit reached for {function_name}"
                )

            tool_calls = choice.message.tool_calls or []
            if not tool_calls or not tool_calls[0].function.arguments:
                raise ValueError(
                    f"Model did not return a function call. Finish reason: {choice.finish_reason or 'unknown'}"
                )

            return json.loads(tool_calls[0].function.arguments), response.usage

        data, usage = await self.process_with_retry(
            [
                {'role': 'system', 'content': system_prompt},
                {'role': 'user', 'content': user_content},
            ],
            response_handler=parse_function_call,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            tools=[{'type': 'function', 'function': function_schema}],
            tool_choice={'type': 'function', 'function': {'name': function_name}},
        )

        tokens_input = getattr(usage, 'prompt_tokens', 0) or 0
        tokens_output = getattr(usage, 'completion_tokens', 0) or 0
        tokens_total = getattr(usage, 'total_tokens', 0) or tokens_input + tokens_output
        duration_ms = int((time.perf_counter() - started) * 1000)

        result = FunctionCallResult(
            data=data,
            tokens_input=tokens_input,
            tokens_output=tokens_output,
            tokens_total=tokens_total,
            estimated_cost=calculate_cost(model, tokens_input, tokens_output),
            duration_ms=duration_ms,
        )
        logger.info(f"{function_name} call successful: {tokens_total} tokens in {duration_ms}ms")
        return result

    def record_success(self, start_time: datetime):
        """Record successful request metrics."""
        duration = (datetime.now() - start_time).total_seconds()
        self.metrics['requests'].append({
            'timestamp': datetime.now().isoformat(),
            'duration': duration,
            'status': 'success'
        })

        performance = self.metrics['performance']
        total_reqs = performance['total_requests'] + 1
        performance.update({
            'avg_response_time': (
                    (performance['avg_response_time'] * (total_reqs - 1) + duration)
                    / total_reqs
            ),
            'total_requests': total_reqs,
            'success_rate': max(
                0.0, (total_reqs - performance['total_errors']) / total_reqs * 100
            )
        })

    def record_error(self, error_message: str):
        """Record error metrics."""
        self.metrics['errors'].append({
            'timestamp': datetime.now().isoformat(),
            'error': error_message
        })
        performance = self.metrics['performance']
        performance['total_errors'] += 1
        if performance['total_requests']:
            performance['success_rate'] = max(
                0.0,
                (performance['total_requests'] - performance['total_errors'])
                / performance['total_requests'] * 100
            )

    def get_performance_metrics(self) -> Dict:
        """Get current performance metrics."""
        return self.metrics['performance']
