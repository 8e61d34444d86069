# integrations/groq/constants.py

DEFAULT_MODEL = 'llama-3.3-70b-versatile'

# USD per token, input and output priced separately
MODEL_PRICING = {
    'llama-3.3-70b-versatile': {
        'input': 0.59 / 1_000_000,
        'output': 0.79 / 1_000_000,
    },
    'llama-3.1-8b-instant': {
        'input': 0.05 / 1_000_000,
        'output': 0.08 / 1_000_000,
    },
}

# Flat per-token rate used when a model has no pricing entry
FALLBACK_TOKEN_RATE = 0.0000006


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Estimate the USD cost of a completion."""
    pricing = MODEL_PRICING.get(model)
    if pricing is None:
        return (input_tokens + output_tokens) * FALLBACK_TOKEN_RATE
    return input_tokens * pricing['input'] + output_tokens * pricing['output']
