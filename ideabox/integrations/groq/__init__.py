from .client import EnhancedGroqClient, FunctionCallResult, TokenLimitError

__all__ = [
    'EnhancedGroqClient',
    'FunctionCallResult',
    'TokenLimitError',
]
