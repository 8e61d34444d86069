from .groq.client import EnhancedGroqClient

__all__ = [
    'EnhancedGroqClient',
]
