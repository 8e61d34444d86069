from .action_extractor import ActionExtractor
from .categorizer import EmailCategorizer
from .client_tagger import ClientTagger

__all__ = [
    'ActionExtractor',
    'EmailCategorizer',
    'ClientTagger',
]
