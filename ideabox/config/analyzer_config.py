# config/analyzer_config.py

ANALYZER_VERSION = "1.0.0"

# Life-bucket categories the categorizer may assign
EMAIL_CATEGORIES = (
    "newsletters_creator",
    "newsletters_industry",
    "news_politics",
    "product_updates",
    "local",
    "shopping",
    "travel",
    "finance",
    "family",
    "clients",
    "work",
    "personal_friends_family",
    "notifications",
)

DEFAULT_CATEGORY = "personal_friends_family"

QUICK_ACTIONS = (
    "respond",
    "review",
    "archive",
    "save",
    "calendar",
    "unsubscribe",
    "follow_up",
    "none",
)

ACTION_TYPES = (
    "respond",
    "review",
    "create",
    "schedule",
    "decide",
    "pay",
    "submit",
    "register",
    "book",
    "none",
)

RELATIONSHIP_SIGNALS = ("positive", "neutral", "negative", "unknown")

ANALYZER_CONFIG = {
    "categorizer": {
        "enabled": True,
        "model": {
            "name": "llama-3.3-70b-versatile",
            "temperature": 0.2,  # low for deterministic classification
            "max_tokens": 750,
        },
    },
    "action_extractor": {
        "enabled": True,
        "model": {
            "name": "llama-3.3-70b-versatile",
            "temperature": 0.3,
            "max_tokens": 500,
        },
    },
    "client_tagger": {
        "enabled": True,
        "model": {
            "name": "llama-3.3-70b-versatile",
            "temperature": 0.2,
            "max_tokens": 300,
        },
    },
    "content_processing": {
        "max_body_chars": 16000,
    },
    "retry": {
        "max_attempts": 3,
        "base_delay": 1,  # seconds, doubled on every attempt
    },
    "batch": {
        "batch_size": 10,
        "delay_between_batches": 0.1,
        "item_timeout_seconds": 120,
    },
}
