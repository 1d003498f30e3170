"""
cohere_openai package - Core application modules
"""

from .config import settings
from .helpers import debug_log, configure_structlog
from .schemas import Message, ContentPart, ChatHistoryEntry, UpstreamRequest
from .cohere_transformer import CohereTransformer, ModelPrefix

__all__ = [
    "settings",
    "debug_log",
    "configure_structlog",
    "Message",
    "ContentPart",
    "ChatHistoryEntry",
    "UpstreamRequest",
    "CohereTransformer",
    "ModelPrefix",
]
