"""
Conversational memory: token estimation, pruning strategies and the
context builder.
"""

from agentrun.memory.base import (
    MessageGroup,
    PruningStrategy,
    Selection,
    group_messages,
    newest_window,
)
from agentrun.memory.manager import ContextWindow, MemoryManager
from agentrun.memory.scoring import (
    EmbeddingScorer,
    LexicalScorer,
    RelevanceScorer,
    cosine_similarity,
)
from agentrun.memory.strategies import (
    HybridStrategy,
    SemanticStrategy,
    SlidingWindowStrategy,
    SummarizationStrategy,
)
from agentrun.memory.summarizer import ExtractiveSummarizer, Summarizer, summary_message
from agentrun.memory.tokens import MESSAGE_OVERHEAD, TokenEstimator

__all__ = [
    "ContextWindow",
    "EmbeddingScorer",
    "ExtractiveSummarizer",
    "HybridStrategy",
    "LexicalScorer",
    "MESSAGE_OVERHEAD",
    "MemoryManager",
    "MessageGroup",
    "PruningStrategy",
    "RelevanceScorer",
    "Selection",
    "SemanticStrategy",
    "SlidingWindowStrategy",
    "SummarizationStrategy",
    "Summarizer",
    "TokenEstimator",
    "cosine_similarity",
    "group_messages",
    "newest_window",
]
