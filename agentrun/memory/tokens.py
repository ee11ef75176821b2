"""
Token estimation.
"""

import json

import tiktoken

from agentrun.domain import Message
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)

# Formatting overhead added per message (role markers, separators)
MESSAGE_OVERHEAD = 4


class TokenEstimator:
    """
    Counts tokens with tiktoken, falling back to ~4 characters per token when
    the encoding cannot be loaded (e.g. offline without a cached BPE file).
    """

    def __init__(self, encoding_name: str = "cl100k_base"):
        self.encoding_name = encoding_name
        try:
            self.encoding = tiktoken.get_encoding(encoding_name)
        except Exception as e:
            logger.warning("tiktoken_encoding_unavailable", encoding=encoding_name, error=str(e))
            self.encoding = None

    def count_text(self, text: str) -> int:
        if not text:
            return 0
        if self.encoding is None:
            return (len(text) + 3) // 4
        return len(self.encoding.encode(text))

    def count_message(self, message: Message) -> int:
        tokens = MESSAGE_OVERHEAD + self.count_text(message.text)
        for call in message.tool_calls or []:
            tokens += self.count_text(call.name)
            tokens += self.count_text(json.dumps(call.arguments, sort_keys=True))
        if message.name:
            tokens += self.count_text(message.name)
        return tokens

    def count_messages(self, messages: list[Message]) -> int:
        return sum(self.count_message(m) for m in messages)


__all__ = ["MESSAGE_OVERHEAD", "TokenEstimator"]
