"""Heuristic token estimation.

Not a tokenizer: roughly 4 characters per token for Latin text and 1.5
characters per token for CJK text. Good enough for usage fields and
statistics, never for billing.
"""

import math
import re

from gatex.entities import ChatMessage

_CJK = re.compile(r"[\u4e00-\u9fff\u3000-\u303f\u3040-\u309f\u30a0-\u30ff]")


def estimate_tokens(text: str) -> int:
    cjk_count = len(_CJK.findall(text))
    other_count = len(text) - cjk_count
    return math.ceil(cjk_count / 1.5 + other_count / 4)


def estimate_message_tokens(messages: list[ChatMessage]) -> int:
    return sum(estimate_tokens(m.content) for m in messages)
