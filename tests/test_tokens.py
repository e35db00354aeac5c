"""
Tests for the token estimate heuristic.
"""

from gatex.entities import ChatMessage
from gatex.utils import estimate_message_tokens, estimate_tokens


def test_empty_text():
    assert estimate_tokens("") == 0


def test_latin_text_rounds_up():
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2


def test_cjk_text_counts_denser():
    assert estimate_tokens("你好世") == 2


def test_mixed_text():
    # 3 CJK chars / 1.5 + 4 Latin chars / 4
    assert estimate_tokens("你好世abcd") == 3


def test_message_tokens_sum_per_message():
    messages = [ChatMessage.user("abcde"), ChatMessage.assistant("abcd")]
    assert estimate_message_tokens(messages) == 3
