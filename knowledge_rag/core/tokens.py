"""
Token estimation shared by chunking, embedding and composition.

Uses the 4-bytes-per-token heuristic instead of a real tokenizer.
"""

import math


def estimate_tokens(text: str) -> int:
    """Estimate language-model tokens as ceil(utf8 byte length / 4)."""
    return math.ceil(len(text.encode("utf-8")) / 4)
