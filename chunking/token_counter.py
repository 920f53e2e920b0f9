"""
Token Counter

Uses tiktoken with the cl100k_base encoding as a conservative estimate of
how many tokens an embedding model will see for a chunk. Only used when the
embedding provider does not report its own token usage.

Usage:
    from chunking.token_counter import count_tokens

    n = count_tokens("An example sentence.")
"""

from functools import lru_cache

import tiktoken

DEFAULT_ENCODING = "cl100k_base"


@lru_cache(maxsize=4)
def get_encoder(encoding_name: str = DEFAULT_ENCODING) -> tiktoken.Encoding:
    """Load (once per name) and return a tiktoken encoding."""
    return tiktoken.get_encoding(encoding_name)


def count_tokens(text: str, encoding_name: str = DEFAULT_ENCODING) -> int:
    """
    Count the number of tokens in a text string.

    Args:
        text: The text to tokenize.
        encoding_name: tiktoken encoding to use.

    Returns:
        Number of tokens (0 for empty text).
    """
    if not text:
        return 0
    return len(get_encoder(encoding_name).encode(text))
