import math


def estimate_tokens(text: str) -> int:
    """
    Estimate token count from text using a word-based approximation

    Args:
        text: Input text to estimate tokens for

    Returns:
        Estimated token count
    """
    # Slovak words split into more tokens than English ones, so round up
    return math.ceil(len(text.split()) * 1.5)
