import re

# One opening fence with an optional language tag, e.g. ```json
FENCE_OPEN = re.compile(r"^```[\w+-]*[ \t]*\n?")
FENCE_CLOSE = re.compile(r"\n?```$")

def strip_code_fence(text: str) -> str:
    """
    Remove a single optional markdown code fence around the reply and trim it

    Args:
        text: Raw reply text

    Returns:
        The unwrapped text
    """
    text = text.strip()
    text = FENCE_OPEN.sub("", text, count=1)
    text = FENCE_CLOSE.sub("", text, count=1)
    return text.strip()
