"""Text helpers shared by the agents and the CLI."""

import re

_SPEECH_SYMBOLS = re.compile(r"[*#`_]")
_CODE_FENCE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?```$", re.DOTALL)


def clean_for_speech(text: str) -> str:
    """Strip markdown symbols so the text reads naturally through a speech engine."""
    if not text:
        return ""
    return _SPEECH_SYMBOLS.sub("", text)


def strip_code_fence(text: str) -> str:
    """Return the body of a fenced block, or the stripped text if it is not fenced.

    JSON mode usually returns a bare object, but models sometimes wrap it
    in a ```json fence anyway.
    """
    stripped = text.strip()
    match = _CODE_FENCE.match(stripped)
    if match:
        return match.group(1).strip()
    return stripped
