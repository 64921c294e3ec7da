"""Cleanup of raw model text before it is parsed as JSON.

Models wrap JSON in markdown fences, open with a sentence of chatter, close
with a remark, and sometimes write ``"spirit": +8``. Each step below removes
one of these artifacts; the result is the best candidate for ``json.loads``
but is not guaranteed to be valid.
"""

import re

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"```$")
_PLUS_NUMERAL_RE = re.compile(r":\s*\++(\d+)")
_CONTINUATION_RE = re.compile(r"^[,}\]]")


def strip_code_fence(text: str) -> str:
    """Reduce ``text`` to the span between the outermost JSON brackets."""
    output = text.strip()

    if output.startswith("```"):
        output = _FENCE_OPEN_RE.sub("", output)
        output = _FENCE_CLOSE_RE.sub("", output).strip()
    if output.lower().startswith("json"):
        output = output[4:].strip()

    # leading prose
    match = re.search(r"[{\[]", output)
    if match and match.start() > 0:
        output = output[match.start():]

    # trailing prose
    last = max(output.rfind("}"), output.rfind("]"))
    if 0 < last < len(output) - 1:
        after = output[last + 1:].strip()
        if after and not _CONTINUATION_RE.match(after):
            output = output[:last + 1]

    return output.strip()


def repair_numerals(text: str) -> str:
    """``"spirit": +8`` → ``"spirit": 8`` (any number of plus signs)."""
    return _PLUS_NUMERAL_RE.sub(r": \1", text)


def sanitize(text: str) -> str:
    return repair_numerals(strip_code_fence(text))
