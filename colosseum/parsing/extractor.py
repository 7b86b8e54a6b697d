"""Pull a JSON payload out of free-form model output.

Model replies routinely wrap the payload in prose or a Markdown fence, and
sometimes emit JavaScript-flavoured JSON (trailing commas, single quotes,
bare keys). ``extract_json`` tolerates all of that and returns ``None`` when
nothing usable is found; it never validates domain content.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Iterator, Optional

JSON_FENCE_PATTERN = re.compile(r"```json\s*([\s\S]*?)```", re.IGNORECASE)
TRAILING_COMMA_PATTERN = re.compile(r",\s*([}\]])")
UNQUOTED_KEY_PATTERN = re.compile(r"([{,])\s*([A-Za-z_][A-Za-z0-9_]*)\s*:")

_BRACKETS = {"object": ("{", "}"), "array": ("[", "]")}


def fix_trailing_commas(text: str) -> str:
    return TRAILING_COMMA_PATTERN.sub(r"\1", text)


def fix_single_quotes(text: str) -> str:
    return text.replace("'", '"')


def fix_unquoted_keys(text: str) -> str:
    return UNQUOTED_KEY_PATTERN.sub(r'\1"\2":', text)


_REPAIRS: tuple[Callable[[str], str], ...] = (
    lambda s: s,
    fix_trailing_commas,
    lambda s: fix_trailing_commas(fix_single_quotes(s)),
    lambda s: fix_trailing_commas(fix_unquoted_keys(s)),
    lambda s: fix_unquoted_keys(fix_single_quotes(fix_trailing_commas(s))),
)


def _try_parse(candidate: str) -> Optional[Any]:
    for repair in _REPAIRS:
        try:
            return json.loads(repair(candidate))
        except (json.JSONDecodeError, ValueError):
            continue
    return None


def _balanced_spans(text: str, opener: str, closer: str) -> Iterator[str]:
    """Yield every balanced ``opener ... closer`` substring, ordered by start."""
    for start, char in enumerate(text):
        if char != opener:
            continue
        depth = 0
        quote: Optional[str] = None
        escaped = False
        for idx in range(start, len(text)):
            ch = text[idx]
            if quote:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == quote:
                    quote = None
                continue
            if ch in ('"', "'"):
                quote = ch
            elif ch == opener:
                depth += 1
            elif ch == closer:
                depth -= 1
                if depth == 0:
                    yield text[start : idx + 1]
                    break


def _accepts(value: Any, expect: str, required_key: Optional[str]) -> bool:
    if expect == "array":
        return isinstance(value, list)
    if not isinstance(value, dict):
        return False
    return required_key is None or required_key in value


def extract_json(
    raw_text: Optional[str],
    *,
    required_key: Optional[str] = None,
    expect: str = "object",
) -> Optional[Any]:
    """Return the first JSON value in ``raw_text`` matching the call site.

    Args:
        raw_text: Assistant text as returned by the completion endpoint.
        required_key: Anchor key the object must carry at top level
            (e.g. ``"trades"``). Ignored when ``expect="array"``.
        expect: ``"object"`` (default) or ``"array"``.

    Returns ``None`` for empty input, malformed JSON or when no candidate
    carries the anchor key.
    """
    if expect not in _BRACKETS:
        raise ValueError(f"expect must be 'object' or 'array', got {expect!r}")
    if not raw_text or not isinstance(raw_text, str):
        return None
    text = raw_text.strip()
    if not text:
        return None

    fence = JSON_FENCE_PATTERN.search(text)
    if fence:
        parsed = _try_parse(fence.group(1).strip())
        if parsed is not None and _accepts(parsed, expect, required_key):
            return parsed

    opener, closer = _BRACKETS[expect]
    for span in _balanced_spans(text, opener, closer):
        parsed = _try_parse(span)
        if parsed is not None and _accepts(parsed, expect, required_key):
            return parsed

    # Last resort: first opener to last closer, for replies whose quoting
    # confuses the bracket scanner.
    first = text.find(opener)
    last = text.rfind(closer)
    if first != -1 and last > first:
        parsed = _try_parse(text[first : last + 1])
        if parsed is not None and _accepts(parsed, expect, required_key):
            return parsed

    return None


__all__ = [
    "extract_json",
    "fix_single_quotes",
    "fix_trailing_commas",
    "fix_unquoted_keys",
]
