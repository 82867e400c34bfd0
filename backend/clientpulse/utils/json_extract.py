"""Salvage JSON objects out of free-form model responses."""
import json
import re
from typing import Any, Dict, Iterator, List, Optional, Tuple

CODE_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)


def iter_balanced_objects(text: str) -> Iterator[str]:
    """
    Yield every balanced ``{...}`` span in ``text``, ordered by start offset.

    One left-to-right pass keeps a stack of open brace offsets; an opener
    that is never closed is simply left on the stack. Braces inside JSON
    string literals (including escaped quotes) do not count, and quotes only
    open a string while some brace is open.
    """
    spans: List[Tuple[int, int]] = []
    stack: List[int] = []
    in_str = False
    esc = False
    for i, ch in enumerate(text):
        if in_str:
            if esc:
                esc = False
            elif ch == "\\":
                esc = True
            elif ch == '"':
                in_str = False
        elif ch == '"':
            in_str = bool(stack)
        elif ch == "{":
            stack.append(i)
        elif ch == "}" and stack:
            spans.append((stack.pop(), i))

    for start, end in sorted(spans):
        yield text[start:end + 1]


def extract_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Return the first balanced span that parses as a JSON object, else None."""
    if not text:
        return None

    cleaned = CODE_FENCE_PATTERN.sub("", text)
    for candidate in iter_balanced_objects(cleaned):
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            # Trailing commas are a common slip in model output
            try:
                parsed = json.loads(re.sub(r",\s*([}\]])", r"\1", candidate))
            except json.JSONDecodeError:
                continue
        if isinstance(parsed, dict):
            return parsed
    return None
