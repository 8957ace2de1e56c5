# shared/json_repair.py
"""
Tolerant extraction of a JSON object from free-form model output.

Models wrap JSON in prose and Markdown fences, leave trailing commas, emit
raw newlines inside strings, or stop mid-object when they run out of tokens.
``extract_json`` locates the outermost object and repairs the common defects.
It knows nothing about any schema and never raises.
"""
import json
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

_FENCE_RE = re.compile(r"```[a-zA-Z0-9_-]*[ \t]*\n?(.*?)```", re.DOTALL)

_LITERALS = {
    "True": "true",
    "False": "false",
    "None": "null",
    "true": "true",
    "false": "false",
    "null": "null",
}

_VALID_ESCAPES = set('"\\/bfnrtu')

_CONTROL_ESCAPES = {
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\b": "\\b",
    "\f": "\\f",
}

_CLOSERS = {"{": "}", "[": "]"}


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block that holds an object, else the text."""
    for match in _FENCE_RE.finditer(text):
        body = match.group(1)
        if "{" in body:
            return body
    return text


def find_object_span(text: str) -> Optional[str]:
    """Return the outermost balanced ``{...}`` span, string-aware.

    When the object never closes (truncated output) the span runs to the last
    closing brace, or to the end of the text, and is left for repair.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for idx in range(start, len(text)):
        ch = text[idx]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:idx + 1]

    end = text.rfind("}")
    if end > start:
        return text[start:end + 1]
    return text[start:]


def _skip_whitespace(text: str, idx: int) -> int:
    while idx < len(text) and text[idx].isspace():
        idx += 1
    return idx


def _read_string(text: str, start: int) -> Tuple[str, int]:
    """Read a single- or double-quoted string and return it as valid JSON."""
    quote = text[start]
    chars: List[str] = []
    idx = start + 1
    while idx < len(text):
        ch = text[idx]
        if ch == "\\" and idx + 1 < len(text):
            nxt = text[idx + 1]
            if nxt == "'":
                chars.append("'")
            elif nxt in _VALID_ESCAPES:
                chars.append(ch + nxt)
            else:
                chars.append("\\\\" + nxt)
            idx += 2
            continue
        if ch == quote:
            return '"' + "".join(chars) + '"', idx + 1
        if ch == '"':
            chars.append('\\"')
        elif ch in _CONTROL_ESCAPES:
            chars.append(_CONTROL_ESCAPES[ch])
        elif ord(ch) < 0x20:
            chars.append("\\u%04x" % ord(ch))
        else:
            chars.append(ch)
        idx += 1
    # Unterminated string: close it where the text ends
    return '"' + "".join(chars) + '"', idx


def repair_json(candidate: str) -> str:
    """Rewrite common model-output defects into parseable JSON.

    Handles comments, trailing commas, missing commas between values,
    single-quoted strings, raw control characters inside strings, Python
    literals, unquoted keys and unclosed brackets.
    """
    out: List[str] = []
    stack: List[str] = []
    after_value = False
    idx = 0
    length = len(candidate)

    while idx < length:
        ch = candidate[idx]

        if ch in ('"', "'"):
            literal, idx = _read_string(candidate, idx)
            if after_value:
                out.append(",")
            out.append(literal)
            after_value = True
            continue

        if candidate.startswith("//", idx):
            end = candidate.find("\n", idx)
            idx = length if end == -1 else end
            continue

        if candidate.startswith("/*", idx):
            end = candidate.find("*/", idx + 2)
            idx = length if end == -1 else end + 2
            continue

        if ch == ",":
            nxt = _skip_whitespace(candidate, idx + 1)
            if nxt >= length or candidate[nxt] in "]}":
                idx += 1
                continue
            out.append(",")
            after_value = False
            idx += 1
            continue

        if ch in "{[":
            if after_value:
                out.append(",")
            out.append(ch)
            stack.append(_CLOSERS[ch])
            after_value = False
            idx += 1
            continue

        if ch in "}]":
            if stack and stack[-1] == ch:
                stack.pop()
            out.append(ch)
            after_value = True
            idx += 1
            continue

        if ch == ":":
            out.append(ch)
            after_value = False
            idx += 1
            continue

        if ch.isalpha() or ch == "_":
            end = idx
            while end < length and (candidate[end].isalnum() or candidate[end] == "_"):
                end += 1
            word = candidate[idx:end]
            if after_value:
                out.append(",")
            if _skip_whitespace(candidate, end) < length and candidate[_skip_whitespace(candidate, end)] == ":":
                out.append(json.dumps(word))
            else:
                out.append(_LITERALS.get(word, json.dumps(word)))
            after_value = True
            idx = end
            continue

        if ch.isdigit() or ch == "-":
            end = idx + 1
            while end < length and (candidate[end].isdigit() or candidate[end] in ".eE+-"):
                end += 1
            if after_value:
                out.append(",")
            out.append(candidate[idx:end])
            after_value = True
            idx = end
            continue

        out.append(ch)
        idx += 1

    # Truncated output: drop a dangling comma or colon, then close what is open
    while out and out[-1].strip() in (",", ":"):
        out.pop()
    out.extend(reversed(stack))
    return "".join(out)


def _loads_object(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(candidate)
    except (ValueError, RecursionError):
        return None
    return parsed if isinstance(parsed, dict) else None


def extract_json(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Locate, repair and parse the JSON object embedded in ``text``.

    Returns ``None`` when no usable object can be recovered.
    """
    if not text or not text.strip():
        return None

    seen = set()
    for source in (strip_code_fences(text), text):
        span = find_object_span(source)
        if span is None or span in seen:
            continue
        seen.add(span)

        parsed = _loads_object(span)
        if parsed is not None:
            return parsed

        try:
            repaired = repair_json(span)
        except (ValueError, IndexError):
            continue
        parsed = _loads_object(repaired)
        if parsed is not None:
            return parsed

    return None


def extract_last_text(text: Optional[str], step_texts: Iterable[Optional[str]] = ()) -> str:
    """Return the final text, or the last non-empty step text when it is blank."""
    if text and text.strip():
        return text
    for step_text in reversed(list(step_texts)):
        if step_text and step_text.strip():
            return step_text
    return ""
