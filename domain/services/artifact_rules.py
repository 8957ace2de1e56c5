# domain/services/artifact_rules.py
"""
Shape rules every published MultiAgentAnalysis must satisfy.

Entry points have to be file paths, not exploration instructions the model
sometimes emits ("Check src/ for the server"). Recommendation names have to
be bare lowercase tokens.
"""
import re
from typing import Iterable, List

ENTRY_POINT_EXTENSIONS = ("ts", "js", "tsx", "jsx", "mjs", "cjs", "py", "go", "rs")

_EXTENSION_RE = re.compile(r"\.(%s)$" % "|".join(ENTRY_POINT_EXTENSIONS))

INSTRUCTION_VERB_RE = re.compile(
    r"^(check|open|look|run|see|review|find|inspect|if|search)\b",
    re.IGNORECASE,
)


def is_valid_entry_point(entry_point: str) -> bool:
    candidate = entry_point.strip()
    if not candidate:
        return False
    has_extension = bool(_EXTENSION_RE.search(candidate))
    has_separator = "/" in candidate
    is_instruction = bool(INSTRUCTION_VERB_RE.match(candidate))
    return (has_extension or has_separator) and not is_instruction


def has_valid_entry_points(entry_points: List[str]) -> bool:
    return bool(entry_points) and all(is_valid_entry_point(ep) for ep in entry_points)


def filter_valid_entry_points(entry_points: Iterable[str]) -> List[str]:
    """Keep path-shaped entries, stripped and de-duplicated in first-seen order"""
    seen = set()
    result = []
    for entry_point in entry_points:
        if not isinstance(entry_point, str) or not is_valid_entry_point(entry_point):
            continue
        cleaned = entry_point.strip()
        if cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result


def normalize_recommendation_name(name: str) -> str:
    # "postgres (for the orders db)" -> "postgres"
    return name.split("(", 1)[0].strip().lower()


def normalize_recommendations(names: Iterable[str], exclude: Iterable[str] = ()) -> List[str]:
    """Normalise, drop empties and excluded names, de-duplicate in first-seen order"""
    excluded = {normalize_recommendation_name(name) for name in exclude}
    seen = set()
    result = []
    for name in names:
        if not isinstance(name, str):
            continue
        normalized = normalize_recommendation_name(name)
        if not normalized or normalized in excluded or normalized in seen:
            continue
        seen.add(normalized)
        result.append(normalized)
    return result


def dedupe(items: Iterable[str], limit: int = 0) -> List[str]:
    seen = set()
    result = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        result.append(item)
        if limit and len(result) >= limit:
            break
    return result
