# backend/app/services/oracle/verdict_parser.py
"""
Parser for the classification oracle's free-text answers.

The oracle is an LLM-style service with no schema; a typical answer is

    ### Classification: Malicious
    ...
    Based on the analysis, here are the recommended security measures:
    1. Block the source IP at the perimeter firewall
    2. Isolate the destination host

Everything brittle about that text contract lives here. Callers only see
ParsedVerdict or UnparseableVerdict; nothing in this module raises.
"""
import re
from dataclasses import dataclass, field
from typing import List, Optional, Union

FALLBACK_CLASSIFICATION = "unknown"
FALLBACK_ACTIONS = ["Monitor traffic"]

_CLASSIFICATION_RE = re.compile(r"#{1,6}[ \t]*Classification[ \t]*:[ \t]*([^\n]*)", re.IGNORECASE)
_ACTIONS_RE = re.compile(
    r"(?:recommended security measures\s*:|#{1,6}[ \t]*Recommended Actions[ \t]*:?)(.*)",
    re.IGNORECASE | re.DOTALL,
)
_NEXT_HEADING_RE = re.compile(r"^\s*#{1,6}\s", re.MULTILINE)
_BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")


@dataclass(frozen=True)
class ParsedVerdict:
    classification: str
    actions: List[str] = field(default_factory=lambda: list(FALLBACK_ACTIONS))


@dataclass(frozen=True)
class UnparseableVerdict:
    reason: str
    classification: str = FALLBACK_CLASSIFICATION
    actions: List[str] = field(default_factory=lambda: list(FALLBACK_ACTIONS))


OracleVerdict = Union[ParsedVerdict, UnparseableVerdict]


def _clean(text: str) -> str:
    return text.replace("**", "").replace("__", "").strip().strip("`").strip()


def _extract_classification(text: str) -> Optional[str]:
    match = _CLASSIFICATION_RE.search(text)
    if not match:
        return None
    label = _clean(match.group(1))
    return label or None


def _extract_actions(text: str) -> List[str]:
    match = _ACTIONS_RE.search(text)
    if not match:
        return []

    block = match.group(1)
    # stop at the next markdown heading, if any
    heading = _NEXT_HEADING_RE.search(block)
    if heading:
        block = block[: heading.start()]

    actions: List[str] = []
    for line in block.splitlines():
        item = _clean(_BULLET_RE.sub("", line))
        if item:
            actions.append(item)
    return actions


def parse_verdict(text: Optional[str]) -> OracleVerdict:
    if not isinstance(text, str) or not text.strip():
        return UnparseableVerdict(reason="empty oracle response")

    classification = _extract_classification(text)
    if classification is None:
        return UnparseableVerdict(reason="classification marker not found")

    actions = _extract_actions(text) or list(FALLBACK_ACTIONS)
    return ParsedVerdict(classification=classification, actions=actions)
