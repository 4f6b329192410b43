"""Deterministic section extraction for the free-text requirements and rubric.

Accepts two layouts:
  - a JSON object (the format earlier prompt versions asked for), keys
    matched case- and separator-insensitively ("successCriteria" ==
    "Success Criteria");
  - marker sections, one heading per line: "## Title", "**Title:**",
    or "Title: inline text".

Missing sections come back as "". Nothing here raises on bad input.
"""

import json
import re
from typing import Any, Iterable

from taskdesigner.core.models import RubricCriterion
from taskdesigner.services.completion import parse_json

_HEADING_RE = re.compile(
    r"^\s*(?:#{1,6}\s*)?(?:\*\*)?(?P<name>[A-Za-z][A-Za-z /&-]*?)(?:\*\*)?"
    r"\s*(?::\s*(?:\*\*)?\s*(?P<rest>.*?))?\s*$"
)

_CRITERION_RE = re.compile(
    r"^\s*(?:[-*•]|\d+[.)])?\s*(?:\*\*)?(?P<name>[A-Za-z][\w /&-]*?)(?:\*\*)?"
    r"\s*:\s*(?:\*\*)?\s*(?P<desc>.+?)\s*$"
)


def normalize_key(name: str) -> str:
    """Lowercase, drop separators and a trailing plural 's'."""
    key = re.sub(r"[^a-z0-9]", "", name.lower())
    return key[:-1] if key.endswith("s") else key


def as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple)):
        return "\n".join(as_text(v) for v in value if v is not None)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _from_json(text: str, names: Iterable[str]) -> dict[str, Any] | None:
    if "{" not in text:
        return None
    try:
        data = parse_json(text)
    except (json.JSONDecodeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None

    by_key = {normalize_key(k): v for k, v in data.items()}
    wanted = [normalize_key(name) for name in names]
    # An inline object inside marker text is not the reply itself
    if not text.lstrip().startswith(("{", "```")) and not any(k in by_key for k in wanted):
        return None
    return {name: by_key.get(normalize_key(name), "") for name in names}


def _from_markers(text: str, names: Iterable[str]) -> dict[str, Any]:
    wanted = {normalize_key(name): name for name in names}
    collected: dict[str, list[str]] = {name: [] for name in wanted.values()}
    current: str | None = None

    for line in text.splitlines():
        match = _HEADING_RE.match(line)
        if match:
            name = wanted.get(normalize_key(match.group("name")))
            if name is not None:
                current = name
                rest = match.group("rest")
                if rest:
                    collected[name].append(rest)
                continue
            if line.lstrip().startswith("#"):
                current = None
                continue
        if current is not None:
            collected[current].append(line)

    return {name: "\n".join(lines).strip() for name, lines in collected.items()}


def extract_sections(text: str | None, names: Iterable[str]) -> dict[str, Any]:
    """Split text into the named sections; unknown or missing ones are ""."""
    names = tuple(names)
    if not text or not text.strip():
        return {name: "" for name in names}
    parsed = _from_json(text, names)
    if parsed is not None:
        return parsed
    return _from_markers(text, names)


def parse_rubric_criteria(value: Any) -> list[RubricCriterion]:
    """Parse "- Level: description" bullets, or a JSON criteria list.

    Returns an empty list when nothing usable is found.
    """
    criteria: list[RubricCriterion] = []

    if isinstance(value, list):
        for position, item in enumerate(value, start=1):
            if not isinstance(item, dict) or not item.get("name"):
                continue
            order = item.get("orderNumber", item.get("order_number", position))
            try:
                order = int(order)
            except (TypeError, ValueError):
                order = position
            criteria.append(
                RubricCriterion(
                    name=as_text(item["name"]),
                    description=as_text(item.get("description")),
                    order_number=order,
                )
            )
        return criteria

    for line in as_text(value).splitlines():
        match = _CRITERION_RE.match(line)
        if not match:
            continue
        criteria.append(
            RubricCriterion(
                name=match.group("name").strip(),
                description=match.group("desc").strip(),
                order_number=len(criteria) + 1,
            )
        )
    return criteria
