"""Decision parsing: free-form model text to a structured Decision.

Extractors are pure functions ``(text, known) -> Decision | None`` tried
in a fixed order on the whole response; the first one that matches wins
and partial matches are never merged. When none match, the inference
fallback always produces a decision, so the loop can terminate even on
output it cannot read.

Formats understood, in order:

1. Tagged block::

       <TOOL_DECISION>
       ACTION: read_file
       INPUT: {"filepath": "README.md"}
       REASONING: Need to see the readme
       STATUS: continue
       </TOOL_DECISION>

2. A JSON object with ``action``/``input``/``reasoning``/``status`` keys,
   bare, fenced, or embedded in prose.
3. The same markers with ``INPUT`` written as ``key: value`` lines.
4. A ``TASK COMPLETE`` marker at the start of the response.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Iterable, Mapping, Sequence, Union

from agentloop.exceptions import DecisionParseError
from agentloop.orchestrator.models import Decision, DecisionStatus, ParseResult

logger = logging.getLogger(__name__)

KnownActions = Union[Sequence[str], Mapping[str, Sequence[str]]]
Extractor = Callable[[str, Mapping[str, tuple[str, ...]]], Union[Decision, None]]

_MARKER_LINE_RE = re.compile(r"^\s*(ACTION|INPUT|REASONING|STATUS)\s*:\s?(.*)$")
_TAGGED_RE = re.compile(r"<TOOL_DECISION>(.*?)</TOOL_DECISION>", re.DOTALL | re.IGNORECASE)
_OPEN_TAG_RE = re.compile(r"</?TOOL_DECISION>", re.IGNORECASE)
_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)```", re.DOTALL | re.IGNORECASE)
_KEY_VALUE_RE = re.compile(r"^\s*(?:[-*]\s*)?([A-Za-z_][\w\-]*)\s*[:=]\s*(.*?)\s*$")
_COMPLETION_RE = re.compile(r"^\s*TASK[ _]COMPLETE\b[\s:.\-!]*(.*)$", re.DOTALL | re.IGNORECASE)
_QUOTED_PATH_RE = re.compile(r"[\"'`]([^\"'`\s]*[./][^\"'`\s]*)[\"'`]")

_PATH_PARAMETERS = ("filepath", "path")
COMPLETION_DEFAULT = "Task completed successfully"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _normalize_known(known_actions: KnownActions) -> dict[str, tuple[str, ...]]:
    if isinstance(known_actions, Mapping):
        return {name: tuple(params) for name, params in known_actions.items()}
    return {name: () for name in known_actions}


def normalize_status(raw: str | None) -> DecisionStatus:
    """Map a status string to DecisionStatus; anything unrecognized is ``continue``."""
    if raw is None or not str(raw).strip():
        return DecisionStatus.CONTINUE
    value = str(raw).strip().lower()
    try:
        return DecisionStatus(value)
    except ValueError:
        logger.warning("Invalid decision status %r, defaulting to 'continue'", raw)
        return DecisionStatus.CONTINUE


def split_fields(block: str) -> dict[str, str]:
    """Split marker fields out of a block.

    A field's value starts after its ``MARKER:`` and runs until the next
    marker line. The first occurrence of each marker wins.
    """
    fields: dict[str, list[str]] = {}
    current: list[str] | None = None
    for line in block.split("\n"):
        match = _MARKER_LINE_RE.match(line)
        if match:
            marker = match.group(1)
            if marker in fields:
                current = None
                continue
            current = [match.group(2)]
            fields[marker] = current
        elif current is not None:
            current.append(line)
    return {marker: "\n".join(lines).strip() for marker, lines in fields.items()}


def _coerce_scalar(value: str) -> Any:
    try:
        return json.loads(value)
    except ValueError:
        return value


def _parse_key_value_lines(text: str) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for line in text.split("\n"):
        match = _KEY_VALUE_RE.match(line)
        if match:
            result[match.group(1)] = _coerce_scalar(match.group(2))
    return result


def _load_json_object(text: str) -> dict | None:
    try:
        value = json.loads(text)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


# ---------------------------------------------------------------------------
# Extractors
# ---------------------------------------------------------------------------

def extract_tagged_block(text: str, known: Mapping[str, tuple[str, ...]]) -> Decision | None:
    """``<TOOL_DECISION>`` block whose INPUT is a JSON object."""
    match = _TAGGED_RE.search(text)
    if match is None:
        return None
    fields = split_fields(match.group(1))
    if "ACTION" not in fields and "STATUS" not in fields:
        return None
    raw_input = fields.get("INPUT", "")
    if raw_input:
        parsed = _load_json_object(raw_input)
        if parsed is None:
            logger.debug("Tagged block INPUT is not a JSON object: %r", raw_input[:80])
            return None
    else:
        parsed = {}
    return Decision(
        action=fields.get("ACTION", ""),
        input=parsed,
        reasoning=fields.get("REASONING", ""),
        status=normalize_status(fields.get("STATUS")),
    )


def _json_candidates(text: str) -> Iterable[str]:
    yield text.strip()
    for fence in _FENCE_RE.finditer(text):
        yield fence.group(1).strip()
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        yield text[start:end + 1]


def extract_structured_payload(
    text: str, known: Mapping[str, tuple[str, ...]]
) -> Decision | None:
    """A JSON object carrying the whole decision."""
    for candidate in _json_candidates(text):
        payload = _load_json_object(candidate)
        if payload is None:
            continue
        payload = {str(k).lower(): v for k, v in payload.items()}
        if "action" not in payload and "status" not in payload:
            continue
        action = payload.get("action") or ""
        decision_input = payload.get("input")
        if decision_input is None:
            decision_input = {}
        if not isinstance(action, str) or not isinstance(decision_input, dict):
            continue
        reasoning = payload.get("reasoning")
        return Decision(
            action=action.strip(),
            input=decision_input,
            reasoning="" if reasoning is None else str(reasoning),
            status=normalize_status(payload.get("status")),
        )
    return None


def extract_loose_block(text: str, known: Mapping[str, tuple[str, ...]]) -> Decision | None:
    """Marker fields with INPUT given as ``key: value`` lines."""
    match = _TAGGED_RE.search(text)
    block = match.group(1) if match else _OPEN_TAG_RE.sub("", text)
    fields = split_fields(block)
    if "ACTION" not in fields and "STATUS" not in fields:
        return None
    raw_input = fields.get("INPUT", "")
    parsed = _load_json_object(raw_input) if raw_input else None
    if parsed is None:
        parsed = _parse_key_value_lines(raw_input)
    return Decision(
        action=fields.get("ACTION", ""),
        input=parsed,
        reasoning=fields.get("REASONING", ""),
        status=normalize_status(fields.get("STATUS")),
    )


def extract_completion_marker(
    text: str, known: Mapping[str, tuple[str, ...]]
) -> Decision | None:
    """``TASK COMPLETE`` / ``TASK_COMPLETE`` at the start of the response."""
    match = _COMPLETION_RE.match(text)
    if match is None:
        return None
    summary = match.group(1).strip()
    return Decision(
        reasoning=summary or COMPLETION_DEFAULT,
        status=DecisionStatus.FINAL,
    )


def _scrape_input(text: str, params: tuple[str, ...]) -> dict[str, Any]:
    scraped: dict[str, Any] = {}
    for param in params:
        pattern = re.compile(
            rf"\b{re.escape(param)}\s*[=:]\s*(?:\"([^\"]*)\"|'([^']*)'|([^\s,;]+))"
        )
        found = pattern.search(text)
        if found:
            value = next(g for g in found.groups() if g is not None)
            scraped[param] = value
    for param in (p for p in _PATH_PARAMETERS if p in params):
        if param in scraped:
            continue
        quoted = _QUOTED_PATH_RE.search(text)
        if quoted:
            scraped[param] = quoted.group(1)
    return scraped


def infer_decision(
    text: str,
    known: Mapping[str, tuple[str, ...]],
    raw_text: str | None = None,
) -> Decision:
    """Last resort: guess from the earliest known action name, else treat as the answer.

    Only declared parameters are scraped into the input. With no known action
    in ``text``, the final answer is ``raw_text`` exactly as received (``text``
    when not given).
    """
    best_name: str | None = None
    best_pos = -1
    for name in known:
        found = re.search(rf"(?<![\w]){re.escape(name)}(?![\w])", text)
        if found and (best_name is None or found.start() < best_pos):
            best_name, best_pos = name, found.start()

    if best_name is None:
        answer = text if raw_text is None else raw_text
        return Decision(reasoning=answer, status=DecisionStatus.FINAL)

    snippet = " ".join(text.split())[:200]
    return Decision(
        action=best_name,
        input=_scrape_input(text, known[best_name]),
        reasoning=f"Inferred from response: {snippet}",
        status=DecisionStatus.CONTINUE,
    )


DEFAULT_EXTRACTORS: tuple[tuple[str, Extractor], ...] = (
    ("tagged_block", extract_tagged_block),
    ("structured_payload", extract_structured_payload),
    ("loose_block", extract_loose_block),
    ("completion_marker", extract_completion_marker),
)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class DecisionParser:
    """Runs extractors in order and falls back to inference.

    Usage::

        parser = DecisionParser()
        decision = parser.parse(response_text, ["read_file", "list_files"])
    """

    def __init__(
        self, extractors: Iterable[tuple[str, Extractor]] = DEFAULT_EXTRACTORS
    ) -> None:
        self._extractors = tuple(extractors)

    def parse_detailed(self, raw_text: str, known_actions: KnownActions) -> ParseResult:
        """Parse ``raw_text`` and report which extractor produced the decision.

        Raises:
            DecisionParseError: If ``raw_text`` is not a string or an
                extractor fails unexpectedly.
        """
        if not isinstance(raw_text, str):
            raise DecisionParseError(
                f"Model response must be text, got {type(raw_text).__name__}"
            )
        text = raw_text.replace("\r\n", "\n").replace("\r", "\n")
        known = _normalize_known(known_actions)

        for name, extractor in self._extractors:
            try:
                decision = extractor(text, known)
            except Exception as exc:
                raise DecisionParseError(f"Extractor {name!r} failed: {exc}") from exc
            if decision is not None:
                logger.debug("Decision parsed by %s: action=%r", name, decision.action)
                return ParseResult(decision=decision, source=name)

        try:
            decision = infer_decision(text, known, raw_text)
        except Exception as exc:
            raise DecisionParseError(f"Inference fallback failed: {exc}") from exc
        logger.debug("Decision inferred: action=%r status=%s", decision.action, decision.status.value)
        return ParseResult(decision=decision, source="inference")

    def parse(self, raw_text: str, known_actions: KnownActions) -> Decision:
        return self.parse_detailed(raw_text, known_actions).decision


def parse_decision(raw_text: str, known_actions: KnownActions) -> Decision:
    """Parse ``raw_text`` with the default extractors."""
    return DecisionParser().parse(raw_text, known_actions)
