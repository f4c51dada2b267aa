"""Data models for the story world and metric results.

This module provides the typed view of what the external CNL front-end
hands to the interpreter:

- World: ordered scenes, extracted entities, scoped constraints, texts
- Diagnostics: parse/semantic validity with their errors and warnings
- Corpora / HumanRatings: optional reference data and human judgements
- MetricResult: the in-band outcome of one metric computation

Every model follows the same ``to_dict``/``from_dict`` convention.
``from_dict`` accepts both the snake_case keys used here and the
camelCase keys emitted by the front-end (``tokenCount``, ``sceneIds``...).

Example:
    >>> world = World.from_dict({
    ...     "scenes": {
    ...         "ordered_ids": ["s1"],
    ...         "by_id": {"s1": {"text": "Anna draws the Sword.", "entityMentions": ["anna"]}},
    ...     },
    ... })
    >>> world.scenes.count
    1
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping

from .exceptions import InvalidInputError
from .utils import as_number, count_tokens, first_present as _pick, normalize_string


def _as_mapping(value: Any, name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise InvalidInputError(
            f"{name} must be a mapping",
            context={"field": name, "type": type(value).__name__},
        )
    return value


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


class MetricStatus(str, Enum):
    """Outcome class of a metric computation."""

    OK = "ok"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass
class Event:
    """A subject-verb-objects statement that happens inside a scene."""

    subject: str = ""
    verb: str = ""
    objects: list[str] = field(default_factory=list)
    modifiers: dict[str, Any] = field(default_factory=dict)
    line: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject": self.subject,
            "verb": self.verb,
            "objects": list(self.objects),
            "modifiers": dict(self.modifiers),
            "line": self.line,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Event:
        return cls(
            subject=normalize_string(data.get("subject")),
            verb=normalize_string(data.get("verb")),
            objects=[str(o) for o in _as_list(data.get("objects")) if o is not None],
            modifiers=dict(data.get("modifiers") or {}),
            line=data.get("line"),
        )


@dataclass
class Scene:
    """One scene of the story in narrative order.

    Attributes:
        id: Scene identifier.
        text: Canonical scene text (described or synthesized).
        token_count: Whitespace token count of ``text``.
        chapter_id: Enclosing chapter, if any.
        entity_mentions: Lowercased names of entities mentioned in the scene.
        events: Events in statement order.
        includes: Explicit inclusions by kind (``characters``, ``locations``...).
        properties: Scene properties such as ``mood`` and ``tone``.
    """

    id: str
    text: str = ""
    token_count: int = 0
    chapter_id: str | None = None
    entity_mentions: set[str] = field(default_factory=set)
    events: list[Event] = field(default_factory=list)
    includes: dict[str, list[str]] = field(default_factory=dict)
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def included_characters(self) -> list[str]:
        return self.includes.get("characters", [])

    @property
    def included_locations(self) -> list[str]:
        return self.includes.get("locations", [])

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "token_count": self.token_count,
            "chapter_id": self.chapter_id,
            "entity_mentions": sorted(self.entity_mentions),
            "events": [e.to_dict() for e in self.events],
            "includes": {k: list(v) for k, v in self.includes.items()},
            "properties": dict(self.properties),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], scene_id: str | None = None) -> Scene:
        text = normalize_string(data.get("text"))
        raw_tokens = as_number(_pick(data, "token_count", "tokenCount"))
        token_count = int(raw_tokens) if raw_tokens is not None else count_tokens(text)
        includes = {
            str(k): [str(v) for v in _as_list(vals)]
            for k, vals in (data.get("includes") or {}).items()
        }
        return cls(
            id=str(scene_id if scene_id is not None else data.get("id", "")),
            text=text,
            token_count=token_count,
            chapter_id=_pick(data, "chapter_id", "chapterId"),
            entity_mentions={
                str(m).lower() for m in _as_list(_pick(data, "entity_mentions", "entityMentions"))
            },
            events=[Event.from_dict(e) for e in _as_list(data.get("events")) if isinstance(e, Mapping)],
            includes=includes,
            properties=dict(data.get("properties") or {}),
        )


@dataclass
class SceneIndex:
    """Scenes keyed by id, plus their narrative order."""

    ordered_ids: list[str] = field(default_factory=list)
    by_id: dict[str, Scene] = field(default_factory=dict)

    @property
    def count(self) -> int:
        return len(self.ordered_ids)

    def ordered(self) -> list[Scene]:
        """Scenes in narrative order, skipping ids with no scene record."""
        return [self.by_id[i] for i in self.ordered_ids if i in self.by_id]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SceneIndex:
        by_id_raw = _as_mapping(_pick(data, "by_id", "byId"), "scenes.by_id")
        by_id = {
            str(sid): Scene.from_dict(s, scene_id=str(sid))
            for sid, s in by_id_raw.items()
            if isinstance(s, Mapping)
        }
        ordered = _pick(data, "ordered_ids", "orderedIds")
        ordered_ids = [str(i) for i in _as_list(ordered)] if ordered is not None else list(by_id)
        return cls(ordered_ids=ordered_ids, by_id=by_id)


@dataclass
class Constraint:
    """A declared constraint resolved to the scenes it scopes over."""

    type: str
    subject: str | None = None
    target: str | None = None
    action: str | None = None
    value: str | None = None
    what: str | None = None
    count: Any = None
    scene_ids: list[str] = field(default_factory=list)
    scope_id: str | None = None
    line: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "subject": self.subject,
            "target": self.target,
            "action": self.action,
            "value": self.value,
            "what": self.what,
            "count": self.count,
            "scene_ids": list(self.scene_ids),
            "scope_id": self.scope_id,
            "line": self.line,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Constraint:
        return cls(
            type=normalize_string(data.get("type")).lower(),
            subject=data.get("subject"),
            target=data.get("target"),
            action=data.get("action"),
            value=data.get("value"),
            what=data.get("what"),
            count=data.get("count"),
            scene_ids=[str(s) for s in _as_list(_pick(data, "scene_ids", "sceneIds"))],
            scope_id=_pick(data, "scope_id", "scopeId"),
            line=data.get("line"),
        )


@dataclass
class CharacterEntity:
    """A character with optional declared traits and aliases."""

    name: str
    id: str | None = None
    archetype: str | None = None
    traits: list[str] = field(default_factory=list)
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return str(self.id or self.name).strip().lower()

    @property
    def aliases(self) -> list[str]:
        """Name followed by any declared aliases, de-duplicated in order."""
        out: list[str] = []

        def add(value: Any) -> None:
            s = normalize_string(value)
            if s and s not in out:
                out.append(s)

        add(self.name)
        raw = _pick(self.properties, "aliases", "alias")
        if isinstance(raw, str):
            for part in raw.split(","):
                add(part)
        else:
            for part in _as_list(raw):
                add(part)
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CharacterEntity:
        return cls(
            name=normalize_string(_pick(data, "name", "id", default="")),
            id=data.get("id"),
            archetype=_pick(data, "archetype", "type"),
            traits=[str(t) for t in _as_list(data.get("traits")) if normalize_string(t)],
            properties=dict(data.get("properties") or {}),
        )


@dataclass
class NamedEntity:
    """A location, object or other named world element."""

    name: str
    id: str | None = None
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return str(self.id or self.name).strip().lower()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NamedEntity:
        return cls(
            name=normalize_string(_pick(data, "name", "id", default="")),
            id=data.get("id"),
            properties=dict(data.get("properties") or {}),
        )


_RECORD_KINDS = (
    "moods", "themes", "relationships", "world_rules", "dialogues", "wisdom", "patterns",
)


@dataclass
class ExtractedEntities:
    """Entity collections extracted from the story."""

    characters: list[CharacterEntity] = field(default_factory=list)
    locations: list[NamedEntity] = field(default_factory=list)
    objects: list[NamedEntity] = field(default_factory=list)
    moods: list[dict[str, Any]] = field(default_factory=list)
    themes: list[dict[str, Any]] = field(default_factory=list)
    relationships: list[dict[str, Any]] = field(default_factory=list)
    world_rules: list[dict[str, Any]] = field(default_factory=list)
    dialogues: list[dict[str, Any]] = field(default_factory=list)
    wisdom: list[dict[str, Any]] = field(default_factory=list)
    patterns: list[dict[str, Any]] = field(default_factory=list)

    def character_names(self) -> set[str]:
        return {c.name.lower() for c in self.characters if c.name}

    def location_names(self) -> set[str]:
        return {loc.name.lower() for loc in self.locations if loc.name}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ExtractedEntities:
        def records(key: str) -> list[dict[str, Any]]:
            return [dict(r) if isinstance(r, Mapping) else {"name": r} for r in _as_list(data.get(key))]

        def named(key: str) -> list[NamedEntity]:
            return [NamedEntity.from_dict(r) for r in records(key)]

        return cls(
            characters=[CharacterEntity.from_dict(r) for r in records("characters")],
            locations=named("locations"),
            objects=named("objects"),
            **{kind: records(kind) for kind in _RECORD_KINDS},
        )


@dataclass
class Texts:
    document_text: str = ""
    token_count: int = 0


@dataclass
class World:
    """Normalized, metric-friendly view of a parsed story."""

    scenes: SceneIndex = field(default_factory=SceneIndex)
    entities: ExtractedEntities = field(default_factory=ExtractedEntities)
    constraints: list[Constraint] = field(default_factory=list)
    texts: Texts = field(default_factory=Texts)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> World:
        """Build a world from the front-end's nested dict.

        When ``texts.document_text`` is absent the document text is the
        scene texts joined by blank lines in narrative order.
        """
        data = _as_mapping(data, "world")
        scenes = SceneIndex.from_dict(_as_mapping(data.get("scenes"), "world.scenes"))

        entities_raw = _as_mapping(data.get("entities"), "world.entities")
        extracted = ExtractedEntities.from_dict(
            _as_mapping(entities_raw.get("extracted"), "world.entities.extracted")
        )

        constraints_raw = data.get("constraints")
        if isinstance(constraints_raw, Mapping):
            items = _as_list(constraints_raw.get("items"))
        else:
            items = _as_list(constraints_raw)
        constraints = [Constraint.from_dict(c) for c in items if isinstance(c, Mapping)]

        texts_raw = _as_mapping(data.get("texts"), "world.texts")
        document_text = normalize_string(texts_raw.get("document_text"))
        if not document_text:
            document_text = "\n\n".join(s.text for s in scenes.ordered() if s.text).strip()
        raw_tokens = as_number(_pick(texts_raw, "token_count", "tokenCount"))
        if raw_tokens is None:
            token_count = sum(s.token_count for s in scenes.ordered())
        else:
            token_count = int(raw_tokens)

        return cls(
            scenes=scenes,
            entities=extracted,
            constraints=constraints,
            texts=Texts(document_text=document_text, token_count=token_count),
        )


@dataclass
class DiagnosticsReport:
    """Validity plus errors and warnings from one front-end stage."""

    valid: bool = False
    errors: list[Any] = field(default_factory=list)
    warnings: list[Any] = field(default_factory=list)

    def warning_codes(self) -> list[str]:
        return [str(w.get("code")) for w in self.warnings if isinstance(w, Mapping) and w.get("code")]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None, default_valid: bool = False) -> DiagnosticsReport:
        data = data or {}
        return cls(
            valid=bool(data.get("valid", default_valid)),
            errors=_as_list(data.get("errors")),
            warnings=_as_list(data.get("warnings")),
        )


@dataclass
class Diagnostics:
    parse: DiagnosticsReport = field(default_factory=DiagnosticsReport)
    semantic: DiagnosticsReport = field(default_factory=DiagnosticsReport)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Diagnostics:
        data = _as_mapping(data, "diagnostics")
        return cls(
            parse=DiagnosticsReport.from_dict(data.get("parse")),
            semantic=DiagnosticsReport.from_dict(data.get("semantic")),
        )


@dataclass
class Corpora:
    """Optional reference corpora supplied by the evaluation harness."""

    tropes: list[Any] = field(default_factory=list)
    retrieval_queries: list[Any] = field(default_factory=list)
    references: list[Any] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Corpora:
        data = _as_mapping(data, "corpora")
        return cls(
            tropes=_as_list(data.get("tropes")),
            retrieval_queries=_as_list(_pick(data, "retrieval_queries", "retrievalQueries")),
            references=_as_list(data.get("references")),
        )


def _overall_ratings(data: Mapping[str, Any]) -> list[Any]:
    ratings = data.get("ratings") if isinstance(data.get("ratings"), Mapping) else {}
    candidates: Iterable[Any] = (
        data.get("overall_ratings"),
        data.get("overallRatings"),
        data.get("H_OV"),
        data.get("h_ov"),
        ratings.get("overall"),
        ratings.get("H_OV"),
        data.get("overall"),
    )
    for candidate in candidates:
        if candidate is None:
            continue
        return _as_list(candidate)
    return []


@dataclass
class HumanRatings:
    """Human judgements: overall ratings (1-5) and explainability sessions."""

    overall_ratings: list[Any] = field(default_factory=list)
    xai_sessions: list[Any] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> HumanRatings:
        data = _as_mapping(data, "human")
        return cls(
            overall_ratings=_overall_ratings(data),
            xai_sessions=_as_list(_pick(data, "xai_sessions", "xaiSessions")),
        )


@dataclass
class MetricResult:
    """Outcome of one metric computation.

    ``value is None`` is the single authoritative "not computed" signal.
    A skipped metric has ``passed is None``; an errored one has
    ``passed is False``; both carry ``details["status"]``.

    Attributes:
        code: Metric code (e.g. ``"CS"``).
        version: Metric implementation version.
        value: Numeric score, or None when skipped or errored.
        threshold: Pass threshold, or None when the metric has none.
        passed: True/False for a judged score, None when not judged.
        details: Metric-specific explanation payload.
    """

    code: str
    version: str = "1.0"
    value: float | None = None
    threshold: float | None = None
    passed: bool | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def status(self) -> MetricStatus:
        raw = self.details.get("status")
        if raw == MetricStatus.SKIPPED.value:
            return MetricStatus.SKIPPED
        if raw == MetricStatus.ERROR.value:
            return MetricStatus.ERROR
        return MetricStatus.OK

    @property
    def is_available(self) -> bool:
        """Whether dependents may consume ``value``."""
        return self.value is not None and self.status is not MetricStatus.ERROR

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "version": self.version,
            "value": self.value,
            "threshold": self.threshold,
            "pass": self.passed,
            "details": self.details,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MetricResult:
        return cls(
            code=str(data["code"]),
            version=str(data.get("version", "1.0")),
            value=data.get("value"),
            threshold=data.get("threshold"),
            passed=data.get("pass"),
            details=dict(data.get("details") or {}),
        )
