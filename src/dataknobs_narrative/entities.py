"""Entity extraction from the CNL parser AST.

The parser AST keys declared entities by name (``ast["entities"]``) and
keeps statements both at top level and inside nested groups. This module
turns that into the ``ExtractedEntities`` collections that the
structural NQS_AUTO sub-scores read:

- characters, by archetype type (hero, mentor, shadow...)
- locations, objects and moods, by type
- themes from ``Story has theme <name>``
- world rules, wisdom and patterns, declared either by type or by
  ``World includes rule R`` / ``Story includes wisdom W`` /
  ``Story includes pattern P`` (plus the older ``has rule`` /
  ``conveys wisdom`` / ``uses pattern`` spellings)
- relationships and dialogues as given

Example:
    >>> ast = {"entities": {"Anna": {"name": "Anna", "type": "hero", "traits": ["brave"]}}}
    >>> extract_entities_from_ast(ast).characters[0].archetype
    'hero'
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterator

from .models import CharacterEntity, ExtractedEntities, NamedEntity

CHARACTER_TYPES = frozenset({
    "hero", "mentor", "shadow", "ally", "trickster", "guardian",
    "shapeshifter", "herald", "character", "protagonist", "antagonist",
})
LOCATION_TYPES = frozenset({"location", "place"})
OBJECT_TYPES = frozenset({"object", "item"})


def _entity_type(entity: Mapping[str, Any]) -> str:
    raw = entity.get("type")
    if not raw:
        types = entity.get("types") or []
        raw = types[0] if types else "unknown"
    return str(raw)


def collect_statements(ast: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Top-level statements followed by those of every nested group."""
    statements = [s for s in ast.get("statements") or [] if isinstance(s, Mapping)]

    def walk(groups: Any) -> Iterator[Mapping[str, Any]]:
        for group in groups or []:
            if not isinstance(group, Mapping):
                continue
            for s in group.get("statements") or []:
                if isinstance(s, Mapping):
                    yield s
            yield from walk(group.get("children"))

    statements.extend(walk(ast.get("groups")))
    return [dict(s) for s in statements]


def _objects(stmt: Mapping[str, Any]) -> list[str]:
    return [str(o) for o in stmt.get("objects") or []]


def _tail(objects: list[str]) -> str:
    return " ".join(objects[1:]).strip()


def _matches(stmt: Mapping[str, Any], subject: str, verb: str, keyword: str) -> bool:
    objects = _objects(stmt)
    return (
        stmt.get("subject") == subject
        and stmt.get("verb") == verb
        and bool(objects)
        and objects[0].lower() == keyword
    )


def _declared_ids(
    raw_entities: Mapping[str, Any],
    statements: list[dict[str, Any]],
    type_name: str,
    subject: str,
    keyword: str,
    legacy_verb: str,
) -> list[str]:
    """Ids declared by type, by ``<subject> includes <keyword> X`` or the legacy verb."""
    ids: list[str] = []

    def add(value: str) -> None:
        if value and value not in ids:
            ids.append(value)

    for name, entity in raw_entities.items():
        if isinstance(entity, Mapping) and str(entity.get("type") or "").lower() == type_name:
            add(str(name))
    for stmt in statements:
        objects = _objects(stmt)
        if len(objects) >= 2 and _matches(stmt, subject, "includes", keyword):
            add(objects[1])
    for stmt in statements:
        objects = _objects(stmt)
        if len(objects) >= 2 and _matches(stmt, subject, legacy_verb, keyword):
            add(_tail(objects))
    return ids


def _property_statements(
    statements: list[dict[str, Any]], ids: dict[str, dict[str, Any]]
) -> Iterator[tuple[dict[str, Any], dict[str, Any]]]:
    for stmt in statements:
        record = ids.get(stmt.get("subject"))  # type: ignore[arg-type]
        if record is not None:
            yield record, stmt


def _has_property(stmt: Mapping[str, Any]) -> tuple[str, str] | None:
    objects = _objects(stmt)
    if stmt.get("verb") == "has" and len(objects) >= 2:
        return objects[0].lower(), _tail(objects)
    return None


def extract_themes(statements: list[dict[str, Any]]) -> list[dict[str, Any]]:
    themes: dict[str, dict[str, Any]] = {}
    for stmt in statements:
        if not _matches(stmt, "Story", "has", "theme"):
            continue
        name = _tail(_objects(stmt))
        if not name:
            continue
        modifiers = stmt.get("modifiers") or {}
        role = str(modifiers["as"]).lower() if modifiers.get("as") else None
        existing = themes.get(name)
        if existing is None:
            themes[name] = {"name": name, "id": name, "role": role}
        elif not existing["role"] and role:
            existing["role"] = role
    return list(themes.values())


def extract_world_rules(
    raw_entities: Mapping[str, Any], statements: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    ids = _declared_ids(raw_entities, statements, "world_rule", "World", "rule", "has")
    rules = {
        i: {"id": i, "name": i, "text": None, "category": None, "description": None, "scope": None}
        for i in ids
    }
    for rule, stmt in _property_statements(statements, rules):
        prop = _has_property(stmt)
        if prop is not None:
            key, value = prop
            if key in ("category", "description", "text"):
                rule[key] = value or None
            elif key == "label":
                rule["name"] = value or rule["name"]
        if stmt.get("verb") == "applies":
            objects = _objects(stmt)
            rule["scope"] = (stmt.get("modifiers") or {}).get("to") or (objects[0] if objects else None)
    for rule in rules.values():
        # the human-facing text doubles as the display name
        if rule["text"] and rule["name"] == rule["id"]:
            rule["name"] = rule["text"]
    return list(rules.values())


def extract_wisdom(
    raw_entities: Mapping[str, Any], statements: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    ids = _declared_ids(raw_entities, statements, "wisdom", "Story", "wisdom", "conveys")
    items = {
        i: {"id": i, "label": i, "category": None, "insight": None, "application": None, "examples": None}
        for i in ids
    }
    for item, stmt in _property_statements(statements, items):
        prop = _has_property(stmt)
        if prop is not None:
            key, value = prop
            if key in ("category", "insight", "application", "examples"):
                item[key] = value or None
            elif key == "label":
                item["label"] = value or item["label"]
        if stmt.get("verb") == "applies":
            objects = _objects(stmt)
            item["application"] = (stmt.get("modifiers") or {}).get("as") or (objects[0] if objects else None)
    return list(items.values())


def extract_patterns(
    raw_entities: Mapping[str, Any], statements: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    ids = _declared_ids(raw_entities, statements, "pattern", "Story", "pattern", "uses")
    patterns = {i: {"id": i, "label": i, "pattern_type": None, "role": None} for i in ids}
    for pattern, stmt in _property_statements(statements, patterns):
        objects = _objects(stmt)
        if stmt.get("verb") == "is" and objects:
            pattern["pattern_type"] = objects[0]
        prop = _has_property(stmt)
        if prop is not None and prop[1]:
            key, value = prop
            if key == "type":
                pattern["pattern_type"] = value
            elif key in ("label", "role"):
                pattern[key] = value
    return list(patterns.values())


def extract_entities_from_ast(ast: Mapping[str, Any] | None) -> ExtractedEntities:
    """Build entity collections from a parser AST (``{}`` or None gives empty ones)."""
    ast = ast or {}
    raw_entities = ast.get("entities") or {}
    if not isinstance(raw_entities, Mapping):
        raw_entities = {}

    out = ExtractedEntities()
    for key, entity in raw_entities.items():
        if not isinstance(entity, Mapping):
            continue
        entity_type = _entity_type(entity)
        kind = entity_type.lower()
        name = str(entity.get("name") or key)
        properties = entity.get("properties") or {}
        if kind in CHARACTER_TYPES:
            out.characters.append(CharacterEntity(
                name=name,
                id=str(key),
                archetype=entity_type,
                traits=[str(t) for t in entity.get("traits") or []],
                properties=dict(properties),
            ))
        elif kind in LOCATION_TYPES:
            out.locations.append(NamedEntity(
                name=name, id=str(key), properties={"geography": properties.get("geography")},
            ))
        elif kind in OBJECT_TYPES:
            out.objects.append(NamedEntity(
                name=name, id=str(key), properties={"object_type": entity_type},
            ))
        elif kind == "mood":
            emotions = properties.get("emotions")
            out.moods.append({
                "name": name,
                "id": str(key),
                "emotions": dict(emotions) if isinstance(emotions, Mapping) else {},
            })

    statements = collect_statements(ast)
    out.themes = extract_themes(statements)
    out.world_rules = extract_world_rules(raw_entities, statements)
    out.wisdom = extract_wisdom(raw_entities, statements)
    out.patterns = extract_patterns(raw_entities, statements)

    out.relationships = [
        {"fromId": r.get("from"), "toId": r.get("to"), "type": r.get("type")}
        for r in ast.get("relationships") or []
        if isinstance(r, Mapping)
    ]
    dialogues = ast.get("dialogues")
    if isinstance(dialogues, Mapping):
        out.dialogues = [dict(d) if isinstance(d, Mapping) else {"value": d} for d in dialogues.values()]
    elif isinstance(dialogues, list):
        out.dialogues = [dict(d) if isinstance(d, Mapping) else {"value": d} for d in dialogues]
    return out
