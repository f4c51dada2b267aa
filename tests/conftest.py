"""Pytest configuration and fixtures for narrative metrics tests."""

from typing import Any

import pytest

from dataknobs_narrative.context import MetricContext

VALID_DIAGNOSTICS = {"parse": {"valid": True}, "semantic": {"valid": True}}


def _scene(text: str = "", mentions=(), events=(), **extra: Any) -> dict[str, Any]:
    data = {
        "text": text,
        "tokenCount": len(text.split()),
        "entityMentions": list(mentions),
        "events": [
            {"subject": e[0], "verb": e[1], "objects": list(e[2:])} for e in events
        ],
    }
    data.update(extra)
    return data


@pytest.fixture
def scene():
    """Factory for a scene dict in the front-end's camelCase form.

    Events are tuples ``(subject, verb, *objects)``.
    """
    return _scene


@pytest.fixture
def make_world():
    """Factory for a world dict from ordered ``(id, scene)`` pairs."""

    def _make(
        scenes: list[tuple[str, dict[str, Any]]],
        characters: list[Any] | None = None,
        locations: list[Any] | None = None,
        constraints: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        return {
            "scenes": {
                "ordered_ids": [sid for sid, _ in scenes],
                "by_id": {sid: s for sid, s in scenes},
            },
            "entities": {
                "extracted": {
                    "characters": characters or [],
                    "locations": locations or [],
                }
            },
            "constraints": {"items": constraints or []},
        }

    return _make


@pytest.fixture
def make_ctx():
    """Factory for a MetricContext with valid diagnostics by default."""

    def _make(world: dict[str, Any] | None = None, **sections: Any) -> MetricContext:
        data: dict[str, Any] = {"world": world or {}, "diagnostics": VALID_DIAGNOSTICS}
        data.update(sections)
        return MetricContext.from_dict(data)

    return _make


@pytest.fixture
def story_world(scene, make_world):
    """A small three-scene story with one recurring hero."""
    return make_world(
        [
            ("s1", scene(
                "Anna enters the Forest. Anna threatens the wolf with her torch.",
                mentions=["anna", "forest"],
                events=[("Anna", "threatens", "wolf")],
                chapterId="c1",
                properties={"mood": "ominous"},
            )),
            ("s2", scene(
                "Anna escapes through the Forest. The brave girl runs.",
                mentions=["anna", "forest"],
                events=[("Anna", "escapes", "Forest")],
                chapterId="c1",
            )),
            ("s3", scene(
                "Anna travels to the Castle. At dawn the feud is settled and peace returns.",
                mentions=["anna", "castle"],
                events=[("Anna", "travels", "Castle")],
                chapterId="c2",
                properties={"mood": "triumphant", "tone": "hopeful"},
            )),
        ],
        characters=[
            {"name": "Anna", "archetype": "hero", "traits": ["brave", "determined"]},
            {"name": "Boris", "archetype": "mentor", "traits": ["wise"]},
        ],
        locations=[{"name": "Forest"}, {"name": "Castle"}],
    )


@pytest.fixture
def story_ctx(make_ctx, story_world):
    return make_ctx(story_world)
