"""Tests for the constraint satisfaction metric."""

import pytest

from dataknobs_narrative.metrics import csa
from dataknobs_narrative.models import Constraint, World


@pytest.fixture
def two_scene_world(scene, make_world):
    def _make(constraints, s1=None, s2=None):
        return make_world(
            [
                ("s1", s1 or scene("Anna draws the Sword at the gate.", mentions=["anna", "sword"])),
                ("s2", s2 or scene("The gate closes behind her.", mentions=["gate"])),
            ],
            characters=[{"name": "Anna"}],
            locations=[{"name": "Gate"}],
            constraints=constraints,
        )

    return _make


class TestScopeHelpers:
    """Test scope lookups."""

    def test_scope_entity_mentions(self, two_scene_world):
        """Test the case-folded union of mentions over the scoped scenes."""
        world = World.from_dict(two_scene_world([]))
        assert csa.scope_entity_mentions(world, ["s1", "s2", "missing"]) == {"anna", "sword", "gate"}
        assert csa.scope_entity_mentions(world, []) == set()


class TestCSA:
    """Test CSA scoring."""

    def test_requires_and_forbids(self, make_ctx, two_scene_world):
        """Test one satisfied and one violated constraint."""
        world = two_scene_world([
            {"type": "requires", "target": "Sword", "sceneIds": ["s1"], "scopeId": "scene_s1"},
            {"type": "forbids", "target": "Gate", "sceneIds": ["s2"], "scopeId": "scene_s2", "line": 7},
        ])
        result = csa.compute(make_ctx(world))
        assert result.value == 0.5
        assert result.passed is False
        assert result.details["satisfied"] == 1
        assert result.details["total"] == 2
        [violation] = result.details["violations"]
        assert violation["type"] == "forbids"
        assert violation["line"] == 7
        assert violation["evidence"] == {"target": "Gate"}

    def test_no_constraints_is_vacuously_satisfied(self, make_ctx, story_world):
        """Test an empty constraint list."""
        result = csa.compute(make_ctx(story_world))
        assert result.value == 1.0
        assert result.passed is True
        assert result.details["total"] == 0
        assert result.details["violations"] == []

    def test_requires_matches_text_substring(self, make_ctx, two_scene_world):
        """Test that presence also checks the scope text."""
        world = two_scene_world([{"type": "requires", "target": "closes", "sceneIds": ["s2"]}])
        assert csa.compute(make_ctx(world)).value == 1.0

    def test_unknown_type_is_not_checked(self, make_ctx, two_scene_world):
        """Test that unrecognized constraint kinds pass."""
        world = two_scene_world([{"type": "prefers", "target": "Dragon", "sceneIds": ["s1"]}])
        result = csa.compute(make_ctx(world))
        assert result.value == 1.0
        assert result.details["results"][0]["evidence"] is None


class TestMustConstraints:
    """Test ``must`` constraint actions."""

    def test_introduce(self, make_ctx, two_scene_world):
        """Test must introduce."""
        world = two_scene_world([
            {"type": "must", "action": "introduce", "target": "Anna", "sceneIds": ["s1"]},
            {"type": "must", "action": "introduce", "target": "Boris", "sceneIds": ["s1"]},
        ])
        result = csa.compute(make_ctx(world))
        assert result.value == 0.5
        assert result.details["violations"][0]["evidence"] == {"action": "introduce", "target": "Boris"}

    def test_resolve_needs_resolution_word(self, make_ctx, scene, two_scene_world):
        """Test must resolve."""
        settled = scene("At dawn the feud is settled.", mentions=["feud"])
        open_feud = scene("The feud rages on.", mentions=["feud"])
        constraint = [{"type": "must", "action": "resolve", "target": "feud", "sceneIds": ["s1"]}]
        assert csa.compute(make_ctx(two_scene_world(constraint, s1=settled))).value == 1.0
        assert csa.compute(make_ctx(two_scene_world(constraint, s1=open_feud))).value == 0.0

    def test_custom_action_via_event(self, make_ctx, scene, two_scene_world):
        """Test a custom action satisfied by a matching event."""
        s1 = scene("Anna confronts the wolf.", mentions=["anna"], events=[("Anna", "confronts", "Wolf")])
        world = two_scene_world(
            [
                {"type": "must", "action": "confronts", "target": "wolf", "sceneIds": ["s1"]},
                {"type": "must", "action": "betrays", "target": "wolf", "sceneIds": ["s1"]},
            ],
            s1=s1,
        )
        result = csa.compute(make_ctx(world))
        assert [r["ok"] for r in result.details["results"]] == [True, False]


class TestToneConstraints:
    """Test ``tone`` constraints."""

    def test_declared_tone(self, make_ctx, scene, two_scene_world):
        """Test that a scene declaring the tone satisfies the constraint."""
        s1 = scene("Nothing much happens.", properties={"tone": "Hopeful"})
        world = two_scene_world([{"type": "tone", "value": "hopeful", "sceneIds": ["s1"]}], s1=s1)
        result = csa.compute(make_ctx(world))
        assert result.value == 1.0
        assert result.details["results"][0]["evidence"] == {"tone": "hopeful", "declared": True}

    def test_tone_keywords(self, make_ctx, scene, two_scene_world):
        """Test the keyword fallback for tones."""
        bright = scene("They looked toward a bright future.")
        flat = scene("They looked toward the wall.")
        constraint = [{"type": "tone", "value": "hopeful", "sceneIds": ["s1"]}]

        result = csa.compute(make_ctx(two_scene_world(constraint, s1=bright)))
        assert result.value == 1.0
        evidence = result.details["results"][0]["evidence"]
        assert evidence["matches"] == 2
        assert evidence["totalWords"] == 7

        assert csa.compute(make_ctx(two_scene_world(constraint, s1=flat))).value == 0.0


class TestLimitConstraints:
    """Test ``max`` and ``min`` constraints."""

    def test_max_scenes(self, make_ctx, two_scene_world):
        """Test counting scenes in scope."""
        world = two_scene_world([
            {"type": "max", "what": "scenes", "count": 1, "sceneIds": ["s1", "s2"]},
            {"type": "min", "what": "scenes", "count": 2, "sceneIds": ["s1", "s2"]},
        ])
        result = csa.compute(make_ctx(world))
        assert [r["ok"] for r in result.details["results"]] == [False, True]
        assert result.details["results"][0]["evidence"] == {"what": "scenes", "actual": 2, "limit": 1.0}

    def test_invalid_limit(self, make_ctx, two_scene_world):
        """Test a non-numeric count."""
        world = two_scene_world([{"type": "max", "what": "characters", "count": "many", "sceneIds": ["s1"]}])
        result = csa.compute(make_ctx(world))
        assert result.value == 0.0
        assert result.details["violations"][0]["evidence"]["error"] == "invalid_limit"

    def test_count_scope_items(self, scene, make_world):
        """Test counting characters, locations and chapters."""
        world = World.from_dict(make_world(
            [
                ("s1", scene("a", mentions=["anna", "gate", "sword"], chapterId="c1")),
                ("s2", scene("b", mentions=["boris"], chapterId="c2")),
            ],
            characters=[{"name": "Anna"}, {"name": "Boris"}],
            locations=[{"name": "Gate"}],
        ))
        ids = ["s1", "s2"]
        assert csa.count_scope_items(world, ids, "characters") == 2
        assert csa.count_scope_items(world, ids, "locations") == 1
        assert csa.count_scope_items(world, ids, "chapters") == 2
        assert csa.count_scope_items(world, ids, "things") == 4
        assert csa.count_scope_items(world, ids, "") == 0

    def test_check_constraint_direct(self):
        """Test checking a constraint against an empty world."""
        ok, evidence = csa.check_constraint(World(), Constraint(type="requires", target="Sword"))
        assert ok is False
        assert evidence == {"target": "Sword"}
