"""Tests for the automated narrative quality composite."""

import pytest

from dataknobs_narrative.engine import compute_all
from dataknobs_narrative.metrics import nqs_auto
from dataknobs_narrative.models import ExtractedEntities, MetricResult, World


class TestWeightedComposite:
    """Test renormalized weighting."""

    def test_only_two_components(self):
        """Test renormalizing over the available components."""
        components = {k: None for k in nqs_auto.WEIGHTS}
        components.update(completeness=0.5, cs=1.0)
        score, used, missing = nqs_auto.weighted_composite(components)
        assert score == pytest.approx(0.75)
        assert used == ["completeness", "cs"]
        assert len(missing) == 10

    def test_missing_components_do_not_drag_score(self):
        """Test that a dropped component leaves the score unchanged."""
        full, _, _ = nqs_auto.weighted_composite({"cs": 0.8, "oi": 0.8})
        partial, _, _ = nqs_auto.weighted_composite({"cs": 0.8, "oi": None})
        assert full == pytest.approx(partial)

    def test_nothing_available(self):
        """Test an empty component set."""
        assert nqs_auto.weighted_composite({}) == (None, [], list(nqs_auto.WEIGHTS))

    def test_weights_sum_to_one(self):
        """Test the published weights."""
        assert sum(nqs_auto.WEIGHTS.values()) == pytest.approx(1.0)


class TestSubScores:
    """Test the structural sub-scores."""

    def test_completeness(self):
        """Test full and partial completeness."""
        full = {"characters": 2, "locations": 2, "scenes": 3, "themes": 1, "dialogues": 2, "relationships": 2}
        assert nqs_auto.completeness_score(full) == pytest.approx(1.0)
        half = {"characters": 1, "locations": 0, "scenes": 3, "themes": 0, "dialogues": 0, "relationships": 0}
        assert nqs_auto.completeness_score(half) == pytest.approx(0.35)

    def test_explainability(self):
        """Test the explainability checklist."""
        entities = ExtractedEntities(
            themes=[{"name": "courage"}],
            moods=[{"name": "a"}, {"name": "b"}, {"name": "c"}],
            patterns=[{"id": "p"}],
        )
        assert nqs_auto.explainability_score(entities, "hero_journey") == pytest.approx(0.55)
        assert nqs_auto.explainability_score(ExtractedEntities(), None) == 0.0

    def test_story_sub_scores(self, story_world):
        """Test continuity, location and action sub-scores on the shared story."""
        world = World.from_dict(story_world)
        entities = world.entities
        assert nqs_auto.char_continuity_score(world, entities) == pytest.approx(0.75)
        assert nqs_auto.loc_logic_score(world, entities) == pytest.approx(0.5)
        assert nqs_auto.action_coherence_score(world, entities) == 1.0
        assert nqs_auto.scene_completeness_score(world, entities) == 1.0

    def test_action_coherence_rejects_unknown_entities(self, scene, make_world):
        """Test events naming undeclared subjects or entity-like objects."""
        world = World.from_dict(make_world(
            [("s1", scene(
                "x",
                events=[("Anna", "greets", "Zorro"), ("Ghost", "haunts", "house"), ("Anna", "eats", "bread")],
            ))],
            characters=[{"name": "Anna"}],
        ))
        assert nqs_auto.action_coherence_score(world, world.entities) == pytest.approx(1 / 3)

    def test_empty_world(self):
        """Test sub-scores with nothing declared."""
        world = World()
        entities = ExtractedEntities()
        assert nqs_auto.char_continuity_score(world, entities) == 0.0
        assert nqs_auto.loc_logic_score(world, entities) == 0.0
        assert nqs_auto.action_coherence_score(world, entities) == 1.0
        assert nqs_auto.scene_completeness_score(world, entities) == 0.0

    def test_looks_like_entity_id(self):
        """Test entity-like token detection."""
        assert nqs_auto.looks_like_entity_id("Anna")
        assert nqs_auto.looks_like_entity_id("r2d2")
        assert not nqs_auto.looks_like_entity_id("bread")
        assert not nqs_auto.looks_like_entity_id("42")
        assert not nqs_auto.looks_like_entity_id("Big House")
        assert not nqs_auto.looks_like_entity_id("")


class TestNQSAuto:
    """Test NQS_AUTO scoring."""

    def test_structural_only(self, story_ctx):
        """Test a run with no upstream metrics available."""
        result = nqs_auto.compute(story_ctx)
        details = result.details
        assert details["used_components"] == [
            "completeness", "explainability", "charContinuity", "locLogic",
            "actionCoherence", "sceneCompleteness",
        ]
        assert details["components"]["completeness"] == pytest.approx(0.6)
        expected = (0.6 * 0.12 + 0.75 * 0.08 + 0.5 * 0.06 + 1.0 * 0.06 + 1.0 * 0.06) / 0.46
        assert result.value == pytest.approx(expected)
        assert result.passed is False

    def test_cad_quality_mapping(self, story_ctx):
        """Test that drift is mapped onto a quality component."""
        story_ctx.metrics["CAD"] = MetricResult(code="CAD", value=0.1)
        result = nqs_auto.compute(story_ctx)
        assert result.details["components"]["cad_quality"] == pytest.approx(0.6)

    def test_full_run_stays_in_range(self, story_ctx):
        """Test the composite after every dependency has run."""
        compute_all(story_ctx)
        result = story_ctx.metrics["NQS_AUTO"]
        assert 0.0 <= result.value <= 1.0
        assert "cs" in result.details["used_components"]
        assert "oi" in result.details["missing_components"]

    def test_entities_from_ast(self, make_ctx, story_world):
        """Test that declared AST entities take precedence over the world."""
        ast = {
            "entities": {
                "Anna": {"name": "Anna", "type": "hero", "traits": ["brave"]},
                "Forest": {"name": "Forest", "type": "location"},
            },
            "statements": [{"subject": "Story", "verb": "has", "objects": ["theme", "courage"]}],
        }
        ctx = make_ctx(story_world, ast=ast)
        entities = nqs_auto.entities_for(ctx)
        assert [c.name for c in entities.characters] == ["Anna"]
        assert entities.themes[0]["name"] == "courage"

        result = nqs_auto.compute(ctx)
        assert result.details["counts"]["characters"] == 1
        assert result.details["counts"]["themes"] == 1

    def test_world_entities_without_ast(self, story_ctx):
        """Test the fallback to extracted world entities."""
        assert nqs_auto.entities_for(story_ctx) is story_ctx.world.entities
