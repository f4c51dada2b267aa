"""Tests for the coherence score."""

import pytest

from dataknobs_narrative.engine import compute_all
from dataknobs_narrative.metrics import cs


def _run_cs(ctx):
    compute_all(ctx, ["CS"])
    return ctx.metrics["CS"]


class TestPairCausalScore:
    """Test per-pair causal scoring."""

    def test_levels(self):
        """Test every scoring level."""
        assert cs.pair_causal_score(set(), True, True) == 0.0
        assert cs.pair_causal_score({"anna"}, True, True) == 1.0
        assert cs.pair_causal_score({"anna"}, True, False) == 0.7
        assert cs.pair_causal_score({"anna"}, False, True) == 0.7
        assert cs.pair_causal_score({"anna"}, False, False) == 0.4


class TestCS:
    """Test CS scoring."""

    def test_entity_continuity_break(self, make_ctx, scene, make_world):
        """Test a story where the last scene drops every entity."""
        world = make_world(
            [
                ("s1", scene("Anna waits.", mentions=["anna"])),
                ("s2", scene("Anna waits again.", mentions=["anna"])),
                ("s3", scene("The Castle stands empty.", mentions=["castle"])),
            ],
            characters=[{"name": "Anna"}],
            locations=[{"name": "Castle"}],
        )
        result = _run_cs(make_ctx(world))
        components = result.details["components"]
        assert components["EC"] == pytest.approx(0.5)
        assert components["CC"] == pytest.approx(0.2)
        assert components["LVP"] == 0.0
        assert result.value == pytest.approx(0.33)
        assert result.passed is False

    def test_story_world(self, story_ctx):
        """Test the shared three-scene story."""
        result = _run_cs(story_ctx)
        components = result.details["components"]
        assert components["EC"] == pytest.approx(2 / 3)
        assert components["CC"] == pytest.approx(0.85)
        assert result.value == pytest.approx(0.5 * 2 / 3 + 0.4 * 0.85)
        first_pair = result.details["pairs"]["cc"][0]
        assert first_pair["hasCause"] is True
        assert first_pair["hasEffect"] is True
        assert first_pair["shared"] == ["anna", "forest"]

    def test_parse_invalid(self, make_ctx, story_world):
        """Test that an invalid parse scores zero."""
        ctx = make_ctx(story_world, diagnostics={"parse": {"valid": False}})
        result = cs.compute(ctx)
        assert result.value == 0.0
        assert result.passed is False
        assert result.details["status"] == "parse_invalid"

    def test_more_shared_entities_never_lowers_ec(self, make_ctx, scene, make_world):
        """Test that extra shared entities raise entity continuity."""

        def build(s2_mentions):
            return make_world(
                [
                    ("s1", scene("x", mentions=["anna", "forest"])),
                    ("s2", scene("y", mentions=s2_mentions)),
                ],
                characters=[{"name": "Anna"}],
                locations=[{"name": "Forest"}],
            )

        partial = _run_cs(make_ctx(build(["anna"])))
        full = _run_cs(make_ctx(build(["anna", "forest"])))
        assert partial.details["components"]["CC"] == full.details["components"]["CC"] == 0.4
        assert full.details["components"]["EC"] > partial.details["components"]["EC"]
        assert full.value > partial.value

    def test_included_entities_count(self, make_ctx, scene, make_world):
        """Test that explicit scene inclusions join the entity set."""
        world = make_world(
            [
                ("s1", scene("x", includes={"characters": ["Anna"]})),
                ("s2", scene("y", mentions=["anna"])),
            ],
            characters=[{"name": "Anna"}],
        )
        assert _run_cs(make_ctx(world)).details["components"]["EC"] == 1.0

    def test_logic_violations(self, make_ctx, story_world):
        """Test the penalty from semantic errors and location jumps."""
        ctx = make_ctx(story_world, diagnostics={
            "parse": {"valid": True},
            "semantic": {
                "valid": True,
                "errors": [{"code": "bad_ref"}],
                "warnings": [{"code": "location_jump"}, {"code": "style"}],
            },
        })
        result = _run_cs(ctx)
        assert result.details["violations"]["total"] == 2
        assert result.details["components"]["LVP"] == pytest.approx(2 / 3)
        assert result.value == pytest.approx(0.5 * 2 / 3 + 0.4 * 0.85 - 0.3 * 2 / 3)

    def test_csa_violations_penalize(self, make_ctx, scene, make_world):
        """Test that upstream constraint violations add to the penalty."""
        world = make_world(
            [("s1", scene("Anna waits.", mentions=["anna"]))],
            characters=[{"name": "Anna"}],
            constraints=[{"type": "requires", "target": "Sword", "sceneIds": ["s1"]}],
        )
        result = _run_cs(make_ctx(world))
        assert result.details["violations"]["csa_violations"] == 1
        assert result.details["components"]["LVP"] == 1.0
        assert result.value == pytest.approx(0.6)

    def test_single_scene(self, make_ctx, scene, make_world):
        """Test that a single scene has perfect continuity."""
        world = make_world([("s1", scene("Anna waits.", mentions=["anna"]))], characters=[{"name": "Anna"}])
        result = _run_cs(make_ctx(world))
        assert result.value == pytest.approx(0.9)
        assert result.passed is True
