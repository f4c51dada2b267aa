"""Tests for the originality index."""

import pytest

from dataknobs_narrative.metrics import oi


class TestTropeHelpers:
    """Test trope entry parsing."""

    def test_trope_text(self):
        """Test text lookup across entry shapes."""
        assert oi.trope_text("The chosen one") == "The chosen one"
        assert oi.trope_text({"description": "A mentor dies"}) == "A mentor dies"
        assert oi.trope_text({"text": "", "name": "Heist"}) == ""
        assert oi.trope_text(None) == ""

    def test_trope_id(self):
        """Test id lookup with positional fallback."""
        assert oi.trope_id({"id": "t9"}, 0) == "t9"
        assert oi.trope_id({"trope": "chosen_one"}, 0) == "chosen_one"
        assert oi.trope_id("plain", 3) == "trope_3"


class TestOI:
    """Test OI scoring."""

    def test_missing_corpus(self, story_ctx):
        """Test skipping without a trope corpus."""
        result = oi.compute(story_ctx)
        assert result.value is None
        assert result.details["reason"] == "missing_trope_corpus"

    def test_missing_story_text(self, make_ctx):
        """Test skipping without story text."""
        ctx = make_ctx(corpora={"tropes": ["The chosen one"]})
        assert oi.compute(ctx).details["reason"] == "missing_story_text"

    def test_identical_trope(self, make_ctx, story_world):
        """Test that copying a trope verbatim scores no originality."""
        ctx = make_ctx(story_world)
        ctx = make_ctx(story_world, corpora={"tropes": [
            {"id": "far", "text": "Fishing boats drift along a quiet river at noon."},
            {"id": "copy", "text": ctx.world.texts.document_text},
        ]})
        result = oi.compute(ctx)
        assert result.value == pytest.approx(0.0, abs=1e-9)
        assert result.passed is False
        assert result.details["best_match"]["id"] == "copy"
        assert result.details["corpus_size"] == 2

    def test_ties_go_to_later_trope(self, make_ctx, story_world):
        """Test tie-breaking between equally similar tropes."""
        text = make_ctx(story_world).world.texts.document_text
        ctx = make_ctx(story_world, corpora={"tropes": [{"id": "a", "text": text}, {"id": "b", "text": text}]})
        assert oi.compute(ctx).details["best_match"]["id"] == "b"

    def test_empty_trope_texts_are_ignored(self, make_ctx, story_world):
        """Test a corpus with no usable text."""
        ctx = make_ctx(story_world, corpora={"tropes": [{"id": "blank", "text": ""}]})
        result = oi.compute(ctx)
        assert result.value == 1.0
        assert result.details["best_match"] is None

    def test_bow_profile(self, make_ctx, story_world):
        """Test scoring with the bag-of-words backend."""
        ctx = make_ctx(story_world, profile="bow", corpora={"tropes": ["A dragon guards a hoard of gold."]})
        result = oi.compute(ctx)
        assert result.details["profile"] == "bow"
        assert 0.0 <= result.value <= 1.0
        assert result.details["best_match"]["preview"] == "A dragon guards a hoard of gold."
