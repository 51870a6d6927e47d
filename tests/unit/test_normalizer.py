"""Tests for sub-task response normalization."""

import pytest

from insightdeck.application.normalizer import FALLBACKS, fallback_for, normalize
from insightdeck.domain.models import SubTaskType


class TestKeyPoints:
    def test_points_pass_through(self):
        assert normalize("keyPoints", {"points": ["a", "b"]}) == {"points": ["a", "b"]}

    def test_snake_case_variant(self):
        assert normalize("keyPoints", {"key_points": ["a", "b"]}) == {"points": ["a", "b"]}

    def test_empty_payload_gets_placeholder(self):
        assert normalize("keyPoints", {}) == {"points": ["No key points available"]}

    def test_object_items_are_flattened(self):
        raw = {"points": [{"text": "Revenue up"}, {"point": "Costs flat"}, "  "]}
        assert normalize("keyPoints", raw) == {"points": ["Revenue up", "Costs flat"]}


class TestRecommendations:
    def test_scalar_becomes_list(self):
        assert normalize("recommendations", {"recommendations": "Cut costs"}) == {
            "recommendations": ["Cut costs"]
        }

    def test_description_objects(self):
        raw = {"recommendations": [{"description": "Hire"}, {"description": "Expand"}]}
        assert normalize("recommendations", raw) == {"recommendations": ["Hire", "Expand"]}

    def test_missing_field_is_empty_list(self):
        assert normalize("recommendations", {}) == {"recommendations": []}


class TestTitleAndVisualization:
    def test_blank_title_uses_default(self):
        assert normalize("title", {"title": "   "}) == {"title": "Analysis Results"}

    def test_visualization_defaults(self):
        assert normalize("visualization", {}) == {"type": "Bar Chart", "keyElements": []}

    def test_visualization_alias(self):
        raw = {"chartType": "Waterfall", "key_elements": ["Q4"]}
        assert normalize(SubTaskType.VISUALIZATION, raw) == {
            "type": "Waterfall",
            "keyElements": ["Q4"],
        }

    def test_summary_shape(self):
        raw = {"overview": "Up", "key_points": ["a"]}
        assert normalize("summary", raw) == {"overview": "Up", "keyPoints": ["a"]}


class TestFallbacks:
    @pytest.mark.parametrize(
        "kind, raw, expected",
        [
            ("title", {"title": None}, {"title": "Analysis Results"}),
            ("keyPoints", {"points": None}, {"points": ["No key points available"]}),
            ("visualization", {"type": None, "keyElements": None}, {"type": "Bar Chart", "keyElements": []}),
            ("recommendations", {"recommendations": None}, {"recommendations": []}),
            ("summary", {"overview": None, "keyPoints": None}, {"overview": "", "keyPoints": []}),
        ],
    )
    def test_explicit_nulls_never_leak(self, kind, raw, expected):
        assert normalize(kind, raw) == expected

    @pytest.mark.parametrize("kind", list(SubTaskType))
    def test_non_object_payload_returns_fallback(self, kind):
        assert normalize(kind, ["not", "an", "object"]) == FALLBACKS[kind]

    def test_unknown_type_passes_through(self):
        raw = {"anything": 1}
        assert normalize("chart", raw) is raw

    def test_fallback_is_a_copy(self):
        copy = fallback_for(SubTaskType.KEY_POINTS)
        copy["points"].append("mutated")
        assert FALLBACKS[SubTaskType.KEY_POINTS] == {"points": ["Data analysis in progress"]}
