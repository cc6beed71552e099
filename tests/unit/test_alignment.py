"""Unit tests for value alignment scoring."""

import pytest

from sofia.alignment import (
    ADDRESS_CONCERN,
    ALIGN_WITH_GOAL,
    NO_VALUE_ALIGNMENT,
    REFERENCE_BEST_LIFE,
    Recommendation,
    ValueAlignmentScorer,
    ValueProfile,
    first_item,
)


@pytest.fixture
def profile():
    return ValueProfile.from_records(
        best_life_elements=[{"element": "Family", "description": "time with grandkids"}],
        concerns=[{"concern": "memory loss"}],
        goals=[
            {"goal": "walk daily", "status": "active"},
            {"goal": "learn piano", "status": "completed"},
        ],
        confidence_level=6,
    )


@pytest.fixture
def scorer(profile):
    return ValueAlignmentScorer(profile, chooser=first_item)


class TestValueProfile:
    def test_only_active_goals_kept(self, profile):
        assert profile.active_goals == ["walk daily"]

    def test_blank_texts_dropped(self):
        profile = ValueProfile.from_records(
            best_life_elements=[{"element": ""}, {"element": "  "}, {"element": "Garden"}],
            concerns=[{"concern": None}],
        )
        assert profile.best_life_elements == ["Garden"]
        assert profile.concerns == []

    def test_matching_uses_element_text_only(self, profile):
        # "grandkids" lives in the description and must not count
        assert profile.best_life_elements == ["Family"]


class TestScore:
    def test_weights(self, scorer):
        result = scorer.score("Your family and your worry about memory loss matter. Keep up walk daily.")
        assert result.score == 5
        assert result.aligned_elements == ["Family", "memory loss", "walk daily"]
        assert result.misalignments == []
        assert result.recommendations == []

    def test_case_insensitive(self, scorer):
        assert scorer.score("FAMILY first").score == 2

    def test_zero_score_is_misaligned(self, scorer):
        result = scorer.score("The weather is nice.")

        assert result.score == 0
        assert result.misalignments == [{
            "type": NO_VALUE_ALIGNMENT,
            "description": "Response does not reference user values, concerns, or goals",
        }]
        assert [r.type for r in result.recommendations] == [
            REFERENCE_BEST_LIFE,
            ADDRESS_CONCERN,
            ALIGN_WITH_GOAL,
        ]
        assert result.recommendations[0].element == "Family"

    def test_below_threshold_recommends_without_misalignment(self, scorer):
        result = scorer.score("Let's walk daily")

        assert result.score == 1
        assert result.misalignments == []
        assert len(result.recommendations) == 3

    def test_at_threshold_no_recommendations(self):
        profile = ValueProfile(best_life_elements=["garden"], active_goals=["rest"])
        result = ValueAlignmentScorer(profile).score("Rest in the garden")

        assert result.score == 3
        assert result.is_aligned
        assert result.recommendations == []

    def test_empty_profile_scores_zero_without_recommendations(self):
        result = ValueAlignmentScorer().score("Anything at all")

        assert result.score == 0
        assert len(result.misalignments) == 1
        assert result.recommendations == []

    def test_to_dict_uses_wire_names(self, scorer):
        data = scorer.score("nothing").to_dict()

        assert set(data) == {"score", "alignedElements", "misalignments", "recommendations"}
        assert data["recommendations"][1] == {
            "type": ADDRESS_CONCERN,
            "suggestion": 'Address the user\'s concern: "memory loss"',
            "concern": "memory loss",
        }

    def test_chooser_is_injectable(self, profile):
        profile.best_life_elements = ["Family", "Music"]
        scorer = ValueAlignmentScorer(profile, chooser=lambda items: items[-1])

        result = scorer.score("nothing")
        assert result.recommendations[0].element == "Music"


class TestEnhance:
    def test_best_life_takes_priority(self):
        recs = [
            Recommendation(type=ALIGN_WITH_GOAL, suggestion="", goal="Walk Daily"),
            Recommendation(type=REFERENCE_BEST_LIFE, suggestion="", element="Family"),
        ]
        enhanced = ValueAlignmentScorer.enhance("Hello.", recs)

        assert enhanced == (
            "Hello.\n\nI want to make sure this aligns with what matters most to you. "
            "I know that family is important in your life. How does this relate to that?"
        )

    def test_concern_sentence(self):
        recs = [Recommendation(type=ADDRESS_CONCERN, suggestion="", concern="Memory Loss")]
        enhanced = ValueAlignmentScorer.enhance("Hi.", recs)

        assert enhanced.endswith(
            "I also want to address your concern about memory loss. "
            "How does this information help with that?"
        )

    def test_goal_sentence(self):
        recs = [Recommendation(type=ALIGN_WITH_GOAL, suggestion="", goal="Walk daily")]
        enhanced = ValueAlignmentScorer.enhance("Hi.", recs)

        assert enhanced == (
            "Hi.\n\nThis connects to your goal of walk daily. "
            "How does this help you move toward that?"
        )

    def test_only_one_sentence_appended(self, scorer):
        result = scorer.score("nothing")
        enhanced = scorer.enhance("nothing", result.recommendations)

        assert enhanced.count("\n\n") == 1

    def test_no_recommendations_returns_input(self):
        assert ValueAlignmentScorer.enhance("unchanged", []) == "unchanged"


class TestMonitoring:
    def test_enhance_response_leaves_aligned_text(self, scorer):
        text = "Family and memory loss"
        assert scorer.enhance_response(text) == text

    def test_enhance_response_appends_for_low_score(self, scorer):
        assert "family is important" in scorer.enhance_response("Hello")

    def test_stats(self, scorer):
        assert scorer.stats()["totalChecks"] == 0

        scorer.check("Family and memory loss")
        scorer.check("nothing")
        stats = scorer.stats()

        assert stats["totalChecks"] == 2
        assert stats["averageScore"] == 2
        assert stats["alignmentRate"] == 50
        assert stats["topRecommendations"][0]["count"] == 1

    def test_log_is_bounded(self, profile):
        scorer = ValueAlignmentScorer(profile, chooser=first_item, log_size=3)
        for _ in range(5):
            scorer.check("nothing")
        assert scorer.stats()["totalChecks"] == 3

    def test_conversation_context(self, scorer):
        assert scorer.conversation_context() == {
            "userValues": ["Family"],
            "userConcerns": ["memory loss"],
            "activeGoals": ["walk daily"],
            "confidenceLevel": 6,
        }


class TestTopicChange:
    def test_value_aligned(self, scorer):
        result = scorer.validate_topic_change("family dinners")
        assert result["isValueAligned"] is True
        assert result["reasoning"] == "Topic aligns with your value: Family"

    def test_concern_aligned(self, scorer):
        result = scorer.validate_topic_change("memory")
        assert result["isValueAligned"] is True
        assert "concern" in result["reasoning"]

    def test_unrelated(self, scorer):
        assert scorer.validate_topic_change("football")["isValueAligned"] is False

    def test_empty_topic_not_aligned(self, scorer):
        assert scorer.validate_topic_change("")["isValueAligned"] is False
