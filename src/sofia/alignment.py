"""
Value alignment scoring.

Scores a candidate companion response against what the user said matters to
them (best-life elements, concerns, active goals) by case-insensitive
substring containment, and suggests or appends a follow-up that steers the
conversation back to those priorities.

This is a relevance heuristic, not a semantic judgment. False positives and
negatives from substring matching are expected.
"""

import random
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence

from loguru import logger


ELEMENT_WEIGHT = 2
CONCERN_WEIGHT = 2
GOAL_WEIGHT = 1

# Below this the scorer recommends ways to realign the response
ALIGNMENT_THRESHOLD = 3

ADHERENCE_LOG_SIZE = 100

# Recommendation categories in enhancement priority order
REFERENCE_BEST_LIFE = "reference_best_life"
ADDRESS_CONCERN = "address_concern"
ALIGN_WITH_GOAL = "align_with_goal"
CATEGORY_ORDER = (REFERENCE_BEST_LIFE, ADDRESS_CONCERN, ALIGN_WITH_GOAL)

NO_VALUE_ALIGNMENT = "no_value_alignment"

Chooser = Callable[[Sequence[Any]], Any]


def first_item(items: Sequence[Any]) -> Any:
    """Deterministic chooser: always the first qualifying item."""
    return items[0]


@dataclass
class ValueProfile:
    """The parts of a user's profile the scorer looks at."""

    best_life_elements: List[str] = field(default_factory=list)
    concerns: List[str] = field(default_factory=list)
    active_goals: List[str] = field(default_factory=list)
    confidence_level: Optional[int] = None

    @classmethod
    def from_records(
        cls,
        best_life_elements: Optional[List[dict]] = None,
        concerns: Optional[List[dict]] = None,
        goals: Optional[List[Any]] = None,
        confidence_level: Optional[int] = None,
    ) -> "ValueProfile":
        """
        Build from stored About Me entries and goal rows.

        ``goals`` may hold dicts or ORM objects; only ``status == "active"``
        goals are kept. Blank texts are dropped so they can never match.
        """
        active = []
        for goal in goals or []:
            status = goal.get("status", "active") if isinstance(goal, dict) else goal.status
            text = goal.get("goal") if isinstance(goal, dict) else goal.goal
            if status == "active":
                active.append(text)

        return cls(
            best_life_elements=_texts(best_life_elements, "element"),
            concerns=_texts(concerns, "concern"),
            active_goals=[t for t in active if t and t.strip()],
            confidence_level=confidence_level,
        )


def _texts(items: Optional[List[Any]], key: str) -> List[str]:
    texts = []
    for item in items or []:
        text = item.get(key) if isinstance(item, dict) else item
        if text and text.strip():
            texts.append(text)
    return texts


@dataclass
class Recommendation:
    type: str
    suggestion: str
    element: Optional[str] = None
    concern: Optional[str] = None
    goal: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"type": self.type, "suggestion": self.suggestion}
        for key in ("element", "concern", "goal"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass
class AlignmentResult:
    score: int = 0
    aligned_elements: List[str] = field(default_factory=list)
    misalignments: List[Dict[str, str]] = field(default_factory=list)
    recommendations: List[Recommendation] = field(default_factory=list)

    @property
    def is_aligned(self) -> bool:
        return self.score >= ALIGNMENT_THRESHOLD

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "alignedElements": list(self.aligned_elements),
            "misalignments": list(self.misalignments),
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


class ValueAlignmentScorer:
    """
    Scores responses against a :class:`ValueProfile`.

    Args:
        profile: Default profile used when ``score`` is called without one
        chooser: Picks one recommendation target among the qualifying items
            of a category. Defaults to uniform random choice; pass
            :func:`first_item` (or any callable) for deterministic output.
        log_size: Number of recent results kept for :meth:`stats`
    """

    def __init__(
        self,
        profile: Optional[ValueProfile] = None,
        chooser: Optional[Chooser] = None,
        log_size: int = ADHERENCE_LOG_SIZE,
    ):
        self.profile = profile or ValueProfile()
        self.chooser: Chooser = chooser or random.choice
        self.adherence_log: Deque[AlignmentResult] = deque(maxlen=log_size)

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def score(self, response: str, profile: Optional[ValueProfile] = None) -> AlignmentResult:
        """Score ``response``. Pure apart from the chooser."""
        profile = profile or self.profile
        text = (response or "").lower()
        result = AlignmentResult()

        for element in profile.best_life_elements:
            if element.lower() in text:
                result.score += ELEMENT_WEIGHT
                result.aligned_elements.append(element)

        for concern in profile.concerns:
            if concern.lower() in text:
                result.score += CONCERN_WEIGHT
                result.aligned_elements.append(concern)

        for goal in profile.active_goals:
            if goal.lower() in text:
                result.score += GOAL_WEIGHT
                result.aligned_elements.append(goal)

        if result.score == 0:
            result.misalignments.append({
                "type": NO_VALUE_ALIGNMENT,
                "description": "Response does not reference user values, concerns, or goals",
            })

        if result.score < ALIGNMENT_THRESHOLD:
            result.recommendations = self._recommend(profile)

        return result

    def _recommend(self, profile: ValueProfile) -> List[Recommendation]:
        recommendations = []

        if profile.best_life_elements:
            element = self.chooser(profile.best_life_elements)
            recommendations.append(Recommendation(
                type=REFERENCE_BEST_LIFE,
                suggestion=f'Reference the user\'s value: "{element}"',
                element=element,
            ))

        if profile.concerns:
            concern = self.chooser(profile.concerns)
            recommendations.append(Recommendation(
                type=ADDRESS_CONCERN,
                suggestion=f'Address the user\'s concern: "{concern}"',
                concern=concern,
            ))

        if profile.active_goals:
            goal = self.chooser(profile.active_goals)
            recommendations.append(Recommendation(
                type=ALIGN_WITH_GOAL,
                suggestion=f'Connect to the user\'s goal: "{goal}"',
                goal=goal,
            ))

        return recommendations

    @staticmethod
    def enhance(response: str, recommendations: Sequence[Recommendation]) -> str:
        """
        Append at most one follow-up sentence to ``response``.

        The follow-up comes from the highest-priority recommendation by
        category order (best-life element, then concern, then goal).
        """
        by_type = {r.type: r for r in reversed(list(recommendations))}

        for category in CATEGORY_ORDER:
            rec = by_type.get(category)
            if rec is None:
                continue
            if category == REFERENCE_BEST_LIFE and rec.element:
                return (
                    f"{response}\n\nI want to make sure this aligns with what matters most to you. "
                    f"I know that {rec.element.lower()} is important in your life. "
                    "How does this relate to that?"
                )
            if category == ADDRESS_CONCERN and rec.concern:
                return (
                    f"{response}\n\nI also want to address your concern about "
                    f"{rec.concern.lower()}. How does this information help with that?"
                )
            if category == ALIGN_WITH_GOAL and rec.goal:
                return (
                    f"{response}\n\nThis connects to your goal of {rec.goal.lower()}. "
                    "How does this help you move toward that?"
                )

        return response

    # ------------------------------------------------------------------
    # Monitoring helpers
    # ------------------------------------------------------------------

    def check(self, response: str) -> AlignmentResult:
        """Score against the default profile and keep the result for stats."""
        result = self.score(response)
        self.adherence_log.append(result)
        logger.debug(
            f"Value alignment check: score={result.score} "
            f"matches={len(result.aligned_elements)} "
            f"recommendations={len(result.recommendations)}"
        )
        return result

    def enhance_response(self, response: str) -> str:
        """Check ``response`` and enhance it when it is poorly aligned."""
        result = self.check(response)
        if result.is_aligned:
            return response
        return self.enhance(response, result.recommendations)

    def stats(self) -> Dict[str, Any]:
        """Summary of the recent checks kept in the adherence log."""
        total = len(self.adherence_log)
        if total == 0:
            return {
                "totalChecks": 0,
                "averageScore": 0,
                "alignmentRate": 0,
                "topRecommendations": [],
            }

        average = sum(r.score for r in self.adherence_log) / total
        aligned = sum(1 for r in self.adherence_log if r.is_aligned)

        counts = Counter(
            rec.suggestion
            for result in self.adherence_log
            for rec in result.recommendations
        )

        return {
            "totalChecks": total,
            "averageScore": round(average, 2),
            "alignmentRate": round(aligned / total * 100),
            "topRecommendations": [
                {"recommendation": suggestion, "count": count}
                for suggestion, count in counts.most_common(5)
            ],
        }

    def conversation_context(self) -> Dict[str, Any]:
        return {
            "userValues": list(self.profile.best_life_elements),
            "userConcerns": list(self.profile.concerns),
            "activeGoals": list(self.profile.active_goals),
            "confidenceLevel": self.profile.confidence_level or 0,
        }

    def validate_topic_change(self, new_topic: str) -> Dict[str, Any]:
        """Whether ``new_topic`` relates to a stated value or concern."""
        topic = (new_topic or "").strip().lower()
        if not topic:
            return {
                "topic": new_topic,
                "isValueAligned": False,
                "reasoning": "No topic given",
                "suggestedApproach": "Ask the user what they would like to explore",
            }

        for element in self.profile.best_life_elements:
            lowered = element.lower()
            if lowered in topic or topic in lowered:
                return {
                    "topic": new_topic,
                    "isValueAligned": True,
                    "reasoning": f"Topic aligns with your value: {element}",
                    "suggestedApproach": "Proceed with topic exploration",
                }

        for concern in self.profile.concerns:
            lowered = concern.lower()
            if lowered in topic or topic in lowered:
                return {
                    "topic": new_topic,
                    "isValueAligned": True,
                    "reasoning": f"Topic addresses your concern: {concern}",
                    "suggestedApproach": "Address concern while maintaining value focus",
                }

        return {
            "topic": new_topic,
            "isValueAligned": False,
            "reasoning": "Topic may not directly align with current values/concerns",
            "suggestedApproach": "Consider if this serves the user's stated priorities",
        }
