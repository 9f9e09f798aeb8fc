"""
Risk Prediction Engine - Recommendations.

Maps a scored prediction to suggested interventions.
The text is what the habit tracker shows next to the score.
"""

from typing import List, Mapping, Tuple

from .types import Recommendation, RiskFactor


PREVENTIVE_THRESHOLD = 40
URGENT_THRESHOLD = 70

# Factors that respond to a breathing exercise
_BREATHING_FACTORS = (
    RiskFactor.ENERGY_DROP.value,
    RiskFactor.EMOTIONAL_VULNERABILITY.value,
)


def build_recommendations(
    factors: Mapping[str, float],
    risk_score: int,
) -> Tuple[Recommendation, ...]:
    """
    Build recommendations for a prediction.

    Args:
        factors: Fired factors from the prediction
        risk_score: Risk score 0-100

    Returns:
        Recommendations, most urgent last
    """
    if risk_score < PREVENTIVE_THRESHOLD:
        return (
            Recommendation(
                action="monitor",
                message="Risk is low. Keep doing what you're doing!",
            ),
        )

    if risk_score < URGENT_THRESHOLD:
        return (
            Recommendation(
                action="preventive",
                message="Consider a quick cold shower or walk",
                tool="physical_reset",
            ),
        )

    recommendations: List[Recommendation] = []
    if any(name in factors for name in _BREATHING_FACTORS):
        recommendations.append(Recommendation(
            action="breathing",
            message="Start breathing exercise NOW",
            tool="breathing_exercise",
            priority="high",
        ))

    recommendations.append(Recommendation(
        action="physical",
        message="Physical reset protocol - 20 pushups",
        tool="physical_reset",
        priority="high",
    ))
    recommendations.append(Recommendation(
        action="emergency",
        message="This is a critical moment - use emergency toolkit",
        tool="emergency_toolkit",
        priority="critical",
    ))
    return tuple(recommendations)


def get_recommended_interventions(risk_score: int) -> List[str]:
    """Intervention types to surface in the toolkit for a score."""
    if risk_score >= 80:
        return ["coldshower", "exercise", "breathing", "meditation"]
    if risk_score >= 70:
        return ["coldshower", "exercise", "breathing"]
    if risk_score >= 50:
        return ["breathing", "meditation"]
    return []
