"""End-of-session performance analysis.

Rule-based: accuracy and perfect-hit rate map to a performance tier and a
difficulty recommendation; average sub-scores map to strengths and
weaknesses.
"""

from __future__ import annotations

from src.state.types import SessionAnalysis, SessionSummary

# (min accuracy %, min perfect rate %, tier, recommendation)
PERFORMANCE_TIERS = [
    (90.0, 50.0, "Elite", "Champion level! Consider increasing difficulty!"),
    (80.0, 30.0, "Advanced", "Strong performance! Keep pushing for perfection!"),
    (70.0, 15.0, "Intermediate", "Good progress! Focus on form consistency!"),
    (50.0, 0.0, "Developing", "You're improving! Practice basic combinations!"),
]
BEGINNER = ("Beginner", "Keep training! Focus on the fundamentals!")


def _strengths(avg_speed: float, avg_form: float) -> list[str]:
    strengths = []
    if avg_speed >= 80:
        strengths.append("Excellent speed")
    if avg_form >= 80:
        strengths.append("Great technique")
    if avg_speed >= 70 and avg_form >= 70:
        strengths.append("Well-balanced fighter")
    return strengths or ["Building fundamentals"]


def _weaknesses(avg_speed: float, avg_form: float) -> list[str]:
    weaknesses = []
    if avg_speed < 60:
        weaknesses.append("Work on punch speed")
    if avg_form < 60:
        weaknesses.append("Improve form and extension")
    if abs(avg_speed - avg_form) > 25:
        weaknesses.append("Balance speed and technique")
    return weaknesses


def _difficulty(accuracy: float, perfect_rate: float, max_combo: int) -> tuple[str, str, float]:
    if accuracy >= 85 and perfect_rate >= 40 and max_combo >= 20:
        return "increase", "Ready for harder challenges!", 1.2
    if accuracy < 50 or perfect_rate < 10:
        return "decrease", "Try a slower pace to build fundamentals", 0.8
    return "maintain", "Current difficulty is perfect!", 1.0


def analyze_session(
    hits: int,
    misses: int,
    perfect_hits: int,
    avg_speed: float,
    avg_form: float,
    max_combo: int,
) -> SessionAnalysis:
    attempts = hits + misses
    accuracy = hits / attempts * 100.0 if attempts else 0.0
    perfect_rate = perfect_hits / attempts * 100.0 if attempts else 0.0

    performance, recommendation = BEGINNER
    for min_acc, min_perfect, tier, text in PERFORMANCE_TIERS:
        if accuracy >= min_acc and perfect_rate >= min_perfect:
            performance, recommendation = tier, text
            break

    adjustment, message, factor = _difficulty(accuracy, perfect_rate, max_combo)
    return SessionAnalysis(
        performance=performance,
        recommendation=recommendation,
        strengths=_strengths(avg_speed, avg_form),
        weaknesses=_weaknesses(avg_speed, avg_form),
        difficulty_adjustment=adjustment,
        difficulty_message=message,
        suggested_speed=factor,
    )


def build_summary(
    mode: str,
    total_hits: int,
    total_misses: int,
    max_combo: int,
    level: int,
    total_points: int,
    perfect_hits: int,
    speed_score_sum: float,
    form_score_sum: float,
    completed_sequences: int = 0,
) -> SessionSummary:
    attempts = total_hits + total_misses
    accuracy = total_hits / attempts * 100.0 if attempts else 0.0
    avg_speed = speed_score_sum / total_hits if total_hits else 0.0
    avg_form = form_score_sum / total_hits if total_hits else 0.0
    return SessionSummary(
        mode=mode,
        total_hits=total_hits,
        total_misses=total_misses,
        accuracy=round(accuracy, 1),
        max_combo=max_combo,
        level_reached=level,
        total_points=total_points,
        perfect_hits=perfect_hits,
        average_speed_score=round(avg_speed, 1),
        average_form_score=round(avg_form, 1),
        completed_sequences=completed_sequences,
        analysis=analyze_session(total_hits, total_misses, perfect_hits, avg_speed, avg_form, max_combo),
    )
