"""
Change Threshold Filter

Decides whether a newly found assignment is worth replacing the mods a
character already wears. Moving mods costs in-game currency, so marginal
gains are not worth the churn.
"""

EPSILON = 1e-6


def improvement_percent(current_score: float, candidate_score: float) -> float:
    """Relative improvement of the candidate over the current assignment, in percent."""
    return (candidate_score - current_score) / max(current_score, EPSILON) * 100


def should_replace(current_score: float, candidate_score: float, threshold: float) -> bool:
    """
    Replace only if the candidate improves on the current score by at least
    `threshold` percent.

    Args:
        current_score: Score of the mods currently equipped
        candidate_score: Score of the newly found assignment
        threshold: Required improvement, 0-100 (percent)
    """
    return improvement_percent(current_score, candidate_score) >= threshold
