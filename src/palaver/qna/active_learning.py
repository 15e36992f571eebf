"""Active learning: pick the answers close enough to the top one to ask the user."""

import math

from .models import QueryResult

PREVIOUS_LOW_SCORE_VARIATION_MULTIPLIER = 0.7
MAX_LOW_SCORE_VARIATION_MULTIPLIER = 1.0
MAXIMUM_SCORE_FOR_LOW_SCORE_VARIATION = 95.0
MINIMUM_SCORE_FOR_LOW_SCORE_VARIATION = 20.0


def get_low_score_variation(results: list[QueryResult]) -> list[QueryResult]:
    """Cluster the answers whose scores are within a sqrt-scaled band of the top answer.

    A single result is returned as-is. A top score above 95 returns only the
    top answer, and a top score of 20 or less returns nothing.
    """
    if not results:
        return []
    if len(results) == 1:
        return list(results)

    top_score = results[0].score * 100
    if top_score > MAXIMUM_SCORE_FOR_LOW_SCORE_VARIATION:
        return [results[0]]

    filtered: list[QueryResult] = []
    previous_score = top_score
    if top_score > MINIMUM_SCORE_FOR_LOW_SCORE_VARIATION:
        filtered.append(results[0])
        for result in results[1:]:
            score = result.score * 100
            if _include_for_clustering(
                previous_score, score, PREVIOUS_LOW_SCORE_VARIATION_MULTIPLIER
            ) and _include_for_clustering(top_score, score, MAX_LOW_SCORE_VARIATION_MULTIPLIER):
                previous_score = score
                filtered.append(result)
    return filtered


def _include_for_clustering(previous_score: float, current_score: float, multiplier: float) -> bool:
    return (previous_score - current_score) < multiplier * math.sqrt(previous_score)
