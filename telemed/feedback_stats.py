"""
feedback_stats.py
=================
Summaries shown next to the feedback list.
"""

from typing import Any, Dict, List, Sequence

from .refs import LookupLike, as_lookup, display_name, field_value

RATINGS = (5, 4, 3, 2, 1)


def rating_distribution(feedbacks: Sequence[Any]) -> Dict[int, Dict[str, int]]:
    """
    Count and rounded percentage of feedback per rating, 5 down to 1.
    Ratings outside 1..5 count towards the total only.
    """
    total = len(feedbacks)
    result = {}
    for rating in RATINGS:
        count = sum(1 for f in feedbacks if field_value(f, "rating") == rating)
        percentage = round(count * 100 / total) if total else 0
        result[rating] = {"count": count, "percentage": percentage}
    return result


def top_rated_doctors(feedbacks: Sequence[Any], limit: int = 5, lookup: LookupLike = None) -> List[dict]:
    """Doctors ordered by average rating, best first."""
    lookup = as_lookup(lookup)
    doctors: Dict[int, dict] = {}
    for f in feedbacks:
        doctor_id = field_value(f, "doctor")
        entry = doctors.get(doctor_id)
        if entry is None:
            entry = doctors[doctor_id] = {
                "id": doctor_id,
                "name": display_name(f, "doctor", lookup),
                "totalRating": 0,
                "count": 0,
            }
        entry["totalRating"] += field_value(f, "rating") or 0
        entry["count"] += 1

    ranked = [dict(d, avgRating=d["totalRating"] / d["count"]) for d in doctors.values()]
    ranked.sort(key=lambda d: d["avgRating"], reverse=True)
    return ranked[:limit]
