"""
test_feedback_stats.py
======================
Rating distribution and top-rated doctors.
"""

from telemed.feedback_stats import rating_distribution, top_rated_doctors

FEEDBACKS = [
    {"patient": 1, "doctor": 2, "doctorName": "Dr. Sophie Martin", "rating": 5},
    {"patient": 3, "doctor": 2, "doctorName": "Dr. Sophie Martin", "rating": 4},
    {"patient": 6, "doctor": 5, "doctorName": "Dr. Pierre Dubois", "rating": 3},
]


def test_rating_distribution():
    dist = rating_distribution(FEEDBACKS)
    assert list(dist) == [5, 4, 3, 2, 1]
    assert dist[5] == {"count": 1, "percentage": 33}
    assert dist[4] == {"count": 1, "percentage": 33}
    assert dist[3] == {"count": 1, "percentage": 33}
    assert dist[1] == {"count": 0, "percentage": 0}


def test_rating_distribution_empty():
    assert all(v == {"count": 0, "percentage": 0} for v in rating_distribution([]).values())


def test_top_rated_doctors():
    top = top_rated_doctors(FEEDBACKS)
    assert [(d["name"], d["avgRating"]) for d in top] == [
        ("Dr. Sophie Martin", 4.5),
        ("Dr. Pierre Dubois", 3.0),
    ]
    assert top[0]["count"] == 2
    assert top[0]["totalRating"] == 9


def test_top_rated_doctors_name_fallback_and_limit():
    feedbacks = FEEDBACKS + [{"patient": 1, "doctor": 9, "rating": 5}]
    top = top_rated_doctors(feedbacks, limit=1)
    assert top == [{"id": 9, "name": "Doctor #9", "totalRating": 5, "count": 1, "avgRating": 5.0}]

    top = top_rated_doctors(feedbacks, lookup={9: "Dr. Léa Moreau"})
    assert top[0]["name"] == "Dr. Léa Moreau"
