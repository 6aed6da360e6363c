"""
seed.py
=======
Sample data loaded on first startup so the dashboard has something to show.
"""

import logging
from datetime import datetime
from werkzeug.security import generate_password_hash
from .models import User, Appointment, MedicalRecord, Reminder, Feedback

logger = logging.getLogger(__name__)

# All sample accounts share this password
SAMPLE_PASSWORD = "telemed"
_SAMPLE_HASH = generate_password_hash(SAMPLE_PASSWORD)


def _users():
    return [
        User(id=1, username="jean.dupont", email="jean.dupont@example.com",
             is_patient=True, full_name="Jean Dupont"),
        User(id=2, username="sophie.martin", email="sophie.martin@telemed.com",
             is_doctor=True, full_name="Dr. Sophie Martin", specialty="Cardiology"),
        User(id=3, username="marie.leclerc", email="marie.leclerc@example.com",
             is_patient=True, full_name="Marie Leclerc"),
        User(id=4, username="thomas.bernard", email="thomas.bernard@telemed.com",
             is_doctor=True, full_name="Dr. Thomas Bernard", specialty="Neurology"),
        User(id=5, username="pierre.dubois", email="pierre.dubois@telemed.com",
             is_doctor=True, full_name="Dr. Pierre Dubois", specialty="General"),
        User(id=6, username="camille.roux", email="camille.roux@example.com",
             is_patient=True, full_name="Camille Roux"),
    ]


def _appointments():
    return [
        Appointment(id=1, patient=1, doctor=2, datetime=datetime(2025, 4, 15, 10, 30),
                    mode="video", status="confirmed"),
        Appointment(id=2, patient=3, doctor=5, datetime=datetime(2025, 4, 16, 14, 0),
                    mode="chat", status="pending"),
        Appointment(id=3, patient=1, doctor=4, datetime=datetime(2025, 4, 17, 9, 0),
                    mode="video", status="pending"),
    ]


def _records():
    return [
        MedicalRecord(id=1, patient=1, created_at=datetime(2025, 4, 10, 15, 30),
                      diagnosis="Grippe saisonnière",
                      treatment="Repos, paracétamol, hydratation",
                      file="prescription_1.pdf"),
        MedicalRecord(id=2, patient=3, created_at=datetime(2025, 4, 5, 11, 0),
                      diagnosis="Hypertension artérielle",
                      treatment="Régime pauvre en sel, médicaments antihypertenseurs",
                      file="ecg_results.pdf"),
    ]


def _reminders():
    return [
        Reminder(id=1, patient=1, message="Prendre vos médicaments à 20h",
                 date_time=datetime(2025, 4, 15, 20, 0)),
        Reminder(id=2, patient=3, message="Rendez-vous de suivi demain à 10h",
                 date_time=datetime(2025, 4, 14, 10, 0), status="sent"),
        Reminder(id=3, patient=1, message="N'oubliez pas de mesurer votre tension artérielle",
                 date_time=datetime(2025, 4, 16, 9, 0)),
    ]


def _feedbacks():
    return [
        Feedback(id=1, patient=1, doctor=2, rating=5,
                 comment="Excellent médecin, très à l'écoute."),
        Feedback(id=2, patient=3, doctor=2, rating=4,
                 comment="Bon diagnostic, consultation un peu rapide mais efficace."),
        Feedback(id=3, patient=6, doctor=5, rating=3,
                 comment="Compétent, mais temps d'attente trop long."),
    ]


def seed_sample_data(db) -> bool:
    """
    Insert the sample dataset when the users table is empty.
    Returns True when data was inserted.
    """
    user_count = db.query(User).count()
    if user_count:
        logger.info("🩻 %d users already exist, skipping sample data.", user_count)
        return False

    logger.info("🩺 No users found. Seeding sample data...")
    users = _users()
    for u in users:
        u.password = _SAMPLE_HASH
    db.add_all(users)
    db.add_all(_appointments())
    db.add_all(_records())
    db.add_all(_reminders())
    db.add_all(_feedbacks())
    db.commit()
    logger.info("✅ Sample data has been seeded.")
    return True
