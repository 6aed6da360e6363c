"""
models.py
=========
SQLAlchemy ORM models for the telemedicine administration backend.
Contains tables for:
 - User (patients and doctors)
 - Appointment
 - MedicalRecord
 - Reminder
 - Feedback

Foreign keys (patient, doctor) are plain integers: referenced users may be
missing and callers fall back to "Patient #<id>" style placeholders.
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean
from sqlalchemy.orm import declarative_base
import datetime
import enum

# SQLAlchemy Base class
Base = declarative_base()


def _utcnow():
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


# ---------------------------------------------------------------------------
# ENUM DEFINITIONS
# ---------------------------------------------------------------------------

class AppointmentMode(str, enum.Enum):
    """How a consultation takes place."""
    video = "video"
    chat = "chat"


class AppointmentStatus(str, enum.Enum):
    """Conventional appointment statuses. The column itself is free-form."""
    pending = "pending"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"


class ReminderStatus(str, enum.Enum):
    scheduled = "scheduled"
    sent = "sent"


# ---------------------------------------------------------------------------
# TABLE DEFINITIONS
# ---------------------------------------------------------------------------

class User(Base):
    """Identity record for patients and doctors."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String, nullable=False, unique=True)
    password = Column(String, nullable=False)  # werkzeug hash
    email = Column(String, nullable=False)
    is_patient = Column(Boolean, default=False)
    is_doctor = Column(Boolean, default=False)
    full_name = Column(String, nullable=True)
    specialty = Column(String, nullable=True)

    @property
    def display_name(self):
        return self.full_name or self.username


class Appointment(Base):
    """A consultation between a patient and a doctor."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    patient = Column(Integer, nullable=False)
    doctor = Column(Integer, nullable=False)
    datetime = Column(DateTime, nullable=False)
    mode = Column(String(10), nullable=False)
    status = Column(String(20), nullable=False, default=AppointmentStatus.pending.value)


class MedicalRecord(Base):
    """Diagnosis and treatment notes. Attachments are kept by filename only."""
    __tablename__ = "medical_records"

    id = Column(Integer, primary_key=True)
    patient = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=_utcnow)
    diagnosis = Column(Text, nullable=False)
    treatment = Column(Text, nullable=False)
    file = Column(String, nullable=True)


class Reminder(Base):
    __tablename__ = "reminders"

    id = Column(Integer, primary_key=True)
    patient = Column(Integer, nullable=False)
    message = Column(Text, nullable=False)
    date_time = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default=ReminderStatus.scheduled.value)


class Feedback(Base):
    """Patient rating of a doctor. Rating is expected in 1..5 but not enforced."""
    __tablename__ = "feedbacks"

    id = Column(Integer, primary_key=True)
    patient = Column(Integer, nullable=False)
    doctor = Column(Integer, nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False)
