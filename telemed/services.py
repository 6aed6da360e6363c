"""
services.py
===========
Query and persistence logic behind the API routes.

Every function takes an open SQLAlchemy session and returns pydantic
records (see schemas.py) with display names joined from the users table.
Functions that look up a single row return None when it does not exist;
the routes turn that into a 404.
"""

import logging
import secrets
import time
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from werkzeug.security import generate_password_hash

from . import models, schemas
from .config import TOKEN_TTL
from .timeutils import as_utc, to_storage

logger = logging.getLogger(__name__)


class DuplicateUsername(ValueError):
    """Raised when creating a user whose username is taken."""


# ---------------------------------------------------------------------------
# AUTH
# ---------------------------------------------------------------------------

def issue_token(username: str) -> schemas.TokenResponse:
    """
    Mock token endpoint: any username/password pair gets a token.
    """
    logger.info("Issuing access token for %s", username)
    return schemas.TokenResponse(
        access=secrets.token_urlsafe(32),
        token_type="access",
        exp=int(time.time()) + TOKEN_TTL,
    )


# ---------------------------------------------------------------------------
# NAME JOINS
# ---------------------------------------------------------------------------

def user_names(db, ids: Iterable[int]) -> Dict[int, str]:
    """Map user id -> display name for the ids that exist."""
    ids = {i for i in ids if i is not None}
    if not ids:
        return {}
    users = db.query(models.User).filter(models.User.id.in_(ids)).all()
    return {u.id: u.display_name for u in users}


def _appointment(a: models.Appointment, names: Dict[int, str]) -> schemas.Appointment:
    return schemas.Appointment(
        id=a.id,
        patient=a.patient,
        patientName=names.get(a.patient),
        doctor=a.doctor,
        doctorName=names.get(a.doctor),
        datetime=as_utc(a.datetime),
        mode=a.mode,
        status=a.status,
    )


def _record(r: models.MedicalRecord, names: Dict[int, str]) -> schemas.MedicalRecord:
    return schemas.MedicalRecord(
        id=r.id,
        patient=r.patient,
        patientName=names.get(r.patient),
        created_at=as_utc(r.created_at),
        diagnosis=r.diagnosis,
        treatment=r.treatment,
        file=r.file,
    )


def _reminder(r: models.Reminder, names: Dict[int, str]) -> schemas.Reminder:
    return schemas.Reminder(
        id=r.id,
        patient=r.patient,
        patientName=names.get(r.patient),
        message=r.message,
        date_time=as_utc(r.date_time),
        status=r.status,
    )


def _feedback(f: models.Feedback, names: Dict[int, str]) -> schemas.Feedback:
    return schemas.Feedback(
        id=f.id,
        patient=f.patient,
        patientName=names.get(f.patient),
        doctor=f.doctor,
        doctorName=names.get(f.doctor),
        rating=f.rating,
        comment=f.comment,
    )


def _update_values(payload) -> dict:
    """Fields explicitly sent in a PATCH body, ready for the ORM."""
    values = {}
    for key, value in payload.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        if hasattr(value, "value"):
            value = value.value
        if key in ("datetime", "date_time"):
            value = to_storage(value)
        values[key] = value
    return values


# ---------------------------------------------------------------------------
# USERS
# ---------------------------------------------------------------------------

def list_users(db, is_patient: bool = False, is_doctor: bool = False) -> List[schemas.User]:
    """
    All users, or only patients / doctors. Role lists carry derived fields:
    doctors get rating and patientCount, patients get lastAppointment and
    recordCount.
    """
    query = db.query(models.User)
    if is_patient:
        query = query.filter(models.User.is_patient.is_(True))
    elif is_doctor:
        query = query.filter(models.User.is_doctor.is_(True))
    users = query.order_by(models.User.id).all()

    if is_patient:
        return [_patient_with_stats(db, u) for u in users]
    if is_doctor:
        return [_doctor_with_stats(db, u) for u in users]
    return [schemas.User.model_validate(u) for u in users]


def _doctor_with_stats(db, user: models.User) -> schemas.User:
    avg = db.query(func.avg(models.Feedback.rating)).filter(models.Feedback.doctor == user.id).scalar()
    patients = (
        db.query(func.count(func.distinct(models.Appointment.patient)))
        .filter(models.Appointment.doctor == user.id)
        .scalar()
    )
    record = schemas.User.model_validate(user)
    record.rating = round(float(avg), 1) if avg is not None else None
    record.patientCount = patients or 0
    return record


def _patient_with_stats(db, user: models.User) -> schemas.User:
    last = db.query(func.max(models.Appointment.datetime)).filter(models.Appointment.patient == user.id).scalar()
    records = db.query(models.MedicalRecord).filter(models.MedicalRecord.patient == user.id).count()
    record = schemas.User.model_validate(user)
    record.lastAppointment = as_utc(last)
    record.recordCount = records
    return record


def get_user(db, user_id: int) -> Optional[schemas.User]:
    user = db.get(models.User, user_id)
    return schemas.User.model_validate(user) if user else None


def create_user(db, payload: schemas.InsertUser) -> schemas.User:
    if db.query(models.User).filter(models.User.username == payload.username).first():
        raise DuplicateUsername(payload.username)
    user = models.User(
        username=payload.username,
        password=generate_password_hash(payload.password),
        email=payload.email,
        is_patient=payload.is_patient,
        is_doctor=payload.is_doctor,
        full_name=payload.full_name,
        specialty=payload.specialty,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created user %s (id=%d)", user.username, user.id)
    return schemas.User.model_validate(user)


# ---------------------------------------------------------------------------
# APPOINTMENTS
# ---------------------------------------------------------------------------

def list_appointments(db, status: Optional[str] = None) -> List[schemas.Appointment]:
    query = db.query(models.Appointment)
    if status:
        query = query.filter(models.Appointment.status == status)
    rows = query.order_by(models.Appointment.id).all()
    names = user_names(db, [a.patient for a in rows] + [a.doctor for a in rows])
    return [_appointment(a, names) for a in rows]


def get_appointment(db, appointment_id: int) -> Optional[schemas.Appointment]:
    a = db.get(models.Appointment, appointment_id)
    if not a:
        return None
    return _appointment(a, user_names(db, [a.patient, a.doctor]))


def create_appointment(db, payload: schemas.InsertAppointment) -> schemas.Appointment:
    a = models.Appointment(
        patient=payload.patient,
        doctor=payload.doctor,
        datetime=to_storage(payload.datetime),
        mode=payload.mode.value,
        status=payload.status,
    )
    db.add(a)
    db.commit()
    db.refresh(a)
    logger.info("Created appointment %d (patient=%d, doctor=%d)", a.id, a.patient, a.doctor)
    return _appointment(a, user_names(db, [a.patient, a.doctor]))


def update_appointment(db, appointment_id: int, payload: schemas.AppointmentUpdate) -> Optional[schemas.Appointment]:
    a = db.get(models.Appointment, appointment_id)
    if not a:
        return None
    for key, value in _update_values(payload).items():
        setattr(a, key, value)
    db.commit()
    db.refresh(a)
    return _appointment(a, user_names(db, [a.patient, a.doctor]))


def delete_appointment(db, appointment_id: int) -> bool:
    a = db.get(models.Appointment, appointment_id)
    if not a:
        return False
    db.delete(a)
    db.commit()
    logger.info("Deleted appointment %d", appointment_id)
    return True


# ---------------------------------------------------------------------------
# MEDICAL RECORDS
# ---------------------------------------------------------------------------

def list_records(db, patient: Optional[int] = None) -> List[schemas.MedicalRecord]:
    query = db.query(models.MedicalRecord)
    if patient is not None:
        query = query.filter(models.MedicalRecord.patient == patient)
    rows = query.order_by(models.MedicalRecord.id).all()
    names = user_names(db, [r.patient for r in rows])
    return [_record(r, names) for r in rows]


def create_record(db, payload: schemas.InsertMedicalRecord) -> schemas.MedicalRecord:
    r = models.MedicalRecord(
        patient=payload.patient,
        diagnosis=payload.diagnosis,
        treatment=payload.treatment,
        file=payload.file,
    )
    db.add(r)
    db.commit()
    db.refresh(r)
    logger.info("Created medical record %d for patient %d", r.id, r.patient)
    return _record(r, user_names(db, [r.patient]))


# ---------------------------------------------------------------------------
# REMINDERS
# ---------------------------------------------------------------------------

def list_reminders(db) -> List[schemas.Reminder]:
    rows = db.query(models.Reminder).order_by(models.Reminder.id).all()
    names = user_names(db, [r.patient for r in rows])
    return [_reminder(r, names) for r in rows]


def create_reminder(db, payload: schemas.InsertReminder) -> schemas.Reminder:
    r = models.Reminder(
        patient=payload.patient,
        message=payload.message,
        date_time=to_storage(payload.date_time),
        status=payload.status,
    )
    db.add(r)
    db.commit()
    db.refresh(r)
    logger.info("Created reminder %d for patient %d", r.id, r.patient)
    return _reminder(r, user_names(db, [r.patient]))


def update_reminder(db, reminder_id: int, payload: schemas.ReminderUpdate) -> Optional[schemas.Reminder]:
    r = db.get(models.Reminder, reminder_id)
    if not r:
        return None
    for key, value in _update_values(payload).items():
        setattr(r, key, value)
    db.commit()
    db.refresh(r)
    return _reminder(r, user_names(db, [r.patient]))


def delete_reminder(db, reminder_id: int) -> bool:
    r = db.get(models.Reminder, reminder_id)
    if not r:
        return False
    db.delete(r)
    db.commit()
    logger.info("Deleted reminder %d", reminder_id)
    return True


# ---------------------------------------------------------------------------
# FEEDBACK
# ---------------------------------------------------------------------------

def list_feedbacks(db) -> List[schemas.Feedback]:
    rows = db.query(models.Feedback).order_by(models.Feedback.id).all()
    names = user_names(db, [f.patient for f in rows] + [f.doctor for f in rows])
    return [_feedback(f, names) for f in rows]


def create_feedback(db, payload: schemas.InsertFeedback) -> schemas.Feedback:
    f = models.Feedback(
        patient=payload.patient,
        doctor=payload.doctor,
        rating=payload.rating,
        comment=payload.comment,
    )
    db.add(f)
    db.commit()
    db.refresh(f)
    return _feedback(f, user_names(db, [f.patient, f.doctor]))


# ---------------------------------------------------------------------------
# DASHBOARD & REPORTS
# ---------------------------------------------------------------------------

def dashboard_stats(db) -> schemas.DashboardStats:
    avg = db.query(func.avg(models.Feedback.rating)).scalar()
    return schemas.DashboardStats(
        totalAppointments=db.query(models.Appointment).count(),
        activePatients=db.query(models.User).filter(models.User.is_patient.is_(True)).count(),
        activeDoctors=db.query(models.User).filter(models.User.is_doctor.is_(True)).count(),
        avgRating=round(float(avg), 1) if avg is not None else 0.0,
    )


# Dataset loaders for the report endpoints
DATASETS = {
    "appointments": lambda db: list_appointments(db),
    "records": lambda db: list_records(db),
    "reminders": lambda db: list_reminders(db),
    "feedbacks": lambda db: list_feedbacks(db),
    "patients": lambda db: list_users(db, is_patient=True),
    "doctors": lambda db: list_users(db, is_doctor=True),
}


def load_dataset(db, kind: str):
    """Records of one kind, as served by its list endpoint. None for an unknown kind."""
    loader = DATASETS.get(kind)
    return loader(db) if loader else None
