"""
schemas.py
==========
Pydantic models used for validating incoming requests and
structuring outgoing API responses.

Record models use the exact JSON keys of the API (patientName, date_time,
...), so the same classes are used by the server to answer and by the
client to parse.
"""

import datetime as dt
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List

from .models import AppointmentMode


# ---------------------------------------------------------------------------
# AUTH
# ---------------------------------------------------------------------------

class TokenRequest(BaseModel):
    """Request body for the (non-validating) token endpoint."""
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class TokenResponse(BaseModel):
    access: str
    token_type: str = "access"
    exp: int


# ---------------------------------------------------------------------------
# REQUEST PAYLOADS
# ---------------------------------------------------------------------------

class InsertUser(BaseModel):
    """Request body for creating a patient or doctor account."""
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    email: str = Field(min_length=3)
    is_patient: bool = False
    is_doctor: bool = False
    full_name: Optional[str] = None
    specialty: Optional[str] = None


class InsertAppointment(BaseModel):
    patient: int
    doctor: int
    datetime: dt.datetime
    mode: AppointmentMode
    status: str = Field(default="pending", max_length=20)


class AppointmentUpdate(BaseModel):
    """Partial update; only the fields present in the body are applied."""
    patient: Optional[int] = None
    doctor: Optional[int] = None
    datetime: Optional[dt.datetime] = None
    mode: Optional[AppointmentMode] = None
    status: Optional[str] = Field(default=None, max_length=20)


class InsertMedicalRecord(BaseModel):
    patient: int
    diagnosis: str = Field(min_length=1)
    treatment: str = Field(min_length=1)
    file: Optional[str] = None


class InsertReminder(BaseModel):
    patient: int
    message: str = Field(min_length=1)
    date_time: dt.datetime
    status: str = Field(default="scheduled", max_length=20)


class ReminderUpdate(BaseModel):
    patient: Optional[int] = None
    message: Optional[str] = Field(default=None, min_length=1)
    date_time: Optional[dt.datetime] = None
    status: Optional[str] = Field(default=None, max_length=20)


class InsertFeedback(BaseModel):
    patient: int
    doctor: int
    rating: int
    comment: str


# ---------------------------------------------------------------------------
# RECORDS
# ---------------------------------------------------------------------------

class User(BaseModel):
    """
    A user as returned by the API. The derived fields are only attached
    by the list endpoint.
    """
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    is_patient: bool = False
    is_doctor: bool = False
    full_name: Optional[str] = None
    specialty: Optional[str] = None
    rating: Optional[float] = None
    patientCount: Optional[int] = None
    lastAppointment: Optional[dt.datetime] = None
    recordCount: Optional[int] = None


class Appointment(BaseModel):
    id: int
    patient: int
    patientName: Optional[str] = None
    doctor: int
    doctorName: Optional[str] = None
    datetime: dt.datetime
    mode: str
    status: str


class MedicalRecord(BaseModel):
    id: int
    patient: int
    patientName: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    diagnosis: str
    treatment: str
    file: Optional[str] = None


class Reminder(BaseModel):
    id: int
    patient: int
    patientName: Optional[str] = None
    message: str
    date_time: dt.datetime
    status: str = "scheduled"


class Feedback(BaseModel):
    id: int
    patient: int
    patientName: Optional[str] = None
    doctor: int
    doctorName: Optional[str] = None
    rating: int
    comment: str


class DashboardStats(BaseModel):
    totalAppointments: int
    activePatients: int
    activeDoctors: int
    avgRating: float


class ReportResponse(BaseModel):
    """Result of a generated report."""
    kind: str
    report_type: str
    count: int
    generated_at: dt.datetime
    items: List[dict]
