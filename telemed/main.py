"""
main.py
========
This is the FastAPI entry point for the telemedicine administration backend.
It:
 - Initializes the database.
 - Seeds the sample dataset if the database is empty.
 - Exposes REST API endpoints for users, appointments, medical records,
   reminders, feedback and dashboard statistics.
 - Exposes report and export endpoints over the same data.
"""

import logging
from typing import List, Optional
from datetime import datetime

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from . import schemas, services
from .config import CORS_ORIGINS, PORT, configure_logging
from .db import SessionLocal, get_db, init_db
from .errors import register_exception_handlers
from .export import as_row, export_data
from .models import Base
from .reports import apply_report
from .seed import seed_sample_data
from .timeutils import utcnow

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# APP INITIALIZATION
# ---------------------------------------------------------------------------

app = FastAPI(title="Telemedicine Admin Backend", version="1.0")

# Allow the dashboard frontend to communicate
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

api = APIRouter(prefix="/api")


# ---------------------------------------------------------------------------
# APP STARTUP EVENT
# ---------------------------------------------------------------------------
@app.on_event("startup")
async def startup_event():
    """
    Called when FastAPI starts.
    Initializes the database and seeds the sample data.
    """
    configure_logging()
    logger.info("🚀 Starting Telemedicine Admin Backend...")
    init_db(Base)  # Create tables if missing

    db = SessionLocal()
    try:
        seed_sample_data(db)
    finally:
        db.close()


def _validate(model, data):
    """Validate a hand-parsed body; failures become the usual 400 response."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise RequestValidationError(e.errors())


# ---------------------------------------------------------------------------
# AUTH
# ---------------------------------------------------------------------------

@api.post("/token/", response_model=schemas.TokenResponse)
def api_token(req: schemas.TokenRequest):
    """Mock token endpoint: accepts any username and password."""
    return services.issue_token(req.username)


# ---------------------------------------------------------------------------
# USERS
# ---------------------------------------------------------------------------

@api.get("/users/", response_model=List[schemas.User], response_model_exclude_unset=True)
def api_list_users(is_patient: bool = False, is_doctor: bool = False, db=Depends(get_db)):
    """
    List users. ``is_patient=true`` or ``is_doctor=true`` restrict the list
    and attach the role specific fields.
    """
    return services.list_users(db, is_patient=is_patient, is_doctor=is_doctor)


@api.post("/users/", response_model=schemas.User, status_code=201, response_model_exclude_unset=True)
def api_create_user(req: schemas.InsertUser, db=Depends(get_db)):
    try:
        return services.create_user(db, req)
    except services.DuplicateUsername:
        raise HTTPException(status_code=400, detail=[{
            "loc": ["body", "username"],
            "msg": "A user with that username already exists.",
            "type": "unique",
        }])


@api.get("/users/{user_id}", response_model=schemas.User, response_model_exclude_unset=True)
def api_get_user(user_id: int, db=Depends(get_db)):
    user = services.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


# ---------------------------------------------------------------------------
# APPOINTMENTS
# ---------------------------------------------------------------------------

@api.get("/appointments/", response_model=List[schemas.Appointment])
def api_list_appointments(status: Optional[str] = None, db=Depends(get_db)):
    return services.list_appointments(db, status=status)


@api.post("/appointments/", response_model=schemas.Appointment, status_code=201)
def api_create_appointment(req: schemas.InsertAppointment, db=Depends(get_db)):
    return services.create_appointment(db, req)


@api.get("/appointments/{appointment_id}", response_model=schemas.Appointment)
def api_get_appointment(appointment_id: int, db=Depends(get_db)):
    appointment = services.get_appointment(db, appointment_id)
    if not appointment:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return appointment


@api.patch("/appointments/{appointment_id}", response_model=schemas.Appointment)
def api_update_appointment(appointment_id: int, req: schemas.AppointmentUpdate, db=Depends(get_db)):
    """Apply the fields present in the body and return the stored appointment."""
    appointment = services.update_appointment(db, appointment_id, req)
    if not appointment:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return appointment


@api.delete("/appointments/{appointment_id}", status_code=204)
def api_delete_appointment(appointment_id: int, db=Depends(get_db)):
    if not services.delete_appointment(db, appointment_id):
        raise HTTPException(status_code=404, detail="Appointment not found")
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# MEDICAL RECORDS
# ---------------------------------------------------------------------------

@api.get("/records/", response_model=List[schemas.MedicalRecord])
def api_list_records(patient: Optional[int] = None, db=Depends(get_db)):
    return services.list_records(db, patient=patient)


@api.post("/records/", response_model=schemas.MedicalRecord, status_code=201)
async def api_create_record(request: Request, db=Depends(get_db)):
    """
    Create a medical record from a JSON body, or from a multipart form
    with an optional ``file`` upload. Only the file name is kept.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        data = {k: v for k, v in form.items() if k != "file"}
        upload = form.get("file")
        if upload is not None:
            data["file"] = getattr(upload, "filename", None) or str(upload) or None
    else:
        try:
            data = await request.json()
        except ValueError:
            raise RequestValidationError([{
                "loc": ["body"], "msg": "Invalid JSON body", "type": "json_invalid",
            }])
    return services.create_record(db, _validate(schemas.InsertMedicalRecord, data))


# ---------------------------------------------------------------------------
# REMINDERS
# ---------------------------------------------------------------------------

@api.get("/reminders/", response_model=List[schemas.Reminder])
def api_list_reminders(db=Depends(get_db)):
    return services.list_reminders(db)


@api.post("/reminders/", response_model=schemas.Reminder, status_code=201)
def api_create_reminder(req: schemas.InsertReminder, db=Depends(get_db)):
    return services.create_reminder(db, req)


@api.patch("/reminders/{reminder_id}", response_model=schemas.Reminder)
def api_update_reminder(reminder_id: int, req: schemas.ReminderUpdate, db=Depends(get_db)):
    reminder = services.update_reminder(db, reminder_id, req)
    if not reminder:
        raise HTTPException(status_code=404, detail="Reminder not found")
    return reminder


@api.delete("/reminders/{reminder_id}", status_code=204)
def api_delete_reminder(reminder_id: int, db=Depends(get_db)):
    if not services.delete_reminder(db, reminder_id):
        raise HTTPException(status_code=404, detail="Reminder not found")
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# FEEDBACK & STATS
# ---------------------------------------------------------------------------

@api.get("/feedbacks/", response_model=List[schemas.Feedback])
def api_list_feedbacks(db=Depends(get_db)):
    return services.list_feedbacks(db)


@api.post("/feedbacks/", response_model=schemas.Feedback, status_code=201)
def api_create_feedback(req: schemas.InsertFeedback, db=Depends(get_db)):
    return services.create_feedback(db, req)


@api.get("/stats/", response_model=schemas.DashboardStats)
def api_stats(db=Depends(get_db)):
    return services.dashboard_stats(db)


# ---------------------------------------------------------------------------
# REPORTS & EXPORT
# ---------------------------------------------------------------------------

def _report(db, kind, report_type, start, end):
    data = services.load_dataset(db, kind)
    if data is None:
        raise HTTPException(status_code=404, detail="Unknown report kind")
    now = utcnow()
    return apply_report(kind, data, report_type, start, end, now=now), now


@api.get("/reports/{kind}/", response_model=schemas.ReportResponse)
def api_report(
    kind: str,
    report_type: str = "all",
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    db=Depends(get_db),
):
    """Records of ``kind`` matching a report type and an optional date range."""
    results, now = _report(db, kind, report_type, start, end)
    return schemas.ReportResponse(
        kind=kind,
        report_type=report_type,
        count=len(results),
        generated_at=now,
        items=[as_row(r) for r in results],
    )


@api.get("/reports/{kind}/export/")
def api_export(
    kind: str,
    format: str = "csv",
    report_type: str = "all",
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    include_headers: bool = True,
    db=Depends(get_db),
):
    """Download a report as CSV or JSON. PDF answers 501."""
    results, now = _report(db, kind, report_type, start, end)
    export = export_data(kind, results, format, include_headers=include_headers, now=now)
    logger.info("Exported %d %s as %s", len(results), kind, export.filename)
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


app.include_router(api)


# ---------------------------------------------------------------------------
# ROOT ENDPOINT
# ---------------------------------------------------------------------------

@app.get("/")
def root():
    """Basic health check endpoint."""
    return {"message": "Telemedicine Admin Backend is running!"}


if __name__ == "__main__":
    configure_logging()
    logger.info("Starting FastAPI server on port %d", PORT)
    uvicorn.run(app, host="0.0.0.0", port=PORT)
