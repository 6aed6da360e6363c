"""
client.py
=========
Data fetch layer used by the dashboard: a small requests-based client for
the REST API that parses responses into the typed records of schemas.py.

 - Every GET is tagged with an increasing sequence number. ``accept`` tells
   the caller whether a response is still the newest one for its resource
   and query, so a slow, older response never overwrites a newer one.
   Switching between queries (all, then "cancelled", then all again) never
   makes a cached list look stale.
 - GET results are cached per resource and query. Creating, updating or
   deleting through the client drops the cache of that resource.
 - Failures raise ApiError. Nothing is retried.
"""

import itertools
import logging
from typing import Any, Callable, Dict, NamedTuple, Optional, Tuple

import requests
from pydantic_core import to_jsonable_python

from . import schemas
from .config import API_URL
from .session import AuthSession, SessionUser

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """An API call failed. ``status_code`` is None for network errors."""

    def __init__(self, status_code: Optional[int], detail: Any):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


class Fetched(NamedTuple):
    """Result of a GET, tagged with the order in which it was issued."""
    resource: str
    seq: int
    data: Any
    query: tuple = ()

    @property
    def key(self) -> Tuple[str, tuple]:
        return (self.resource, self.query)


def _parse_list(model) -> Callable[[Any], list]:
    def parse(body):
        return [model.model_validate(item) for item in body]
    return parse


class ApiClient:
    """
    Client for the telemedicine API.

    ``http`` is anything with a requests-style ``request`` method; it
    defaults to a new ``requests.Session``.
    """

    def __init__(self, base_url: str = API_URL, session: Optional[AuthSession] = None,
                 http=None, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else AuthSession()
        self.http = http if http is not None else requests.Session()
        self.timeout = timeout
        self._cache: Dict[Tuple[str, tuple], Fetched] = {}
        self._seq = itertools.count(1)
        self._accepted: Dict[Tuple[str, tuple], int] = {}

    # -----------------------------------------------------------------------
    # PLUMBING
    # -----------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs):
        url = f"{self.base_url}{path}"
        headers = self.session.auth_headers()
        try:
            resp = self.http.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method, url, e)
            raise ApiError(None, str(e)) from e

        if resp.status_code >= 400:
            try:
                body = resp.json()
                detail = body.get("detail", body) if isinstance(body, dict) else body
            except ValueError:
                detail = resp.text
            logger.warning("%s %s -> %d %s", method, url, resp.status_code, detail)
            raise ApiError(resp.status_code, detail)
        return resp

    def _get(self, resource: str, path: str, parse: Callable, params: Optional[dict] = None,
             fresh: bool = False) -> Fetched:
        params = {k: v for k, v in (params or {}).items() if v is not None}
        query = tuple(sorted(params.items()))
        key = (resource, query)
        if not fresh and key in self._cache:
            return self._cache[key]

        seq = next(self._seq)
        resp = self._request("GET", path, params=params or None)
        try:
            data = parse(resp.json())
        except ValueError as e:
            raise ApiError(resp.status_code, f"invalid response: {e}") from e
        fetched = Fetched(resource, seq, data, query)
        self._cache[key] = fetched
        return fetched

    def _send(self, method: str, resource: str, path: str, payload=None, **kwargs):
        if payload is not None:
            kwargs["json"] = to_jsonable_python(payload)
        resp = self._request(method, path, **kwargs)
        self.invalidate(resource)
        return resp

    def accept(self, fetched: Fetched) -> bool:
        """
        True if ``fetched`` is not older than a response already accepted
        for the same resource and query. Accepting it makes it the newest.
        """
        last = self._accepted.get(fetched.key, 0)
        if fetched.seq < last:
            logger.debug("Discarding stale %s response #%d (have #%d)", fetched.resource, fetched.seq, last)
            return False
        self._accepted[fetched.key] = fetched.seq
        return True

    def invalidate(self, resource: Optional[str] = None):
        """Drop cached responses for one resource, or all of them."""
        if resource is None:
            self._cache.clear()
            return
        for key in [k for k in self._cache if k[0] == resource]:
            del self._cache[key]

    # -----------------------------------------------------------------------
    # AUTH
    # -----------------------------------------------------------------------

    def login(self, username: str, password: str) -> SessionUser:
        """Obtain a token and sign the session in."""
        resp = self._request("POST", "/token/", json={"username": username, "password": password})
        token = schemas.TokenResponse.model_validate(resp.json())

        users = self.fetch_users(fresh=True).data
        match = next((u for u in users if u.username == username), None)
        user = SessionUser.from_record(match) if match else SessionUser(name=username)
        self.session.login(user, token.access, token.exp)
        return user

    def logout(self):
        self.session.logout()
        self.invalidate()

    # -----------------------------------------------------------------------
    # USERS
    # -----------------------------------------------------------------------

    def fetch_users(self, fresh: bool = False) -> Fetched:
        return self._get("users", "/users/", _parse_list(schemas.User), fresh=fresh)

    def fetch_patients(self, fresh: bool = False) -> Fetched:
        return self._get("users", "/users/", _parse_list(schemas.User),
                         params={"is_patient": "true"}, fresh=fresh)

    def fetch_doctors(self, fresh: bool = False) -> Fetched:
        return self._get("users", "/users/", _parse_list(schemas.User),
                         params={"is_doctor": "true"}, fresh=fresh)

    def fetch_user(self, user_id: int) -> schemas.User:
        return schemas.User.model_validate(self._request("GET", f"/users/{user_id}").json())

    def create_user(self, data) -> schemas.User:
        resp = self._send("POST", "users", "/users/", data)
        return schemas.User.model_validate(resp.json())

    # -----------------------------------------------------------------------
    # APPOINTMENTS
    # -----------------------------------------------------------------------

    def fetch_appointments(self, status: Optional[str] = None, fresh: bool = False) -> Fetched:
        return self._get("appointments", "/appointments/", _parse_list(schemas.Appointment),
                         params={"status": status or None}, fresh=fresh)

    def fetch_appointment(self, appointment_id: int) -> schemas.Appointment:
        resp = self._request("GET", f"/appointments/{appointment_id}")
        return schemas.Appointment.model_validate(resp.json())

    def create_appointment(self, data) -> schemas.Appointment:
        resp = self._send("POST", "appointments", "/appointments/", data)
        return schemas.Appointment.model_validate(resp.json())

    def update_appointment(self, appointment_id: int, data) -> schemas.Appointment:
        resp = self._send("PATCH", "appointments", f"/appointments/{appointment_id}", data)
        return schemas.Appointment.model_validate(resp.json())

    def delete_appointment(self, appointment_id: int):
        self._send("DELETE", "appointments", f"/appointments/{appointment_id}")

    # -----------------------------------------------------------------------
    # MEDICAL RECORDS
    # -----------------------------------------------------------------------

    def fetch_records(self, patient: Optional[int] = None, fresh: bool = False) -> Fetched:
        return self._get("records", "/records/", _parse_list(schemas.MedicalRecord),
                         params={"patient": patient}, fresh=fresh)

    def create_record(self, data, file: Optional[Tuple[str, bytes]] = None) -> schemas.MedicalRecord:
        """
        Create a record. With ``file`` (name, content) the request is sent
        as a multipart form, like the dashboard's upload form.
        """
        if file is None:
            resp = self._send("POST", "records", "/records/", data)
        else:
            form = {k: str(v) for k, v in to_jsonable_python(data).items() if v is not None}
            resp = self._send("POST", "records", "/records/", data=form, files={"file": file})
        return schemas.MedicalRecord.model_validate(resp.json())

    # -----------------------------------------------------------------------
    # REMINDERS
    # -----------------------------------------------------------------------

    def fetch_reminders(self, fresh: bool = False) -> Fetched:
        return self._get("reminders", "/reminders/", _parse_list(schemas.Reminder), fresh=fresh)

    def create_reminder(self, data) -> schemas.Reminder:
        resp = self._send("POST", "reminders", "/reminders/", data)
        return schemas.Reminder.model_validate(resp.json())

    def update_reminder(self, reminder_id: int, data) -> schemas.Reminder:
        resp = self._send("PATCH", "reminders", f"/reminders/{reminder_id}", data)
        return schemas.Reminder.model_validate(resp.json())

    def delete_reminder(self, reminder_id: int):
        self._send("DELETE", "reminders", f"/reminders/{reminder_id}")

    # -----------------------------------------------------------------------
    # FEEDBACK & STATS
    # -----------------------------------------------------------------------

    def fetch_feedback(self, fresh: bool = False) -> Fetched:
        return self._get("feedbacks", "/feedbacks/", _parse_list(schemas.Feedback), fresh=fresh)

    def create_feedback(self, data) -> schemas.Feedback:
        resp = self._send("POST", "feedbacks", "/feedbacks/", data)
        return schemas.Feedback.model_validate(resp.json())

    def fetch_stats(self, fresh: bool = False) -> Fetched:
        return self._get("stats", "/stats/", schemas.DashboardStats.model_validate, fresh=fresh)
