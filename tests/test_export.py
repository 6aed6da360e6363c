"""
test_export.py
==============
CSV / JSON serialization, filenames and export notices.
"""

import csv
import io
import json
from datetime import datetime, timezone

import pytest

from telemed import schemas
from telemed.export import (
    EmptyExportError,
    ExportUnavailable,
    UnknownExportFormat,
    build_filename,
    export_data,
    run_export,
    to_csv,
    to_json,
)

NOW = datetime(2025, 4, 15, 10, 30, 0, 123000, tzinfo=timezone.utc)


# --------------------------------------------------------------------------
# CSV
# --------------------------------------------------------------------------

def test_csv_quotes_commas():
    data = [{"patient": 1, "doctor": 2, "rating": 4, "comment": "Good, but slow"}]
    assert to_csv(data) == 'patient,doctor,rating,comment\n1,2,4,"Good, but slow"\n'


def test_csv_doubles_quotes_and_quotes_newlines():
    data = [{"comment": 'He said "fine"'}, {"comment": "line one\nline two"}]
    lines = to_csv(data, include_headers=False)
    assert lines == '"He said ""fine"""\n"line one\nline two"\n'


def test_csv_excludes_internal_fields():
    data = [{"id": 7, "username": "jean", "password": "hash", "__v": 0,
             "createdAt": "x", "updatedAt": "y", "email": "j@example.com"}]
    assert to_csv(data).splitlines()[0] == "username,email"


def test_csv_value_conversion():
    data = [{
        "missing": None,
        "flag": True,
        "when": datetime(2025, 4, 15, 10, 30, tzinfo=timezone.utc),
        "extra": {"a": 1},
        "tags": ["x", "y"],
    }]
    row = to_csv(data, include_headers=False).rstrip("\n")
    assert row == ',true,2025-04-15T10:30:00.000Z,"{""a"":1}","[""x"",""y""]"'


def test_csv_round_trips_through_reader():
    data = [
        {"name": "Dr. Sophie Martin", "comment": "Excellent médecin, très à l'écoute."},
        {"name": 'Marie "Mimi" Leclerc', "comment": "Bon\ndiagnostic"},
    ]
    rows = list(csv.DictReader(io.StringIO(to_csv(data))))
    assert rows == data


def test_csv_from_pydantic_records():
    fb = schemas.Feedback(id=1, patient=1, patientName="Jean Dupont", doctor=2,
                          doctorName="Dr. Sophie Martin", rating=5, comment="Parfait")
    assert to_csv([fb]) == (
        "patient,patientName,doctor,doctorName,rating,comment\n"
        "1,Jean Dupont,2,Dr. Sophie Martin,5,Parfait\n"
    )


def test_csv_lone_null_cell_is_an_empty_line():
    assert to_csv([{"comment": None}], include_headers=False) == "\n"
    assert to_csv([{"comment": None}, {"comment": "ok"}]) == "comment\n\nok\n"


def test_csv_empty():
    assert to_csv([]) == ""


# --------------------------------------------------------------------------
# JSON
# --------------------------------------------------------------------------

def test_json_strips_passwords_and_keeps_ids():
    data = [{"id": 1, "username": "jean", "password": "hash"}]
    text = to_json(data)
    assert json.loads(text) == [{"id": 1, "username": "jean"}]
    assert text.startswith("[\n  {")


def test_json_dates():
    data = [{"id": 1, "datetime": datetime(2025, 4, 15, 10, 30, tzinfo=timezone.utc)}]
    assert json.loads(to_json(data))[0]["datetime"] == "2025-04-15T10:30:00.000Z"


# --------------------------------------------------------------------------
# export_data / run_export
# --------------------------------------------------------------------------

def test_filename():
    assert build_filename("appointments", "csv", NOW) == "telemed_appointments_2025-04-15T10-30-00-123Z.csv"


def test_export_csv_file():
    export = export_data("feedbacks", [{"rating": 5}], "csv", now=NOW)
    assert export.filename == "telemed_feedbacks_2025-04-15T10-30-00-123Z.csv"
    assert export.media_type == "text/csv"
    assert export.content == "rating\n5\n"


def test_export_is_repeatable():
    data = [{"id": 1, "rating": 5}]
    first = export_data("feedbacks", data, "json", now=NOW)
    second = export_data("feedbacks", data, "json", now=NOW)
    assert first == second


def test_export_errors():
    with pytest.raises(EmptyExportError) as exc:
        export_data("appointments", [], "csv")
    assert str(exc.value) == "No appointments to export."

    with pytest.raises(ExportUnavailable):
        export_data("appointments", [{"id": 1}], "pdf")

    with pytest.raises(UnknownExportFormat):
        export_data("appointments", [{"id": 1}], "xlsx")


def test_empty_check_comes_before_format():
    with pytest.raises(EmptyExportError):
        export_data("appointments", [], "pdf")


def test_run_export_success(tmp_path):
    outcome = run_export("appointments", [{"id": 1, "status": "pending"}], "csv", now=NOW)
    assert outcome.ok
    assert outcome.notice.level == "success"

    path = outcome.file.save(str(tmp_path))
    with open(path, encoding="utf-8") as fh:
        assert fh.read() == "status\npending\n"


def test_run_export_notices():
    empty = run_export("reminders", [], "csv")
    assert not empty.ok
    assert empty.notice.level == "error"
    assert empty.notice.message == "No reminders to export."

    pdf = run_export("appointments", [{"id": 1}, {"id": 2}], "pdf")
    assert not pdf.ok
    assert pdf.notice.level == "info"
    assert "2 items" in pdf.notice.message


def test_run_export_unexpected_failure():
    outcome = run_export("appointments", [42], "csv")
    assert not outcome.ok
    assert outcome.notice.title == "Export failed"
