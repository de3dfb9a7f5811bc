"""
End-to-end tests for the survey, OTP and admin endpoints.
"""

import io
import json
import os

import pandas as pd
import pytest

from csat.errors import ConflictError
from csat.models.submission import Submission

from conftest import ADMIN_EMAIL, answer

EMAIL = "owner@example.com"

META = {"vessel": "MV Northern Star", "customerOwner": "Blue Line Shipping", "contact": "J. Doe", "position": "Fleet manager"}


def _payload(answers=None, remark="Good season overall"):
    return {
        "meta": META,
        "answers": answers if answers is not None else [answer("OB01", "HIGH", 4), answer("AS01", "MEDIUM", 0)],
        "remark": remark,
    }


def _submit(client, email=EMAIL, payload=None):
    return client.post("/submit", json=payload or _payload(), headers={"X-Email": email})


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json()["ok"] is True


def test_questions(client):
    questions = client.get("/questions").get_json()["questions"]
    assert [q["code"] for q in questions] == ["OB01", "OB02", "AS01", "AS02"]
    assert set(questions[0]) == {"code", "text", "section", "serviceArea"}


def test_submit_after_verification(client, verify_email, mailer):
    verify_email(EMAIL)

    response = _submit(client)

    assert response.status_code == 200
    body = response.get_json()
    assert body["ok"] is True
    assert isinstance(body["id"], int)
    # HIGH 4 => 15/15, MEDIUM 0 => 2/10
    assert body["scores"]["overall"] == 68.0
    assert body["scores"]["onboard"] == 100.0
    assert body["scores"]["ashore"] == 20.0
    assert mailer.notices == [("ops@example.com", body["id"], EMAIL)]


def test_submit_missing_header(client):
    response = client.post("/submit", json=_payload())
    assert response.status_code == 401


def test_submit_unverified_email(client):
    response = _submit(client)
    assert response.status_code == 401
    assert "not verified" in response.get_json()["error"]


def test_submit_missing_rating_names_the_question(client, verify_email):
    verify_email(EMAIL)

    response = _submit(client, payload=_payload([
        answer("OB01"),
        answer("AS01", importance=None),
    ]))

    assert response.status_code == 400
    body = response.get_json()
    assert "AS01" in body["error"]
    assert body["issues"] == [{
        "path": ["answers", 1],
        "code": "AS01",
        "message": "Missing importance/satisfaction for AS01",
    }]


def test_submit_irrelevant_answer_needs_no_rating(client, verify_email):
    verify_email(EMAIL)
    response = _submit(client, payload=_payload([
        {"code": "OB01", "relevant": False},
        answer("AS01", "LOW", 3),
    ]))
    assert response.status_code == 200
    assert response.get_json()["scores"]["overall"] == 60.0


def test_submit_schema_errors(client, verify_email):
    verify_email(EMAIL)

    response = _submit(client, payload=_payload([answer("OB01", "HIGH", 9)]))
    assert response.status_code == 400
    assert response.get_json()["issues"][0]["path"] == ["answers", 0, "satisfaction"]

    response = _submit(client, payload=_payload(remark="x" * 2001))
    assert response.status_code == 400


def test_submit_rejects_loosely_typed_answers(client, verify_email, admin_headers):
    """Answers are not coerced: a string flag or a boolean rating is a 400."""
    verify_email(EMAIL)

    response = _submit(client, payload=_payload([
        {"code": "OB01", "relevant": "yes", "importance": "HIGH", "satisfaction": True},
    ]))

    assert response.status_code == 400
    paths = [issue["path"] for issue in response.get_json()["issues"]]
    assert ["answers", 0, "relevant"] in paths
    assert ["answers", 0, "satisfaction"] in paths

    response = _submit(client, payload=_payload([
        {"code": "OB01", "relevant": True, "importance": "HIGH", "satisfaction": "4"},
    ]))
    assert response.status_code == 400

    assert client.get("/admin/submissions", headers=admin_headers).get_json()["total"] == 0


def test_duplicate_submission_rejected(client, verify_email, admin_headers):
    verify_email(EMAIL)
    first = _submit(client).get_json()

    response = _submit(client, payload=_payload([answer("OB01", "LOW", 0)], remark="changed my mind"))

    assert response.status_code == 409
    stored = client.get(f"/admin/submissions/{first['id']}", headers=admin_headers).get_json()
    assert stored["scores"] == first["scores"]
    assert stored["remark"] == "Good season overall"
    assert client.get("/admin/submissions", headers=admin_headers).get_json()["total"] == 1


def test_unique_index_rejects_second_insert(app):
    """The database itself refuses a second row for the same email."""
    row = {
        "meta": {}, "answers": [], "scores": {"overall": 0},
        "remark": "", "file_path": None, "created_at": 1_700_000_000_000,
    }
    Submission.create(email=EMAIL, **row)

    with pytest.raises(ConflictError):
        Submission.create(email=EMAIL, **row)

    assert Submission.count() == 1


def test_attachment_removed_when_insert_conflicts(client, verify_email, app, monkeypatch):
    """A racing duplicate that gets past the pre-check leaves no file behind."""
    verify_email(EMAIL)
    assert _submit(client).status_code == 200

    monkeypatch.setattr(Submission, "exists_for_email", staticmethod(lambda email: False))

    response = client.post(
        "/submit",
        data={
            "answers": json.dumps([answer("OB01")]),
            "file": (io.BytesIO(b"second copy"), "survey.pdf"),
        },
        headers={"X-Email": EMAIL},
        content_type="multipart/form-data",
    )

    assert response.status_code == 409
    assert os.listdir(app.config["UPLOAD_FOLDER"]) == []
    assert Submission.count() == 1


def test_header_mode_trusts_header_but_allows_one_survey(header_client):
    response = _submit(header_client, email="Someone@Example.com")
    assert response.status_code == 200

    response = _submit(header_client, email="someone@example.com")
    assert response.status_code == 409


def test_multipart_submit_with_attachment(client, verify_email, app):
    verify_email(EMAIL)

    response = client.post(
        "/submit",
        data={
            "meta": json.dumps(META),
            "answers": json.dumps([answer("OB02", "HIGH", 3)]),
            "remark": "see attached",
            "file": (io.BytesIO(b"inspection notes"), "notes report.pdf"),
        },
        headers={"X-Email": EMAIL},
        content_type="multipart/form-data",
    )

    assert response.status_code == 200
    assert response.get_json()["scores"]["overall"] == 60.0

    uploads = os.listdir(app.config["UPLOAD_FOLDER"])
    assert len(uploads) == 1
    assert uploads[0].endswith("-notes_report.pdf")

    download = client.get(f"/uploads/{uploads[0]}")
    assert download.status_code == 200
    assert download.data == b"inspection notes"


def test_multipart_rejects_bad_attachment_type(client, verify_email, app):
    verify_email(EMAIL)

    response = client.post(
        "/submit",
        data={
            "answers": json.dumps([answer("OB02")]),
            "file": (io.BytesIO(b"MZ"), "tool.exe"),
        },
        headers={"X-Email": EMAIL},
        content_type="multipart/form-data",
    )

    assert response.status_code == 400
    assert os.listdir(app.config["UPLOAD_FOLDER"]) == []


def test_multipart_rejects_malformed_json(client, verify_email):
    verify_email(EMAIL)
    response = client.post(
        "/submit",
        data={"answers": "[not json"},
        headers={"X-Email": EMAIL},
        content_type="multipart/form-data",
    )
    assert response.status_code == 400
    assert response.get_json()["issues"][0]["path"] == ["answers"]


def test_admin_login(client):
    response = client.post("/admin/login", json={"email": ADMIN_EMAIL.upper(), "password": "s3cret-pass"})
    assert response.status_code == 200
    assert response.get_json()["token"]

    response = client.post("/admin/login", json={"email": ADMIN_EMAIL, "password": "wrong"})
    assert response.status_code == 401


def test_admin_requires_token(client):
    assert client.get("/admin/submissions").status_code == 401
    response = client.get("/admin/submissions", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_admin_list_detail_and_stats(client, verify_email, admin_headers):
    verify_email(EMAIL)
    verify_email("second@example.com")
    first = _submit(client).get_json()
    second = _submit(client, email="second@example.com", payload=_payload([answer("OB02", "LOW", 5)])).get_json()

    listing = client.get("/admin/submissions", headers=admin_headers).get_json()
    assert listing["total"] == 2
    assert [item["id"] for item in listing["items"]] == [second["id"], first["id"]]
    assert listing["items"][1]["meta"]["vessel"] == "MV Northern Star"
    assert "answers" not in listing["items"][0]

    detail = client.get(f"/admin/submissions/{first['id']}", headers=admin_headers).get_json()
    assert detail["email"] == EMAIL
    assert len(detail["questions"]) == 4
    items = {row["code"]: row for row in detail["items"]}
    assert items["OB01"]["level"] == "High"
    assert items["AS01"]["level"] == "Low"
    assert items["OB02"]["answer"] is None

    series = client.get("/admin/stats", headers=admin_headers).get_json()["series"]
    assert [p["overall"] for p in series] == [first["scores"]["overall"], second["scores"]["overall"]]
    assert series[0]["t"] <= series[1]["t"]


def test_detail_keeps_answers_for_removed_questions(client, verify_email, admin_headers, app):
    verify_email(EMAIL)
    created = _submit(client).get_json()

    app.extensions["csat"]["catalog"].replace([
        {"code": "OB01", "text": "Officers onboard", "section": "ONBOARD", "serviceArea": "Crew Competence"},
    ])

    detail = client.get(f"/admin/submissions/{created['id']}", headers=admin_headers).get_json()
    orphan = detail["items"][-1]
    assert orphan["code"] == "AS01"
    assert orphan["text"] is None
    assert orphan["answer"]["satisfaction"] == 0


def test_admin_delete(client, verify_email, admin_headers, app):
    verify_email(EMAIL)
    created = client.post(
        "/submit",
        data={
            "answers": json.dumps([answer("OB01")]),
            "file": (io.BytesIO(b"data"), "photo.png"),
        },
        headers={"X-Email": EMAIL},
        content_type="multipart/form-data",
    ).get_json()

    response = client.delete(f"/admin/submissions/{created['id']}", headers=admin_headers)

    assert response.status_code == 200
    body = response.get_json()
    assert body["ok"] is True
    assert body["file_removed"] is True
    assert body["file_path"].startswith("/uploads/")
    assert os.listdir(app.config["UPLOAD_FOLDER"]) == []
    assert client.get(f"/admin/submissions/{created['id']}", headers=admin_headers).status_code == 404
    assert client.delete(f"/admin/submissions/{created['id']}", headers=admin_headers).status_code == 404


def test_summary_report_and_export(client, verify_email, admin_headers):
    empty = client.get("/admin/summary", headers=admin_headers).get_json()
    assert empty["count"] == 0

    verify_email(EMAIL)
    verify_email("second@example.com")
    _submit(client)
    _submit(client, email="second@example.com", payload=_payload([answer("AS02", "HIGH", 5)]))

    summary = client.get("/admin/summary", headers=admin_headers).get_json()
    assert summary["count"] == 2
    assert summary["best"] == 100.0
    assert summary["worst"] == 68.0
    assert summary["histogram"][6] == 1
    assert summary["histogram"][9] == 1
    assert sum(summary["weekdays"].values()) == 2

    report = client.get("/admin/report.pdf?download=true", headers=admin_headers)
    assert report.status_code == 200
    assert report.data[:4] == b"%PDF"
    assert "attachment" in report.headers["Content-Disposition"]

    export = client.get("/admin/export.xlsx", headers=admin_headers)
    assert export.status_code == 200
    sheets = pd.read_excel(io.BytesIO(export.data), sheet_name=None)
    assert len(sheets["Submissions"]) == 2
    assert len(sheets["Answers"]) == 3


def test_catalog_sample_and_upload(client, admin_headers):
    sample = client.get("/admin/questions/sample", headers=admin_headers)
    assert sample.status_code == 200
    assert len(pd.read_excel(io.BytesIO(sample.data))) == 4

    buf = io.BytesIO()
    pd.DataFrame([
        {"code": "N1", "text": "Port agency support", "section": "ASHORE", "serviceArea": "Operations"},
        {"code": "N2", "text": "Bunkering operations", "section": "ONBOARD", "serviceArea": "Operations"},
    ]).to_excel(buf, index=False)
    buf.seek(0)

    response = client.post(
        "/admin/questions/upload",
        data={"file": (buf, "questions.xlsx")},
        headers=admin_headers,
        content_type="multipart/form-data",
    )

    assert response.status_code == 200
    assert response.get_json()["message"] == "Loaded 2 questions"
    assert [q["code"] for q in client.get("/questions").get_json()["questions"]] == ["N1", "N2"]


def test_catalog_upload_rejects_other_files(client, admin_headers):
    response = client.post(
        "/admin/questions/upload",
        data={"file": (io.BytesIO(b"a,b"), "questions.csv")},
        headers=admin_headers,
        content_type="multipart/form-data",
    )
    assert response.status_code == 400
