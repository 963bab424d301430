from __future__ import annotations

import pytest


def _hdr(user):
    return {"X-User-Id": user.id}


@pytest.fixture()
def paper_id(app_env, upload_pdf):
    return upload_pdf(app_env.people.owner)


def _submit(client, paper_id, user, reason="thesis research"):
    return client.post(
        "/api/paper-requests/request",
        json={"paperId": paper_id, "userId": user.id, "reason": reason, "paperTitle": "ignored"},
    )


def test_request_then_approve_delivers_paper(app_env, paper_id):
    client, people, notifier = app_env.client, app_env.people, app_env.notifier

    denied = client.get(f"/api/papers/{paper_id}/download-permission", params={"userId": people.reader.id})
    assert denied.json()["canDownload"] is False

    created = _submit(client, paper_id, people.reader)
    assert created.status_code == 201
    assert created.json()["message"] == "Paper request submitted successfully"
    request_id = created.json()["requestId"]

    pending = client.get("/api/paper-requests/admin/requests/pending", headers=_hdr(people.mod))
    assert pending.status_code == 200
    row = pending.json()[0]
    assert row["id"] == request_id
    assert row["paperTitle"] == "Graph Compression"
    assert row["user"]["email"] == "reader@uni.edu"

    processed = client.put(
        f"/api/paper-requests/admin/requests/{request_id}",
        json={"status": "approved", "adminMessage": "enjoy"},
        headers=_hdr(people.mod),
    )
    assert processed.status_code == 200
    body = processed.json()
    assert body["message"] == "Request processed successfully"
    assert body["request"]["status"] == "approved"
    assert body["request"]["processedBy"] == people.mod.id
    assert [n["ok"] for n in body["notifications"]] == [True, True]

    assert [c["kind"] for c in notifier.calls] == ["decision", "attachment"]
    assert notifier.calls[1]["content"] == b"%PDF-1.4 graph"

    mine = client.get(f"/api/paper-requests/user/{people.reader.id}/requests")
    assert [r["status"] for r in mine.json()] == ["approved"]


def test_duplicate_request_is_rejected(app_env, paper_id):
    client, reader = app_env.client, app_env.people.reader
    assert _submit(client, paper_id, reader).status_code == 201

    dup = _submit(client, paper_id, reader, reason="again")

    assert dup.status_code == 400
    assert "pending approval" in dup.json()["detail"]


def test_submit_validation_and_missing_paper(app_env, paper_id):
    client, reader = app_env.client, app_env.people.reader

    missing_reason = client.post(
        "/api/paper-requests/request", json={"paperId": paper_id, "userId": reader.id}
    )
    assert missing_reason.status_code == 400
    assert missing_reason.json()["detail"] == "All fields are required"

    unknown = _submit(client, "no-such-paper", reader)
    assert unknown.status_code == 404


def test_admin_routes_require_staff(app_env, paper_id):
    client, people = app_env.client, app_env.people
    request_id = _submit(client, paper_id, people.reader).json()["requestId"]

    assert client.get("/api/paper-requests/admin/requests").status_code == 403
    as_reader = client.put(
        f"/api/paper-requests/admin/requests/{request_id}",
        json={"status": "approved"},
        headers=_hdr(people.reader),
    )
    assert as_reader.status_code == 403
    assert app_env.container.requests.get_request(request_id).status == "pending"


def test_admin_id_must_match_acting_user(app_env, paper_id):
    client, people = app_env.client, app_env.people
    request_id = _submit(client, paper_id, people.reader).json()["requestId"]

    resp = client.put(
        f"/api/paper-requests/admin/requests/{request_id}",
        json={"status": "approved", "adminId": people.admin.id},
        headers=_hdr(people.mod),
    )

    assert resp.status_code == 403


def test_processing_twice_conflicts(app_env, paper_id):
    client, people = app_env.client, app_env.people
    request_id = _submit(client, paper_id, people.reader).json()["requestId"]
    url = f"/api/paper-requests/admin/requests/{request_id}"

    assert client.put(url, json={"status": "rejected"}, headers=_hdr(people.admin)).status_code == 200
    again = client.put(url, json={"status": "approved"}, headers=_hdr(people.admin))

    assert again.status_code == 409
    assert again.json()["detail"] == "Request has already been rejected"
    assert app_env.notifier.of_kind("attachment") == []


def test_invalid_status_is_rejected(app_env, paper_id):
    client, people = app_env.client, app_env.people
    request_id = _submit(client, paper_id, people.reader).json()["requestId"]

    resp = client.put(
        f"/api/paper-requests/admin/requests/{request_id}",
        json={"status": "maybe"},
        headers=_hdr(people.admin),
    )

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid status"


def test_mail_failure_is_reported_not_rolled_back(app_env, paper_id):
    client, people = app_env.client, app_env.people
    app_env.notifier.fail = {"attachment"}
    request_id = _submit(client, paper_id, people.reader).json()["requestId"]

    resp = client.put(
        f"/api/paper-requests/admin/requests/{request_id}",
        json={"status": "approved"},
        headers=_hdr(people.admin),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["request"]["status"] == "approved"
    failed = [n for n in body["notifications"] if not n["ok"]]
    assert [(n["step"], n["kind"]) for n in failed] == [
        ("attachment_notification", "notification_failed")
    ]


def test_title_captured_at_submit_survives_edit_and_delete(app_env, paper_id):
    client, people = app_env.client, app_env.people
    request_id = _submit(client, paper_id, people.reader).json()["requestId"]

    renamed = client.put(
        f"/api/papers/{paper_id}",
        json={"title": "Graph Compression, 2nd ed."},
        headers=_hdr(people.owner),
    )
    assert renamed.status_code == 200
    assert client.delete(f"/api/papers/{paper_id}", headers=_hdr(people.owner)).status_code == 200

    mine = client.get(f"/api/paper-requests/user/{people.reader.id}/requests").json()
    assert [r["paperTitle"] for r in mine] == ["Graph Compression"]
    listed = client.get("/api/paper-requests/admin/requests", headers=_hdr(people.admin)).json()
    assert [r["paperTitle"] for r in listed] == ["Graph Compression"]

    resp = client.put(
        f"/api/paper-requests/admin/requests/{request_id}",
        json={"status": "approved"},
        headers=_hdr(people.admin),
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["request"]["status"] == "approved"
    assert body["request"]["paperTitle"] == "Graph Compression"
    steps = {n["step"]: n for n in body["notifications"]}
    assert steps["decision_notification"]["ok"] is True
    assert steps["attachment_notification"]["ok"] is False
    assert steps["attachment_notification"]["kind"] == "not_found"
    assert app_env.notifier.of_kind("decision")[0]["title"] == "Graph Compression"
    assert app_env.notifier.of_kind("attachment") == []
