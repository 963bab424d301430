from __future__ import annotations


def _hdr(user):
    return {"X-User-Id": user.id}


REGISTRATION = {
    "email": "grace@uni.edu",
    "password": "secret1",
    "firstName": "Grace",
    "lastName": "Hopper",
    "department": "Information Technology",
}


def _register(app_env):
    client, notifier = app_env.client, app_env.notifier
    sent = client.post("/api/auth/send-otp", json={"email": REGISTRATION["email"]})
    assert sent.status_code == 200
    code = notifier.of_kind("verification")[-1]["code"]
    verified = client.post("/api/auth/verify-otp", json={"email": REGISTRATION["email"], "otp": code})
    assert verified.json() == {"message": "Email verified successfully", "verified": True}
    return client.post("/api/auth/register", json=REGISTRATION)


def test_registration_flow_and_approval(app_env):
    client, people = app_env.client, app_env.people

    registered = _register(app_env)
    assert registered.status_code == 201
    user = registered.json()["user"]
    assert user["status"] == "pending"
    assert "password_hash" not in user and "passwordHash" not in user

    blocked = client.post("/api/auth/login", json={"email": "grace@uni.edu", "password": "secret1"})
    assert blocked.status_code == 403

    pending = client.get("/api/auth/admin/users/pending", headers=_hdr(people.mod)).json()
    assert [u["email"] for u in pending] == ["grace@uni.edu"]

    approved = client.put(
        f"/api/auth/admin/users/{user['id']}/status",
        json={"status": "approved"},
        headers=_hdr(people.mod),
    )
    assert approved.status_code == 200
    assert approved.json()["notified"] is True
    assert app_env.notifier.of_kind("account")[0]["status"] == "approved"

    login = client.post("/api/auth/login", json={"email": "grace@uni.edu", "password": "secret1"})
    assert login.status_code == 200
    assert login.json()["message"] == "Login successful"


def test_register_without_verification_fails(app_env):
    resp = app_env.client.post("/api/auth/register", json=REGISTRATION)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Email not verified. Please verify your email first."


def test_send_otp_for_existing_account(app_env):
    resp = app_env.client.post("/api/auth/send-otp", json={"email": "reader@uni.edu"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "User already exists with this email"


def test_send_otp_mail_failure(app_env):
    app_env.notifier.fail = {"verification"}
    resp = app_env.client.post("/api/auth/send-otp", json={"email": "new@uni.edu"})
    assert resp.status_code == 502
    assert resp.json()["detail"] == "Failed to send OTP. Please try again."


def test_login_with_wrong_password(app_env):
    resp = app_env.client.post("/api/auth/login", json={"email": "reader@uni.edu", "password": "nope123"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid credentials"


def test_role_and_delete_are_admin_only(app_env):
    client, people = app_env.client, app_env.people
    url = f"/api/auth/admin/users/{people.reader.id}/role"

    assert client.put(url, json={"role": "moderator"}, headers=_hdr(people.mod)).status_code == 403
    promoted = client.put(url, json={"role": "moderator"}, headers=_hdr(people.admin))
    assert promoted.json()["user"]["role"] == "moderator"
    assert client.put(url, json={"role": "owner"}, headers=_hdr(people.admin)).status_code == 400

    self_delete = client.delete(f"/api/auth/admin/users/{people.admin.id}", headers=_hdr(people.admin))
    assert self_delete.status_code == 400
    deleted = client.delete(f"/api/auth/admin/users/{people.reader.id}", headers=_hdr(people.admin))
    assert deleted.status_code == 200
    assert client.delete(f"/api/auth/admin/users/{people.reader.id}", headers=_hdr(people.admin)).status_code == 404


def test_user_stats(app_env):
    client, people = app_env.client, app_env.people
    assert client.get("/api/auth/admin/stats").status_code == 403

    stats = client.get("/api/auth/admin/stats", headers=_hdr(people.admin)).json()

    assert stats["totalUsers"] == 4
    assert stats["adminUsers"] == 1
    assert stats["moderatorUsers"] == 1
    assert stats["regularUsers"] == 2
    assert stats["pendingUsers"] == 0


def test_health_and_trace_header(app_env):
    resp = app_env.client.get("/health", headers={"X-Request-Id": "trace-123"})
    assert resp.json()["status"] == "healthy"
    assert resp.headers["x-trace-id"] == "trace-123"
