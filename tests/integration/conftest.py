from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from paperrepo.api.main import create_app
from paperrepo.application.container import build_container
from paperrepo.config import Settings
from tests.fakes import RecordingNotifier


@pytest.fixture()
def app_env(db_url):
    notifier = RecordingNotifier()
    container = build_container(
        Settings(db_url=db_url, bcrypt_rounds=4, max_upload_bytes=64 * 1024),
        notifier=notifier,
    )
    auth = container.auth
    people = SimpleNamespace(
        admin=auth.create_account(email="admin@uni.edu", password="secret1", role="admin"),
        mod=auth.create_account(email="mod@uni.edu", password="secret1", role="moderator"),
        owner=auth.create_account(
            email="owner@uni.edu",
            password="secret1",
            profile={"first_name": "Olive", "department": "Computer Science"},
        ),
        reader=auth.create_account(email="reader@uni.edu", password="secret1"),
    )
    with TestClient(create_app(container)) as client:
        yield SimpleNamespace(
            client=client, container=container, notifier=notifier, people=people
        )
    container.close()


@pytest.fixture()
def upload_pdf(app_env):
    """Upload a small PDF as *owner* and return its id."""

    def _upload(owner, **fields) -> str:
        data = {"userId": owner.id, "title": "Graph Compression"}
        data.update(fields)
        resp = app_env.client.post(
            "/api/papers/upload",
            data=data,
            files={"paper": ("graph.pdf", b"%PDF-1.4 graph", "application/pdf")},
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["fileId"]

    return _upload
