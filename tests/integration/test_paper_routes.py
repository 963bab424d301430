from __future__ import annotations

import json

from starlette.datastructures import UploadFile


def _hdr(user):
    return {"X-User-Id": user.id}


def test_upload_and_detail(app_env, upload_pdf):
    client, owner = app_env.client, app_env.people.owner
    paper_id = upload_pdf(
        owner,
        description="Succinct graph encodings",
        authors=json.dumps(["Olive Owner", {"name": "Reader", "userId": app_env.people.reader.id}]),
        tags=json.dumps(["graphs"]),
        sdgs=json.dumps(["9"]),
        year="2024",
    )

    detail = client.get(f"/api/papers/{paper_id}")

    assert detail.status_code == 200
    body = detail.json()
    assert body["title"] == "Graph Compression"
    assert body["abstract"] == "Succinct graph encodings"
    assert body["sdgs"] == ["SDG 9: Industry, Innovation and Infrastructure"]
    assert body["ownerDepartment"] == "Computer Science"
    assert body["doi"].startswith("DOI-")


def test_upload_keeps_explicit_empty_doi(app_env, upload_pdf):
    paper_id = upload_pdf(app_env.people.owner, doi="")
    assert app_env.client.get(f"/api/papers/{paper_id}").json()["doi"] == ""


def test_upload_rejects_bad_input(app_env):
    client, owner = app_env.client, app_env.people.owner

    no_file = client.post("/api/papers/upload", data={"userId": owner.id})
    assert no_file.status_code == 400
    assert no_file.json()["detail"] == "No file uploaded"

    wrong_type = client.post(
        "/api/papers/upload",
        data={"userId": owner.id},
        files={"paper": ("notes.txt", b"plain text", "text/plain")},
    )
    assert wrong_type.status_code == 400
    assert wrong_type.json()["detail"] == "Only PDF and DOCX files are allowed"


def test_oversized_upload_is_not_buffered(app_env, monkeypatch):
    client, owner = app_env.client, app_env.people.owner
    limit = app_env.container.catalog.max_upload_bytes
    reads = []
    original_read = UploadFile.read

    async def recording_read(self, size=-1):
        data = await original_read(self, size)
        reads.append(len(data))
        return data

    monkeypatch.setattr(UploadFile, "read", recording_read)

    resp = client.post(
        "/api/papers/upload",
        data={"userId": owner.id},
        files={"paper": ("big.pdf", b"%PDF" + b"x" * (20 * limit), "application/pdf")},
    )

    assert resp.status_code == 400
    assert resp.json()["detail"] == "File too large. Maximum size is 64KB"
    assert all(n <= limit + 1 for n in reads)
    assert app_env.container.papers.list_papers() == []


def test_upload_read_is_capped_at_limit(app_env, monkeypatch):
    client, owner = app_env.client, app_env.people.owner
    catalog = app_env.container.catalog
    limit = catalog.max_upload_bytes
    received = []
    original_upload = catalog.upload

    def recording_upload(**kwargs):
        received.append(len(kwargs["content"]))
        return original_upload(**kwargs)

    real_check = catalog.check_upload_size

    def ignore_declared_size(size):
        if size is not None and size > limit + 1:
            return
        real_check(size)

    monkeypatch.setattr(catalog, "check_upload_size", ignore_declared_size)
    monkeypatch.setattr(catalog, "upload", recording_upload)

    resp = client.post(
        "/api/papers/upload",
        data={"userId": owner.id},
        files={"paper": ("big.pdf", b"%PDF" + b"x" * (20 * limit), "application/pdf")},
    )

    assert resp.status_code == 400
    assert received == [limit + 1]


def test_download_follows_access_rules(app_env, upload_pdf):
    client, people = app_env.client, app_env.people
    paper_id = upload_pdf(people.owner)

    anonymous = client.get(f"/api/papers/{paper_id}/download-permission")
    assert anonymous.json() == {
        "canDownload": False,
        "reason": "Please sign in to download papers",
        "paperTitle": "Graph Compression",
    }
    as_mod = client.get(f"/api/papers/{paper_id}/download-permission", params={"userId": people.mod.id})
    assert as_mod.json()["canDownload"] is True

    denied = client.get(f"/api/papers/download/{paper_id}", headers=_hdr(people.reader))
    assert denied.status_code == 403

    resp = client.get(f"/api/papers/download/{paper_id}", params={"userId": people.owner.id})
    assert resp.status_code == 200
    assert resp.content == b"%PDF-1.4 graph"
    assert resp.headers["content-type"] == "application/pdf"
    assert "graph.pdf" in resp.headers["content-disposition"]
    assert client.get(f"/api/papers/{paper_id}").json()["downloadCount"] == 1

    assert client.get("/api/papers/download/missing", headers=_hdr(people.owner)).status_code == 404


def test_public_listing_and_search(app_env, upload_pdf):
    client, people = app_env.client, app_env.people
    upload_pdf(people.owner, title="Graph Compression", tags=json.dumps(["graphs"]))
    upload_pdf(people.reader, title="Neural Networks", tags=json.dumps(["ml"]))

    assert len(client.get("/api/papers/public").json()) == 2
    titles = [p["title"] for p in client.get("/api/papers/public", params={"q": "graph"}).json()]
    assert titles == ["Graph Compression"]
    assert client.get("/api/papers/public", params={"sort": "bogus"}).status_code == 400


def test_like_comment_and_citation(app_env, upload_pdf):
    client, people = app_env.client, app_env.people
    paper_id = upload_pdf(people.owner)

    liked = client.post(f"/api/papers/{paper_id}/like", json={"userId": people.reader.id})
    assert liked.json()["likes"] == 1
    again = client.post(f"/api/papers/{paper_id}/like", json={"userId": people.reader.id})
    assert again.status_code == 400
    assert client.post(f"/api/papers/{paper_id}/dislike", json={}).status_code == 401

    comment = client.post(
        f"/api/papers/{paper_id}/comment",
        json={"userId": people.reader.id, "userEmail": "reader@uni.edu", "content": "Nice"},
    )
    assert comment.status_code == 201
    assert comment.json()["comment"]["content"] == "Nice"

    assert client.post(f"/api/papers/track-citation/{paper_id}").status_code == 200
    body = client.get(f"/api/papers/{paper_id}").json()
    assert body["citationCount"] == 1
    assert len(body["comments"]) == 1


def test_owner_update_and_delete(app_env, upload_pdf):
    client, people = app_env.client, app_env.people
    paper_id = upload_pdf(people.owner)

    forbidden = client.put(f"/api/papers/{paper_id}", json={"title": "X"}, headers=_hdr(people.reader))
    assert forbidden.status_code == 403

    updated = client.put(
        f"/api/papers/{paper_id}",
        json={"title": "Graph Compression, 2nd ed.", "keywords": ["graphs"], "year": 2025},
        headers=_hdr(people.owner),
    )
    assert updated.status_code == 200
    assert updated.json()["paper"]["title"] == "Graph Compression, 2nd ed."
    assert updated.json()["paper"]["year"] == "2025"

    assert client.delete(f"/api/papers/{paper_id}", params={"userId": people.reader.id}).status_code == 403
    assert client.delete(f"/api/papers/{paper_id}", headers=_hdr(people.owner)).status_code == 200
    assert client.get(f"/api/papers/{paper_id}").status_code == 404


def test_user_papers_and_author_profile(app_env, upload_pdf):
    client, people = app_env.client, app_env.people
    upload_pdf(
        people.owner,
        authors=json.dumps([{"name": "Olive Owner", "userId": people.owner.id}]),
    )

    mine = client.get(f"/api/papers/user/{people.owner.id}").json()
    assert mine[0]["isOwner"] is True

    profile = client.get("/api/papers/authors/Olive Owner")
    assert profile.status_code == 200
    assert profile.json()["publicationCount"] == 1
    assert profile.json()["affiliation"] == "Computer Science"
    assert profile.json()["activityLevel"] == "Low"

    selection = client.get("/api/papers/get-users-for-author-selection").json()
    assert {u["email"] for u in selection} >= {"owner@uni.edu", "reader@uni.edu"}


def test_staff_paper_admin(app_env, upload_pdf):
    client, people = app_env.client, app_env.people
    paper_id = upload_pdf(people.owner)

    assert client.get("/api/papers/admin/all", headers=_hdr(people.reader)).status_code == 403
    rows = client.get("/api/papers/admin/all", headers=_hdr(people.mod)).json()
    assert rows[0]["owner"]["email"] == "owner@uni.edu"

    stats = client.get("/api/papers/admin/stats", headers=_hdr(people.mod)).json()
    assert stats["totalPapers"] == 1
    assert stats["computerSciencePapers"] == 1

    edited = client.put(
        f"/api/papers/admin/papers/{paper_id}", json={"doi": ""}, headers=_hdr(people.mod)
    )
    assert edited.json()["paper"]["doi"] == ""

    # Deletion is admin only.
    assert client.delete(f"/api/papers/admin/papers/{paper_id}", headers=_hdr(people.mod)).status_code == 403
    assert client.delete(f"/api/papers/admin/papers/{paper_id}", headers=_hdr(people.admin)).status_code == 200
