import pytest

from helpers import (
    OTHER_STUDENT,
    STAFF,
    STUDENT,
    VIEWER,
    create_submission,
    identity,
    pdf_file,
    submission_form,
)


# ------------------------------------------------------------
# CREATE
# ------------------------------------------------------------
@pytest.mark.asyncio
async def test_create_submission_round_trip(client, storage, notifier):
    created = await create_submission(client)

    assert created["status"] == "PENDING"
    assert created["owner_id"] == "student-1"
    assert created["publication_id"] is None
    assert created["file_name"] == "paper.pdf"
    assert [c[0] for c in storage.calls] == ["store"]

    res = await client.get(f"/api/submissions/{created['id']}", headers=STUDENT)
    assert res.status_code == 200
    fetched = res.json()
    form = submission_form()
    for field in ("title", "abstract", "main_author", "author_email", "co_authors", "keywords", "research_domain"):
        assert fetched[field] == form[field]
    assert fetched["status"] == "PENDING"

    # Confirmation notice runs after the response
    assert notifier.sent[0]["type"] == "SUBMISSION_RECEIVED"
    assert notifier.sent[0]["user_id"] == "student-1"


@pytest.mark.asyncio
async def test_short_title_fails_before_any_upload(client, storage):
    res = await client.post(
        "/api/submissions",
        data=submission_form(title="Short"),
        files=pdf_file(),
        headers=STUDENT,
    )
    assert res.status_code == 400
    body = res.json()
    assert body["error"] == "VALIDATION_ERROR"
    assert any(d["field"] == "title" for d in body["details"])
    assert storage.calls == []


@pytest.mark.asyncio
async def test_keyword_cardinality_and_blank_entries(client, storage):
    too_few = await client.post(
        "/api/submissions", data=submission_form(keywords=["one", "two"]), files=pdf_file(), headers=STUDENT
    )
    assert too_few.status_code == 400

    blank = await client.post(
        "/api/submissions", data=submission_form(keywords=["one", "  ", "three"]), files=pdf_file(), headers=STUDENT
    )
    assert blank.status_code == 400
    assert storage.calls == []


@pytest.mark.asyncio
async def test_comma_separated_keywords_are_split(client):
    created = await create_submission(client, keywords="optics, lasers, metamaterials")
    assert created["keywords"] == ["optics", "lasers", "metamaterials"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "file_kwargs",
    [
        {"content": b"not a pdf at all"},
        {"filename": "paper.docx"},
        {"content_type": "image/png"},
        {"content": b""},
    ],
)
async def test_invalid_files_are_refused_before_upload(client, storage, file_kwargs):
    res = await client.post(
        "/api/submissions", data=submission_form(), files=pdf_file(**file_kwargs), headers=STUDENT
    )
    assert res.status_code == 400
    assert res.json()["error"] == "VALIDATION_ERROR"
    assert storage.calls == []


@pytest.mark.asyncio
async def test_missing_file_is_a_validation_error(client, storage):
    res = await client.post("/api/submissions", data=submission_form(), headers=STUDENT)
    assert res.status_code == 400
    assert storage.calls == []


@pytest.mark.asyncio
async def test_storage_failure_surfaces_as_downstream_error(client, storage):
    storage.fail = True
    res = await client.post("/api/submissions", data=submission_form(), files=pdf_file(), headers=STUDENT)
    assert res.status_code == 502
    assert res.json()["error"] == "STORAGE_ERROR"

    storage.fail = False
    listing = await client.get("/api/submissions", headers=STUDENT)
    assert listing.json() == []


@pytest.mark.asyncio
async def test_create_requires_identity_and_submit_permission(client):
    anonymous = await client.post(
        "/api/submissions", data=submission_form(), files=pdf_file(), headers=identity(user_id=None)
    )
    assert anonymous.status_code == 401

    viewer = await client.post("/api/submissions", data=submission_form(), files=pdf_file(), headers=VIEWER)
    assert viewer.status_code == 403
    assert viewer.json()["error"] == "FORBIDDEN"


@pytest.mark.asyncio
async def test_upload_rate_limit(client):
    statuses = []
    for _ in range(11):
        res = await client.post("/api/submissions", data=submission_form(), files=pdf_file(), headers=STUDENT)
        statuses.append(res.status_code)
    assert statuses[:10] == [201] * 10
    assert statuses[10] == 429


# ------------------------------------------------------------
# OWNER READS
# ------------------------------------------------------------
@pytest.mark.asyncio
async def test_list_returns_only_own_submissions(client):
    await create_submission(client)
    await create_submission(client, title="Topological insulators at room temperature")
    await create_submission(client, headers=OTHER_STUDENT)

    res = await client.get("/api/submissions", headers=STUDENT)
    assert res.status_code == 200
    assert len(res.json()) == 2
    assert {s["owner_id"] for s in res.json()} == {"student-1"}


@pytest.mark.asyncio
async def test_own_listing_filters_by_status(client):
    first = await create_submission(client)
    second = await create_submission(client, title="Topological insulators at room temperature")
    await create_submission(client, headers=OTHER_STUDENT)
    await client.post(f"/api/admin/submissions/{first['id']}/reject", headers=STAFF)

    rejected = await client.get("/api/submissions", params={"status": "rejected"}, headers=STUDENT)
    assert rejected.status_code == 200
    assert [s["id"] for s in rejected.json()] == [first["id"]]

    pending = await client.get("/api/submissions", params={"status": "PENDING"}, headers=STUDENT)
    assert [s["id"] for s in pending.json()] == [second["id"]]

    unknown = await client.get("/api/submissions", params={"status": "LOST"}, headers=STUDENT)
    assert unknown.status_code == 400
    assert unknown.json()["error"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_own_statistics_count_only_callers_submissions(client):
    first = await create_submission(client)
    await create_submission(client, title="Topological insulators at room temperature")
    await create_submission(client, headers=OTHER_STUDENT)
    await client.delete(f"/api/submissions/{first['id']}", headers=STUDENT)

    res = await client.get("/api/submissions/statistics", headers=STUDENT)
    assert res.status_code == 200
    stats = res.json()
    assert stats["total"] == 2
    assert stats["by_status"]["PENDING"] == 1
    assert stats["by_status"]["WITHDRAWN"] == 1
    assert stats["by_status"]["VALIDATED"] == 0

    empty = await client.get("/api/submissions/statistics", headers=identity(user_id="student-9"))
    assert empty.json()["total"] == 0

    viewer = await client.get("/api/submissions/statistics", headers=VIEWER)
    assert viewer.status_code == 403


@pytest.mark.asyncio
async def test_other_users_submission_reads_as_missing(client):
    created = await create_submission(client)
    res = await client.get(f"/api/submissions/{created['id']}", headers=OTHER_STUDENT)
    assert res.status_code == 404
    assert res.json()["error"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_download_link_for_owner_and_staff(client):
    created = await create_submission(client)

    own = await client.get(f"/api/submissions/{created['id']}/download", headers=STUDENT)
    assert own.status_code == 200
    assert own.json()["url"].startswith("https://storage.test/")
    assert own.json()["expires_in_minutes"] == 10080

    staff = await client.get(f"/api/submissions/{created['id']}/download", headers=STAFF)
    assert staff.status_code == 200

    stranger = await client.get(f"/api/submissions/{created['id']}/download", headers=OTHER_STUDENT)
    assert stranger.status_code == 404


# ------------------------------------------------------------
# WITHDRAW
# ------------------------------------------------------------
@pytest.mark.asyncio
async def test_owner_withdraws_pending_submission(client):
    created = await create_submission(client)

    res = await client.delete(f"/api/submissions/{created['id']}", headers=STUDENT)
    assert res.status_code == 200
    assert res.json()["status"] == "WITHDRAWN"

    again = await client.delete(f"/api/submissions/{created['id']}", headers=STUDENT)
    assert again.status_code == 400
    assert again.json()["error"] == "ILLEGAL_STATE_TRANSITION"


@pytest.mark.asyncio
async def test_only_owner_may_withdraw(client):
    created = await create_submission(client)
    res = await client.delete(f"/api/submissions/{created['id']}", headers=OTHER_STUDENT)
    assert res.status_code == 403

    still = await client.get(f"/api/submissions/{created['id']}", headers=STUDENT)
    assert still.json()["status"] == "PENDING"


@pytest.mark.asyncio
async def test_withdraw_after_validation_is_refused(client):
    created = await create_submission(client)
    approved = await client.post(f"/api/admin/submissions/{created['id']}/validate", json={}, headers=STAFF)
    assert approved.status_code == 200

    res = await client.delete(f"/api/submissions/{created['id']}", headers=STUDENT)
    assert res.status_code == 400
    body = res.json()
    assert body["error"] == "ILLEGAL_STATE_TRANSITION"
    assert body["details"]["current_status"] == "VALIDATED"

    current = await client.get(f"/api/submissions/{created['id']}", headers=STUDENT)
    assert current.json()["status"] == "VALIDATED"
