# Shared request builders for the API tests

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n%%EOF\n"


def identity(user_id="student-1", role="STUDENT", email="ada@galileo.edu", name="Ada Lovelace"):
    headers = {"X-User-Role": role}
    if user_id:
        headers["X-User-Id"] = user_id
    if email:
        headers["X-User-Email"] = email
    if name:
        headers["X-User-Name"] = name
    return headers


STUDENT = identity()
OTHER_STUDENT = identity(user_id="student-2", email="grace@galileo.edu", name="Grace Hopper")
STAFF = identity(user_id="staff-1", role="STAFF", email="moderator@galileo.edu", name="Marie Curie")
ADMIN = identity(user_id="admin-1", role="ADMIN", email="admin@galileo.edu", name="Admin")
VIEWER = identity(user_id="viewer-1", role="VIEWER", email="reader@galileo.edu", name="Reader")


def submission_form(**overrides):
    data = {
        "title": "Quantum effects in photosynthetic complexes",
        "abstract": "We study long-lived coherence in light harvesting complexes and its role in energy transfer efficiency.",
        "main_author": "Ada Lovelace",
        "author_email": "ada@galileo.edu",
        "co_authors": ["Charles Babbage"],
        "keywords": ["quantum biology", "photosynthesis", "coherence"],
        "research_domain": "Biophysics",
    }
    data.update(overrides)
    return data


def pdf_file(content=PDF_BYTES, filename="paper.pdf", content_type="application/pdf"):
    return {"file": (filename, content, content_type)}


async def create_submission(client, headers=STUDENT, **overrides):
    res = await client.post("/api/submissions", data=submission_form(**overrides), files=pdf_file(), headers=headers)
    assert res.status_code == 201, res.text
    return res.json()
