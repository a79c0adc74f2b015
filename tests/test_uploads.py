"""Tests for the presigned upload flow (uraan_chat/api/routes/uploads.py)."""
from uraan_chat.models.attachment import Attachment

MIB = 1024 * 1024


def _request(client, headers, name="cat.png", size=1024, file_type="image/png"):
    return client.post(
        "/api/uploads",
        json={"fileName": name, "fileSize": size, "fileType": file_type},
        headers=headers,
    )


def _upload(client, s3, headers, name="cat.png", size=1024, file_type="image/png"):
    """Run request -> (simulated) PUT -> confirm and return the key."""
    key = _request(client, headers, name, size, file_type).json()["key"]
    s3.objects[key] = size
    response = client.post(
        "/api/uploads/confirm",
        json={"key": key, "size": size, "name": name, "type": file_type},
        headers=headers,
    )
    assert response.status_code == 200
    return key


class TestRequestUpload:

    def test_requires_session(self, client):
        response = _request(client, {})
        assert response.status_code == 401

    def test_expired_session_rejected(self, client):
        response = _request(client, {"Authorization": "Bearer session-expired"})
        assert response.status_code == 401

    def test_returns_presigned_put_and_prefixed_key(self, client, alice_headers, s3):
        response = _request(client, alice_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["key"].startswith("f/")
        assert body["key"] in body["url"]
        operation, params, expires = s3.presigned[-1]
        assert operation == "put_object"
        assert params["ContentType"] == "image/png"
        assert expires == 60

    def test_keys_are_unique(self, client, alice_headers):
        first = _request(client, alice_headers).json()["key"]
        second = _request(client, alice_headers).json()["key"]
        assert first != second

    def test_rejects_type_outside_allow_list(self, client, alice_headers, s3):
        response = _request(client, alice_headers, name="run.exe", file_type="application/x-msdownload")

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidFileType"
        assert s3.presigned == []

    def test_rejects_oversized_file_before_signing(self, client, alice_headers, s3):
        response = _request(client, alice_headers, size=6 * MIB)

        assert response.status_code == 400
        assert response.json()["error"] == "FileTooLarge"
        assert s3.presigned == []

    def test_exactly_max_size_is_allowed(self, client, alice_headers):
        response = _request(client, alice_headers, size=5 * MIB)
        assert response.status_code == 200

    def test_missing_fields(self, client, alice_headers):
        response = client.post("/api/uploads", json={"fileName": "a.png"}, headers=alice_headers)
        assert response.status_code == 400

    def test_malformed_body_is_invalid_data(self, client, alice_headers, s3):
        response = client.post(
            "/api/uploads",
            json={"fileName": "a.png", "fileSize": "abc", "fileType": "image/png"},
            headers=alice_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidData"
        assert s3.presigned == []


class TestConfirmUpload:

    def test_persists_attachment(self, client, alice_headers, s3, session):
        key = _upload(client, s3, alice_headers, name="notes.txt", size=42, file_type="text/plain")

        attachment = session.get(Attachment, key)
        assert attachment is not None
        assert attachment.user_id == "alice"
        assert attachment.name == "notes.txt"
        assert attachment.size == 42

    def test_size_mismatch(self, client, alice_headers, s3, session):
        key = _request(client, alice_headers, size=1000).json()["key"]
        s3.objects[key] = 999

        response = client.post(
            "/api/uploads/confirm",
            json={"key": key, "size": 1000, "name": "cat.png", "type": "image/png"},
            headers=alice_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "SizeMismatch"
        assert session.get(Attachment, key) is None

    def test_invalid_payload(self, client, alice_headers):
        response = client.post(
            "/api/uploads/confirm",
            json={"key": "f/abc", "size": "big"},
            headers=alice_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidData"

    def test_revalidates_file_type(self, client, alice_headers, s3):
        s3.objects["f/sneaky"] = 10
        response = client.post(
            "/api/uploads/confirm",
            json={"key": "f/sneaky", "size": 10, "name": "x.sh", "type": "application/x-sh"},
            headers=alice_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidFileType"

    def test_revalidates_size(self, client, alice_headers, s3):
        s3.objects["f/huge"] = 6 * MIB
        response = client.post(
            "/api/uploads/confirm",
            json={"key": "f/huge", "size": 6 * MIB, "name": "big.png", "type": "image/png"},
            headers=alice_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "FileTooLarge"

    def test_object_never_uploaded(self, client, alice_headers):
        key = _request(client, alice_headers).json()["key"]
        response = client.post(
            "/api/uploads/confirm",
            json={"key": key, "size": 1024, "name": "cat.png", "type": "image/png"},
            headers=alice_headers,
        )
        assert response.status_code == 404

    def test_rejects_key_outside_upload_prefix(self, client, alice_headers, s3, session):
        s3.objects["avatars/alice.png"] = 10
        response = client.post(
            "/api/uploads/confirm",
            json={"key": "avatars/alice.png", "size": 10, "name": "alice.png", "type": "image/png"},
            headers=alice_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidData"
        assert session.get(Attachment, "avatars/alice.png") is None

    def test_cannot_confirm_twice(self, client, alice_headers, s3):
        key = _upload(client, s3, alice_headers)
        response = client.post(
            "/api/uploads/confirm",
            json={"key": key, "size": 1024, "name": "cat.png", "type": "image/png"},
            headers=alice_headers,
        )
        assert response.status_code == 400


class TestResolveUrl:

    def test_owner_gets_signed_read_url(self, client, alice_headers, s3):
        key = _upload(client, s3, alice_headers)

        response = client.post("/api/uploads/resolve", json={"key": key}, headers=alice_headers)

        assert response.status_code == 200
        assert key in response.json()["url"]
        assert s3.presigned[-1][0] == "get_object"

    def test_other_user_gets_not_found(self, client, alice_headers, bob_headers, s3):
        key = _upload(client, s3, alice_headers)

        response = client.post("/api/uploads/resolve", json={"key": key}, headers=bob_headers)

        assert response.status_code == 404

    def test_cdn_url_when_configured(self, client, alice_headers, s3, storage):
        storage.cdn_url = "https://cdn.example.com"
        key = _upload(client, s3, alice_headers)

        response = client.post("/api/uploads/resolve", json={"key": key}, headers=alice_headers)

        assert response.json()["url"] == f"https://cdn.example.com/{key}"

    def test_missing_key(self, client, alice_headers):
        response = client.post("/api/uploads/resolve", json={}, headers=alice_headers)
        assert response.status_code == 400


class TestListAndDeleteFiles:

    def test_lists_only_own_files_with_filters(self, client, alice_headers, bob_headers, s3):
        _upload(client, s3, alice_headers, name="cat.png", size=100)
        _upload(client, s3, alice_headers, name="report.pdf", size=300, file_type="application/pdf")
        _upload(client, s3, bob_headers, name="bob.png", size=50)

        all_files = client.get("/api/uploads", headers=alice_headers).json()["files"]
        assert {f["name"] for f in all_files} == {"cat.png", "report.pdf"}

        pdfs = client.get("/api/uploads", params={"type": "pdf"}, headers=alice_headers).json()["files"]
        assert [f["name"] for f in pdfs] == ["report.pdf"]

        by_size = client.get("/api/uploads", params={"sort": "size"}, headers=alice_headers).json()["files"]
        assert [f["size"] for f in by_size] == [300, 100]

        searched = client.get("/api/uploads", params={"search": "cat"}, headers=alice_headers).json()["files"]
        assert [f["name"] for f in searched] == ["cat.png"]

    def test_delete_own_file(self, client, alice_headers, s3, session):
        key = _upload(client, s3, alice_headers)

        response = client.request("DELETE", "/api/uploads", json={"key": key}, headers=alice_headers)

        assert response.status_code == 200
        assert session.get(Attachment, key) is None
        assert key in s3.deleted

    def test_cannot_delete_someone_elses_file(self, client, alice_headers, bob_headers, s3):
        key = _upload(client, s3, alice_headers)
        response = client.request("DELETE", "/api/uploads", json={"key": key}, headers=bob_headers)
        assert response.status_code == 404
