import inspect

import pytest
from botocore.exceptions import ClientError
from botocore.stub import Stubber

from app.config import settings
from app.main import app
from app.modules.objects import routes as objects_routes
from app.modules.objects.routes import get_object_storage
from app.modules.objects.s3_storage import S3Storage, normalize_object_url


def _configure_s3(monkeypatch):
    monkeypatch.setattr(settings, "aws_access_key_id", "AKIATEST")
    monkeypatch.setattr(settings, "aws_secret_access_key", "secret")
    monkeypatch.setattr(settings, "s3_bucket_name", "kindora-photos")


def test_upload_requires_login(client):
    assert client.post("/api/objects/upload").status_code == 401


def test_upload_without_bucket(client, current_user, monkeypatch):
    monkeypatch.setattr(settings, "s3_bucket_name", None)
    current_user.user_id = "user-1"
    assert client.post("/api/objects/upload").status_code == 503


def test_presigned_upload(client, current_user, monkeypatch):
    _configure_s3(monkeypatch)
    current_user.user_id = "user-1"
    response = client.post("/api/objects/upload", json={"content_type": "image/jpeg"})
    assert response.status_code == 200
    body = response.json()
    assert body["object_path"].startswith("/objects/uploads/")
    assert "kindora-photos" in body["upload_url"]
    assert "Signature" in body["upload_url"]


def test_normalize_object_url(monkeypatch):
    _configure_s3(monkeypatch)
    assert normalize_object_url("https://kindora-photos.s3.amazonaws.com/uploads/a1?X-Amz-Expires=900") == "/objects/uploads/a1"
    assert normalize_object_url("https://s3.us-east-1.amazonaws.com/kindora-photos/uploads/a1") == "/objects/uploads/a1"
    assert normalize_object_url("/objects/uploads/a1") == "/objects/uploads/a1"
    assert normalize_object_url("https://images.example.com/cat.jpg") == "https://images.example.com/cat.jpg"


class FakeObjectStorage:
    def __init__(self, keys):
        self.keys = keys
        self.requested = []

    def create_download_url(self, key):
        self.requested.append(key)
        if key not in self.keys:
            return None
        return f"https://kindora-photos.s3.amazonaws.com/{key}?X-Amz-Signature=abc"


class TestServeObjects:
    @pytest.fixture
    def objects(self):
        fake = FakeObjectStorage({"uploads/a1"})
        app.dependency_overrides[get_object_storage] = lambda: fake
        return fake

    def test_requires_login(self, client, objects):
        assert client.get("/objects/uploads/a1", follow_redirects=False).status_code == 401
        assert objects.requested == []

    def test_redirects_to_presigned_get(self, client, current_user, objects):
        current_user.user_id = "user-1"
        response = client.get("/objects/uploads/a1", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"].startswith("https://kindora-photos.s3.amazonaws.com/uploads/a1?")
        assert objects.requested == ["uploads/a1"]

    def test_missing_object_is_404(self, client, current_user, objects):
        current_user.user_id = "user-1"
        assert client.get("/objects/uploads/gone", follow_redirects=False).status_code == 404

    def test_handler_runs_in_threadpool(self):
        assert not inspect.iscoroutinefunction(objects_routes.serve_object)


class TestDownloadUrl:
    @pytest.fixture
    def s3(self, monkeypatch):
        _configure_s3(monkeypatch)
        return S3Storage()

    def test_existing_object_is_presigned(self, s3):
        with Stubber(s3.s3_client) as stub:
            stub.add_response("head_object", {}, {"Bucket": "kindora-photos", "Key": "uploads/a1"})
            url = s3.create_download_url("uploads/a1")
        assert "kindora-photos" in url
        assert "uploads/a1" in url
        assert "Signature" in url

    @pytest.mark.parametrize("code", ["404", "NoSuchKey"])
    def test_missing_object(self, s3, code):
        with Stubber(s3.s3_client) as stub:
            stub.add_client_error("head_object", service_error_code=code, http_status_code=404)
            assert s3.create_download_url("uploads/gone") is None

    def test_other_errors_propagate(self, s3):
        with Stubber(s3.s3_client) as stub:
            stub.add_client_error("head_object", service_error_code="AccessDenied", http_status_code=403)
            with pytest.raises(ClientError):
                s3.create_download_url("uploads/a1")
