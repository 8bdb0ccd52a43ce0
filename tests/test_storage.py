"""Tests for the Supabase storage and auth adapters."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import httpx
import pytest

from nearr.errors import Conflict, Forbidden, NotFound, UpstreamError
from nearr.storage import AuthProvider, ObjectStore, create_supabase_client


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def bucket(client):
    return client.storage.from_.return_value


def test_put_upserts_vcard(client, bucket):
    ObjectStore(client, bucket="vcf_files").put("Cluster_Contacts_C_1_abcd1234.vcf", "BEGIN:VCARD")

    client.storage.from_.assert_called_with("vcf_files")
    bucket.upload.assert_called_once_with(
        "Cluster_Contacts_C_1_abcd1234.vcf",
        b"BEGIN:VCARD",
        file_options={"content-type": "text/vcard", "upsert": "true"},
    )


def test_put_failure_is_upstream_error(client, bucket):
    bucket.upload.side_effect = RuntimeError("503")
    with pytest.raises(UpstreamError):
        ObjectStore(client).put("a.vcf", "x")


def test_signed_url(client, bucket):
    bucket.create_signed_url.return_value = {"signedURL": "https://storage.test/a.vcf?token=1"}

    url = ObjectStore(client, signed_url_ttl=30).signed_url("a.vcf")

    assert url == "https://storage.test/a.vcf?token=1"
    bucket.create_signed_url.assert_called_once_with("a.vcf", 30)


def test_signed_url_missing(client, bucket):
    bucket.create_signed_url.return_value = {}
    with pytest.raises(UpstreamError):
        ObjectStore(client).signed_url("a.vcf")


def _mock_transport(status_code: int, content: bytes = b""):
    return httpx.MockTransport(lambda request: httpx.Response(status_code, content=content))


def test_stream_yields_object_bytes(client, bucket):
    bucket.create_signed_url.return_value = {"signedUrl": "https://storage.test/a.vcf"}
    real_client = httpx.Client

    with patch("nearr.storage.objects.httpx.Client", lambda **kw: real_client(transport=_mock_transport(200, b"BEGIN:VCARD"), **kw)):
        data = b"".join(ObjectStore(client).stream("a.vcf"))

    assert data == b"BEGIN:VCARD"


def test_stream_missing_object(client, bucket):
    bucket.create_signed_url.return_value = {"signedUrl": "https://storage.test/a.vcf"}
    real_client = httpx.Client

    with patch("nearr.storage.objects.httpx.Client", lambda **kw: real_client(transport=_mock_transport(404), **kw)):
        with pytest.raises(NotFound):
            list(ObjectStore(client).stream("a.vcf"))


def test_create_user(client):
    client.auth.admin.create_user.return_value = SimpleNamespace(user=SimpleNamespace(id="user-123"))

    assert AuthProvider(client).create_user("a@example.com", "hunter22", {"nickname": "A"}) == "user-123"
    payload = client.auth.admin.create_user.call_args.args[0]
    assert payload["email_confirm"] is True
    assert payload["user_metadata"] == {"nickname": "A"}


def test_create_user_duplicate(client):
    client.auth.admin.create_user.side_effect = RuntimeError("User already registered")
    with pytest.raises(Conflict):
        AuthProvider(client).create_user("a@example.com", "hunter22")


def test_delete_user_failure(client):
    client.auth.admin.delete_user.side_effect = RuntimeError("timeout")
    with pytest.raises(UpstreamError):
        AuthProvider(client).delete_user("user-123")


def test_get_user_by_token(client):
    user = SimpleNamespace(id="user-123", email="a@example.com", user_metadata={"nickname": "A"})
    client.auth.get_user.return_value = SimpleNamespace(user=user)

    assert AuthProvider(client).get_user_by_token("token") == {
        "id": "user-123",
        "email": "a@example.com",
        "user_metadata": {"nickname": "A"},
    }


def test_get_user_by_invalid_token(client):
    client.auth.get_user.side_effect = RuntimeError("invalid JWT")
    with pytest.raises(Forbidden):
        AuthProvider(client).get_user_by_token("bogus")


def test_find_user_by_email_pages(client):
    first_page = [SimpleNamespace(id=str(i), email=f"user{i}@example.com") for i in range(2)]
    second_page = [SimpleNamespace(id="9", email="Target@Example.com")]
    client.auth.admin.list_users.side_effect = [first_page, second_page]

    found = AuthProvider(client).find_user_by_email("target@example.com", per_page=2)

    assert found["id"] == "9"
    assert client.auth.admin.list_users.call_count == 2


def test_create_client_requires_credentials():
    with pytest.raises(UpstreamError):
        create_supabase_client({"url": None, "service_role_key": None})
