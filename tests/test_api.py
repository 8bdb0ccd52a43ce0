"""HTTP-level tests through FastAPI's TestClient."""

import pytest
from fastapi.testclient import TestClient

from nearr.api import create_app


@pytest.fixture
def cluster(make_cluster):
    return make_cluster(max_members=2)


@pytest.fixture
def users(make_profile):
    make_profile("ann", profession="Nurse", country="India", age=30, whatsapp_number="+100")
    make_profile("bo", country="Canada", age=40)
    make_profile("cy")


def join(client, cluster_id, user_id, **extra):
    return client.post("/api/join-cluster", json={"cluster_id": cluster_id, "user_id": user_id, **extra})


def test_cohort_status(client, cluster):
    response = client.get("/api/cohort-status", params={"cluster_id": cluster, "user_id": "ann"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["current_members"] == 0
    assert body["max_members"] == 2
    assert body["is_full"] is False
    assert body["user_is_member"] is False
    assert body["vcf_uploaded"] is False


def test_status_requires_cluster_id(client):
    response = client.get("/api/cohort-status")
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_unknown_cluster(client):
    response = client.get("/api/cohort-status", params={"cluster_id": 404})
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Cluster 404 not found."}


def test_join_flow(client, cluster, users):
    first = join(client, cluster, "ann", display_profession=True)
    assert first.status_code == 200
    assert first.json()["current_members"] == 1

    duplicate = join(client, cluster, "ann")
    assert duplicate.status_code == 409
    assert duplicate.json()["success"] is False

    full = join(client, cluster, "bo")
    assert full.json()["vcf_uploaded"] is True

    rejected = join(client, cluster, "cy")
    assert rejected.status_code == 409
    assert rejected.json()["message"] == "Cluster is full."


def test_join_accepts_rpc_style_names(client, cluster, users):
    response = client.post("/api/join-cluster", json={"p_cluster_id": cluster, "p_user_id": "ann"})
    assert response.status_code == 200


def test_join_validation(client):
    response = client.post("/api/join-cluster", json={"cluster_id": "abc"})
    assert response.status_code == 400
    assert response.json()["message"].startswith("Invalid request")


def test_leave_and_lock(client, cluster, users):
    join(client, cluster, "ann")
    left = client.post("/api/leave-cluster", json={"cluster_id": cluster, "user_id": "ann"})
    assert left.status_code == 200
    assert left.json()["current_members"] == 0

    join(client, cluster, "ann")
    join(client, cluster, "bo")
    locked = client.post("/api/leave-cluster", json={"cluster_id": cluster, "user_id": "ann"})
    assert locked.status_code == 403


def test_cluster_stats(client, cluster, users):
    join(client, cluster, "ann", display_profession=True)
    response = client.get("/api/cluster-stats", params={"cluster_id": cluster, "user_country": "India"})

    body = response.json()
    assert body["cluster_name"] == "Runners"
    assert [m["nickname"] for m in body["cohort_members"]] == ["Ann"]
    assert "whatsapp_number" not in body["cohort_members"][0]
    assert body["cluster_stats"]["profession_mix"] == {"Nurse": 100}
    assert body["cluster_stats"]["geographic_mix"] == {"India": 100, "Abroad": 0}


def test_download_and_track(client, objects, cluster, users):
    join(client, cluster, "ann")
    status = join(client, cluster, "bo").json()

    download = client.get("/api/download-contacts", params={"cluster_id": cluster, "user_id": "ann"})
    assert download.status_code == 200
    assert download.headers["content-type"].startswith("text/vcard")
    assert status["vcf_file_name"] in download.headers["content-disposition"]
    assert download.content == objects.objects[status["vcf_file_name"]]

    by_name = client.get(
        "/api/download-contacts", params={"file_name": status["vcf_file_name"], "user_id": "bo"}
    )
    assert by_name.status_code == 200

    outsider = client.get("/api/download-contacts", params={"cluster_id": cluster, "user_id": "cy"})
    assert outsider.status_code == 403

    tracked = client.post("/api/track-download", json={"cluster_id": cluster, "user_id": "ann"})
    assert tracked.json()["vcf_download_count"] == 1
    again = client.post("/api/track-download", json={"cluster_id": cluster, "user_id": "ann"})
    assert again.json()["vcf_download_count"] == 1
    assert again.json()["already_tracked"] is True


def test_download_requires_target(client):
    response = client.get("/api/download-contacts", params={"user_id": "ann"})
    assert response.status_code == 400


def test_display_members_for_members_only(client, cluster, users):
    join(client, cluster, "ann")
    url = f"/api/cohorts/{cluster}/members/display"

    assert client.get(url, params={"user_id": "ann"}).status_code == 200
    assert client.get(url, params={"user_id": "bo"}).status_code == 403


def test_public_cluster_list(client, cluster):
    clusters = client.get("/api/clusters").json()["clusters"]
    assert clusters[0]["name"] == "Runners"
    assert clusters[0]["spots_left"] == 2


def test_waitlist_signup(client, auth, profiles):
    payload = {
        "email": "new@example.com",
        "password": "hunter22",
        "nickname": "Newbie",
        "whatsapp": "+4915112345678",
    }
    created = client.post("/api/waitlist", json=payload)
    assert created.status_code == 201
    assert auth.find_user_by_email("new@example.com")["id"] == created.json()["user_id"]

    assert client.post("/api/waitlist", json=payload).status_code == 409
    assert client.post("/api/waitlist", json={"email": "x@example.com"}).status_code == 400

    board = client.get("/api/secure-data").json()
    assert board["data"][0]["nickname"] == "Newbie"


def test_token_sign_in(client, auth):
    token = auth.issue_token("someone@example.com")

    ok = client.post("/api/auth/token-sign-in", json={"access_token": token})
    assert ok.json()["user"]["email"] == "someone@example.com"

    assert client.post("/api/auth/token-sign-in", json={}).status_code == 401
    assert client.post("/api/auth/token-sign-in", json={"access_token": "bogus"}).status_code == 403


class TestAdmin:
    def test_requires_bearer_token(self, client, auth):
        assert client.get("/api/admin/clusters").status_code == 401

        outsider = {"Authorization": f"Bearer {auth.issue_token('someone@example.com')}"}
        assert client.get("/api/admin/clusters", headers=outsider).status_code == 403

    def test_cluster_crud(self, client, admin_headers):
        created = client.post("/api/admin/clusters", json={"name": "Makers", "max_members": 4}, headers=admin_headers)
        assert created.status_code == 201
        cluster_id = created.json()["cluster"]["id"]

        detail = client.get(f"/api/admin/clusters/{cluster_id}", headers=admin_headers).json()
        assert detail["status"]["max_members"] == 4

        renamed = client.patch(f"/api/admin/clusters/{cluster_id}", json={"name": "Builders"}, headers=admin_headers)
        assert renamed.json()["cluster"]["name"] == "Builders"
        assert client.patch(f"/api/admin/clusters/{cluster_id}", json={}, headers=admin_headers).status_code == 400

        assert client.delete(f"/api/admin/clusters/{cluster_id}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/admin/clusters/{cluster_id}", headers=admin_headers).status_code == 404

    def test_members_vcf_and_reset(self, client, admin_headers, objects, cluster, users):
        join(client, cluster, "ann")
        objects.failures_left = 1
        join(client, cluster, "bo")
        base = f"/api/admin/clusters/{cluster}"

        members = client.get(f"{base}/members", headers=admin_headers).json()["members"]
        assert members[0]["whatsapp_number"] == "+100"

        assert client.get(f"{base}/vcf-status", headers=admin_headers).json()["status"] == "pending"
        assert client.get(f"{base}/download-vcf", headers=admin_headers).status_code == 404

        generated = client.post(f"{base}/generate-exchange", headers=admin_headers).json()
        assert generated["vcf_uploaded"] is True
        assert client.get(f"{base}/vcf-status", headers=admin_headers).json()["status"] == "uploaded"
        assert "download_url" in client.get(f"{base}/download-vcf", headers=admin_headers).json()

        stats = client.get(f"{base}/stats", headers=admin_headers).json()
        assert stats["cluster_stats"]["total_members"] == 2

        reset = client.post(
            "/api/reset-cluster",
            json={"cluster_id": cluster, "cohort_id": generated["cohort_id"]},
            headers=admin_headers,
        )
        assert reset.status_code == 200
        assert reset.json()["cohort_id"] != generated["cohort_id"]
        assert client.get("/api/cohort-status", params={"cluster_id": cluster}).json()["current_members"] == 0

    def test_reset_requires_admin(self, client, cluster):
        assert client.post("/api/reset-cluster", json={"cluster_id": cluster}).status_code == 401


def test_unexpected_errors_are_hidden(context):
    class Broken:
        def get_status(self, cluster_id, user_id=None):
            raise RuntimeError("secret internals")

    context.cohorts = Broken()
    client = TestClient(create_app(context=context), raise_server_exceptions=False)

    response = client.get("/api/cohort-status", params={"cluster_id": 1})

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error."}


def test_lifespan_opens_and_closes_database(context, db):
    with TestClient(create_app(context=context)) as client:
        assert client.get("/health").json()["success"] is True
        assert db.opened is True
    assert db.closed is True
