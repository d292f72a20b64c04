import json

from fastapi.testclient import TestClient

from vcwallet.server import create_app


def _create(client, **overrides):
    body = {"type": "GymMembership", "claims": {"memberName": "John Doe", "membershipType": "Premium"}}
    body.update(overrides)
    return client.post("/api/credentials", json=body)


def test_health(client, app_settings):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["issuer"].startswith("did:key:")
    assert "X-Request-ID" in response.headers
    assert app_settings.data_dir.is_dir()


def test_create_credential(client, app_settings):
    response = _create(client)

    assert response.status_code == 201
    record = response.json()
    assert set(record) == {"id", "credential", "jwt", "createdAt"}
    credential = record["credential"]
    assert credential["@context"] == ["https://www.w3.org/2018/credentials/v1"]
    assert credential["type"] == ["VerifiableCredential", "GymMembershipCredential"]
    assert credential["credentialSubject"]["memberName"] == "John Doe"
    assert "expirationDate" not in credential
    assert record["jwt"].count(".") == 2

    stored = json.loads(app_settings.credentials_file.read_text())
    assert [item["id"] for item in stored] == [record["id"]]


def test_create_with_expiration_and_holder_name(client):
    response = _create(client, holderName="John Doe", expirationDate="2999-12-31T00:00:00Z")
    assert response.status_code == 201
    credential = response.json()["credential"]
    assert credential["expirationDate"] == "2999-12-31T00:00:00.000Z"
    assert credential["credentialSubject"]["holderName"] == "John Doe"


def test_create_rejects_invalid_input(client):
    for body in (
        {"type": "", "claims": {"a": 1}},
        {"type": "GymMembership", "claims": {}},
        {"type": "GymMembership"},
        {"type": "GymMembership", "claims": "nope"},
        {"type": "GymMembership", "claims": {"a": 1}, "unexpected": True},
    ):
        response = client.post("/api/credentials", json=body)
        assert response.status_code == 400, body
        assert response.json()["error"] == "Bad Request"
        assert response.json()["message"]


def test_list_get_and_delete(client):
    first = _create(client).json()
    second = _create(client, type="EmployeeID", claims={"employeeName": "Jane Smith"}).json()

    listed = client.get("/api/credentials")
    assert listed.status_code == 200
    assert {item["id"] for item in listed.json()} == {first["id"], second["id"]}

    fetched = client.get(f"/api/credentials/{first['id']}")
    assert fetched.status_code == 200
    assert fetched.json() == first

    deleted = client.delete(f"/api/credentials/{first['id']}")
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "Credential deleted successfully"}

    assert client.get(f"/api/credentials/{first['id']}").status_code == 404
    assert [item["id"] for item in client.get("/api/credentials").json()] == [second["id"]]


def test_unknown_credential_is_404(client):
    response = client.get("/api/credentials/does-not-exist")
    assert response.status_code == 404
    assert response.json()["message"] == "Credential with ID does-not-exist not found"

    response = client.delete("/api/credentials/does-not-exist")
    assert response.status_code == 404


def test_verify(client):
    record = _create(client).json()

    valid = client.post("/api/credentials/verify", json={"jwt": record["jwt"]})
    assert valid.status_code == 200
    assert valid.json() == {"valid": True, "credential": record["credential"]}

    tampered = client.post("/api/credentials/verify", json={"jwt": record["jwt"][:-5] + "xxxxx"})
    assert tampered.status_code == 200
    assert tampered.json()["valid"] is False

    garbage = client.post("/api/credentials/verify", json={"jwt": "not.a.jwt"})
    assert garbage.status_code == 200
    assert garbage.json()["valid"] is False
    assert garbage.json()["error"]


def test_verify_requires_jwt(client):
    assert client.post("/api/credentials/verify", json={}).status_code == 400
    assert client.post("/api/credentials/verify", json={"jwt": ""}).status_code == 400


def test_templates_and_issuer(client):
    templates = client.get("/api/credentials/templates")
    assert templates.status_code == 200
    assert templates.json()[0]["type"] == "GymMembership"

    issuer = client.get("/api/issuer").json()
    assert issuer["did"] == client.get("/health").json()["issuer"]
    assert issuer["publicKeyJwk"]["kty"] == "OKP"


def test_new_process_gets_new_issuer_unless_key_file_is_set(app_settings, tmp_path):
    def issuer_of(settings):
        with TestClient(create_app(app_settings=settings)) as client:
            return client.get("/api/issuer").json()["did"]

    assert issuer_of(app_settings) != issuer_of(app_settings)

    persistent = app_settings.model_copy(update={"issuer_key_file": tmp_path / "issuer.json"})
    assert issuer_of(persistent) == issuer_of(persistent)


def test_credentials_survive_restart_with_persistent_key(app_settings, tmp_path):
    persistent = app_settings.model_copy(update={"issuer_key_file": tmp_path / "issuer.json"})

    with TestClient(create_app(app_settings=persistent)) as client:
        record = _create(client).json()

    with TestClient(create_app(app_settings=persistent)) as client:
        assert client.get(f"/api/credentials/{record['id']}").json() == record
        assert client.post("/api/credentials/verify", json={"jwt": record["jwt"]}).json()["valid"] is True


def test_injected_key_manager_is_the_issuer(app_settings, key_manager):
    with TestClient(create_app(app_settings=app_settings, key_manager=key_manager)) as client:
        assert client.get("/api/issuer").json()["did"] == key_manager.issuer_did()
        assert client.get("/health").json()["issuer"] == key_manager.issuer_did()


def test_wildcard_cors_does_not_allow_credentials(client):
    response = client.get("/health", headers={"Origin": "https://evil.example"})
    assert response.headers["access-control-allow-origin"] == "*"
    assert "access-control-allow-credentials" not in response.headers


def test_explicit_cors_origins_allow_credentials(app_settings):
    settings = app_settings.model_copy(update={"cors_origins": ["http://localhost:5173"]})
    with TestClient(create_app(app_settings=settings)) as client:
        allowed = client.get("/health", headers={"Origin": "http://localhost:5173"})
        assert allowed.headers["access-control-allow-origin"] == "http://localhost:5173"
        assert allowed.headers["access-control-allow-credentials"] == "true"

        other = client.get("/health", headers={"Origin": "https://evil.example"})
        assert "access-control-allow-origin" not in other.headers
