"""HTTP tests for the registry server."""

import pytest
from fastapi.testclient import TestClient

from conftest import to_bytes
from program_registry.server import create_app
from program_registry.store.sqlite import SqliteProgramStore


def _upload(client, data, filename="program.json"):
    return client.post("/upload-program", files={"program": (filename, data, "application/json")})


@pytest.fixture
def client(store):
    return TestClient(create_app(store=store))


class TestUploadProgram:
    """POST /upload-program."""

    def test_new_program_is_created(self, client, casm_v2_bytes):
        response = _upload(client, casm_v2_bytes)
        assert response.status_code == 201
        body = response.json()
        assert body["program_hash"].startswith("0x")
        assert body["version"] == 2
        assert body["layout"] == "recursive_with_poseidon"
        assert body["builtins"] == ["pedersen", "range_check"]
        assert body["already_existed"] is False

    def test_reupload_returns_same_hash(self, client, program_v0_bytes):
        first = _upload(client, program_v0_bytes)
        second = _upload(client, program_v0_bytes)
        assert second.status_code == 200
        assert second.json()["already_existed"] is True
        assert second.json()["program_hash"] == first.json()["program_hash"]

    def test_unsupported_version_is_bad_request(self, client, make_casm_v2, store):
        response = _upload(client, to_bytes(make_casm_v2(compiler_version="1.5.0")))
        assert response.status_code == 400
        assert response.json()["code"] == "UNSUPPORTED_COMPILER_VERSION"
        assert "1.5.0" in response.json()["detail"]
        assert len(store) == 0

    def test_malformed_is_bad_request(self, client):
        response = _upload(client, b"not json")
        assert response.status_code == 400
        assert response.json()["code"] == "MALFORMED_ARTIFACT"

    def test_hash_failure_is_bad_request(self, client, make_program_v0):
        response = _upload(client, to_bytes(make_program_v0(builtins=["x" * 40])))
        assert response.status_code == 400
        assert response.json()["code"] == "HASH_COMPUTATION_FAILURE"

    def test_deeply_nested_json_is_bad_request(self, client):
        depth = 100000
        data = b'{"compiler_version":"2.0.0","x":' + b"[" * depth + b"]" * depth + b"}"
        response = _upload(client, data)
        assert response.status_code == 400
        assert response.json()["code"] == "MALFORMED_ARTIFACT"

    def test_missing_field(self, client, casm_v2_bytes):
        response = client.post("/upload-program", files={"artifact": ("a.json", casm_v2_bytes)})
        assert response.status_code == 400
        assert response.json()["code"] == "MALFORMED_ARTIFACT"

    def test_storage_failure_is_server_error(self, broken_store, casm_v2_bytes):
        client = TestClient(create_app(store=broken_store))
        response = _upload(client, casm_v2_bytes)
        assert response.status_code == 500
        assert response.json() == {"code": "STORAGE_FAILURE", "detail": "database is locked"}


class TestLookups:
    """GET endpoints."""

    def test_get_program_returns_uploaded_bytes(self, client, casm_v2_bytes):
        program_hash = _upload(client, casm_v2_bytes).json()["program_hash"]

        response = client.get("/get-program", params={"program_hash": program_hash})

        assert response.status_code == 200
        assert response.content == casm_v2_bytes
        assert response.headers["content-type"].startswith("application/json")
        assert response.headers["content-disposition"] == f'attachment; filename="{program_hash}.json"'

    def test_get_program_not_found(self, client):
        response = client.get("/get-program", params={"program_hash": "0x1"})
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_get_metadata(self, client, program_v0_bytes):
        program_hash = _upload(client, program_v0_bytes).json()["program_hash"]
        response = client.get("/get-metadata", params={"program_hash": program_hash})
        assert response.json() == {
            "version": 0,
            "layout": "recursive_with_poseidon",
            "builtins": ["pedersen", "range_check"],
        }

    def test_get_metadata_not_found(self, client):
        assert client.get("/get-metadata", params={"program_hash": "0x2"}).status_code == 404

    def test_resolve_layout(self, client):
        response = client.get("/resolve-layout", params=[("builtin", "ecdsa"), ("builtin", "range_check")])
        assert response.json() == {"layout": "starknet"}

    def test_resolve_layout_no_builtins(self, client):
        assert client.get("/resolve-layout").json() == {"layout": "recursive_with_poseidon"}

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


def test_lifespan_opens_configured_sqlite_store(tmp_path, casm_v2_bytes):
    from program_registry.config import RegistryConfig

    config = RegistryConfig(database_path=tmp_path / "programs.db")
    with TestClient(create_app(config=config)) as client:
        program_hash = _upload(client, casm_v2_bytes).json()["program_hash"]

    assert SqliteProgramStore(tmp_path / "programs.db").get(program_hash).code == casm_v2_bytes
