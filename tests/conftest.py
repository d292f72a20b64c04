import pytest
from fastapi.testclient import TestClient

from vcwallet.config import Settings
from vcwallet.credentials.builder import CredentialBuilder
from vcwallet.credentials.service import CredentialService
from vcwallet.crypto.encoding import b64url_encode, encode_json_segment
from vcwallet.crypto.jwt import CredentialSigner, CredentialVerifier
from vcwallet.crypto.keys import KeyManager
from vcwallet.server import create_app
from vcwallet.storage.store import CredentialStore


@pytest.fixture
def key_manager():
    manager = KeyManager()
    manager.initialize()
    return manager

@pytest.fixture
def builder(key_manager):
    return CredentialBuilder(key_manager)

@pytest.fixture
def signer(key_manager):
    return CredentialSigner(key_manager)

@pytest.fixture
def verifier(key_manager):
    return CredentialVerifier(key_manager)

@pytest.fixture
def store(tmp_path):
    return CredentialStore(tmp_path / "data" / "credentials.json")

@pytest.fixture
def service(key_manager, store):
    return CredentialService(key_manager, store)

@pytest.fixture
def app_settings(tmp_path):
    return Settings(data_dir=tmp_path / "data", issuer_key_file=None, api_prefix="/api")

@pytest.fixture
def client(app_settings):
    app = create_app(app_settings=app_settings)
    with TestClient(app) as test_client:
        yield test_client


def sign_raw(key_manager, header, payload):
    """Signs arbitrary header/payload objects with the issuer key, bypassing the signer."""
    signing_input = f"{encode_json_segment(header)}.{encode_json_segment(payload)}"
    signature = key_manager.sign(signing_input.encode("ascii"))
    return f"{signing_input}.{b64url_encode(signature)}"
