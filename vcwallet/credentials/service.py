import uuid
from typing import Dict, List, Optional

from vcwallet.credentials.builder import CredentialBuilder
from vcwallet.credentials.templates import CREDENTIAL_TEMPLATES
from vcwallet.crypto.jwt import CredentialSigner, CredentialVerifier
from vcwallet.crypto.keys import KeyManager
from vcwallet.exceptions import NotFoundError
from vcwallet.logging import get_logger
from vcwallet.models import (
    CreateCredentialRequest,
    CredentialTemplate,
    StoredCredentialModel,
    VerificationResult,
)
from vcwallet.storage.store import CredentialStore

logger = get_logger(__name__)

HOLDER_NAME_CLAIM = "holderName"


class CredentialService:
    """Issues, lists, deletes and verifies credentials held in the wallet.

    This is the entry point used by the HTTP API and the CLI; it ties the builder,
    signer and verifier (all sharing one `KeyManager`) to a `CredentialStore`.
    """

    def __init__(
        self,
        key_manager: KeyManager,
        store: CredentialStore,
        enforce_expiration: bool = True,
        builder: Optional[CredentialBuilder] = None,
        signer: Optional[CredentialSigner] = None,
        verifier: Optional[CredentialVerifier] = None,
    ):
        self.key_manager = key_manager
        self.store = store
        self.builder = builder or CredentialBuilder(key_manager)
        self.signer = signer or CredentialSigner(key_manager)
        self.verifier = verifier or CredentialVerifier(key_manager, enforce_expiration=enforce_expiration)

    def issue(self, request: CreateCredentialRequest) -> StoredCredentialModel:
        """Builds and signs a credential without storing it."""
        claims = dict(request.claims)
        if request.holderName and claims and HOLDER_NAME_CLAIM not in claims:
            claims[HOLDER_NAME_CLAIM] = request.holderName

        credential = self.builder.build(request.type, claims, expiration_date=request.expirationDate)
        jwt = self.signer.sign(credential)
        return StoredCredentialModel(
            id=str(uuid.uuid4()),
            credential=credential,
            jwt=jwt,
            createdAt=credential.issuanceDate,
        )

    def create(self, request: CreateCredentialRequest) -> StoredCredentialModel:
        record = self.issue(request)
        self.store.save(record)
        logger.info(f"Issued {record.credential.type[-1]} {record.credential.id} as record {record.id}")
        return record

    def find_all(self) -> List[StoredCredentialModel]:
        return self.store.find_all()

    def find_one(self, record_id: str) -> StoredCredentialModel:
        record = self.store.find_by_id(record_id)
        if record is None:
            raise NotFoundError(f"Credential with ID {record_id} not found")
        return record

    def delete(self, record_id: str) -> Dict[str, str]:
        if not self.store.exists(record_id):
            raise NotFoundError(f"Credential with ID {record_id} not found")
        self.store.delete(record_id)
        logger.info(f"Deleted credential record {record_id}")
        return {"message": "Credential deleted successfully"}

    def verify(self, jwt: str) -> VerificationResult:
        result = self.verifier.verify(jwt)
        if result.valid:
            logger.info(f"Verified credential {result.credential.id}")
        else:
            logger.info(f"Credential verification failed: {result.error}")
        return result

    def templates(self) -> List[CredentialTemplate]:
        return list(CREDENTIAL_TEMPLATES)
