import json
import uuid
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Callable, Optional

from vcwallet.crypto.keys import KeyManager
from vcwallet.exceptions import InvalidInputError
from vcwallet.logging import get_logger
from vcwallet.models import BASE_CREDENTIAL_TYPE, W3C_CREDENTIALS_CONTEXT, VerifiableCredentialModel
from vcwallet.utils import format_timestamp, to_utc, utc_now

logger = get_logger(__name__)

SUBJECT_ID_CLAIM = "id"
SUBJECT_DID_PREFIX = "did:example:"


def new_credential_id() -> str:
    return f"urn:uuid:{uuid.uuid4()}"

def new_subject_id() -> str:
    return f"{SUBJECT_DID_PREFIX}{str(uuid.uuid4())[:8]}"


class CredentialBuilder:
    """Assembles unsigned W3C credential documents from a type name and subject claims.

    The builder performs no I/O; apart from the random identifiers and the
    issuance timestamp its output depends only on its arguments and the issuer DID.
    """

    def __init__(self, key_manager: KeyManager, clock: Callable[[], datetime] = utc_now):
        self.key_manager = key_manager
        self.clock = clock

    def build(
        self,
        credential_type: str,
        claims: Mapping[str, Any],
        expiration_date: Optional[datetime] = None,
    ) -> VerifiableCredentialModel:
        """Builds a credential document.

        Args:
            credential_type: User supplied type, e.g. 'GymMembership'. The document's
                type array becomes ['VerifiableCredential', 'GymMembershipCredential'].
            claims: Subject claims, copied verbatim except for a reserved 'id' key,
                which is dropped so callers cannot override the generated subject id.
            expiration_date: Optional expiry, must lie after the issuance instant.

        Returns:
            The unsigned `VerifiableCredentialModel`.

        Raises:
            InvalidInputError: If the type or claims are empty or unusable.
        """
        if not isinstance(credential_type, str) or not credential_type.strip():
            raise InvalidInputError("Credential type must be a non-empty string.")
        if not isinstance(claims, Mapping) or not claims:
            raise InvalidInputError("Claims must be a non-empty mapping.")
        if not all(isinstance(name, str) and name for name in claims):
            raise InvalidInputError("Claim names must be non-empty strings.")

        subject_claims = {name: value for name, value in claims.items() if name != SUBJECT_ID_CLAIM}
        if len(subject_claims) != len(claims):
            logger.warning("Dropped reserved 'id' claim supplied by the caller.")
        if not subject_claims:
            raise InvalidInputError("Claims must contain at least one claim besides 'id'.")
        try:
            json.dumps(subject_claims)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"Claims must be JSON-serializable: {e}")

        issued_at = self.clock()
        expiration = None
        if expiration_date is not None:
            if to_utc(expiration_date) <= to_utc(issued_at):
                raise InvalidInputError("Expiration date must be later than the issuance date.")
            expiration = format_timestamp(expiration_date)

        return VerifiableCredentialModel(
            context=[W3C_CREDENTIALS_CONTEXT],
            id=new_credential_id(),
            type=[BASE_CREDENTIAL_TYPE, f"{credential_type.strip()}Credential"],
            issuer=self.key_manager.issuer_did(),
            issuanceDate=format_timestamp(issued_at),
            expirationDate=expiration,
            credentialSubject={SUBJECT_ID_CLAIM: new_subject_id(), **subject_claims},
        )
