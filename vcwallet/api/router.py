from typing import List

from fastapi import APIRouter, Depends, Request, status

from vcwallet.credentials.service import CredentialService
from vcwallet.logging import get_logger
from vcwallet.models import (
    CreateCredentialRequest,
    CredentialTemplate,
    IssuerInfo,
    MessageResponse,
    StoredCredentialModel,
    VerificationResult,
    VerifyCredentialRequest,
)

logger = get_logger(__name__)

router = APIRouter(
    tags=["credentials"],
)

def get_credential_service(request: Request) -> CredentialService:
    """Dependency returning the service wired up by the application lifespan."""
    return request.app.state.credential_service

@router.post(
    "/credentials",
    response_model=StoredCredentialModel,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Issue a new verifiable credential",
    responses={400: {"description": "Invalid input data"}},
)
def create_credential(
    create_request: CreateCredentialRequest,
    service: CredentialService = Depends(get_credential_service),
):
    """
    Builds a W3C Verifiable Credential from the given type and claims, signs it with the
    issuer key and stores it in the wallet.

    - **type**: credential type, e.g. `GymMembership` (becomes `GymMembershipCredential`).
    - **claims**: subject claims as a JSON object.
    """
    return service.create(create_request)

@router.get(
    "/credentials",
    response_model=List[StoredCredentialModel],
    response_model_exclude_none=True,
    summary="List all credentials in the wallet",
)
def list_credentials(service: CredentialService = Depends(get_credential_service)):
    """Returns every stored credential, newest first."""
    return service.find_all()

@router.get(
    "/credentials/templates",
    response_model=List[CredentialTemplate],
    response_model_exclude_none=True,
    summary="List the built-in credential templates",
)
def list_templates(service: CredentialService = Depends(get_credential_service)):
    return service.templates()

@router.post(
    "/credentials/verify",
    response_model=VerificationResult,
    response_model_exclude_none=True,
    summary="Verify a credential JWT signature",
)
def verify_credential(
    verify_request: VerifyCredentialRequest,
    service: CredentialService = Depends(get_credential_service),
):
    """
    Verifies the signature and issuer binding of a signed credential.
    Always answers 200; an invalid token yields `{"valid": false, "error": ...}`.
    """
    return service.verify(verify_request.jwt)

@router.get(
    "/credentials/{credential_id}",
    response_model=StoredCredentialModel,
    response_model_exclude_none=True,
    summary="Get a specific credential by ID",
    responses={404: {"description": "Credential not found"}},
)
def get_credential(credential_id: str, service: CredentialService = Depends(get_credential_service)):
    return service.find_one(credential_id)

@router.delete(
    "/credentials/{credential_id}",
    response_model=MessageResponse,
    summary="Delete a credential from the wallet",
    responses={404: {"description": "Credential not found"}},
)
def delete_credential(credential_id: str, service: CredentialService = Depends(get_credential_service)):
    return service.delete(credential_id)

@router.get("/issuer", response_model=IssuerInfo, tags=["issuer"], summary="Describe the issuer identity")
def get_issuer(service: CredentialService = Depends(get_credential_service)):
    """Returns the issuer DID and the public key (as a JWK) that verifiers need."""
    key_manager = service.key_manager
    return IssuerInfo(did=key_manager.issuer_did(), publicKeyJwk=key_manager.public_jwk())
