from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


W3C_CREDENTIALS_CONTEXT = "https://www.w3.org/2018/credentials/v1"
BASE_CREDENTIAL_TYPE = "VerifiableCredential"


class VerifiableCredentialModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    context: List[str] = Field(..., alias='@context')
    id: str
    type: List[str]
    issuer: str
    issuanceDate: str
    expirationDate: Optional[str] = None
    credentialSubject: Dict[str, Any]

    def to_json_dict(self) -> Dict[str, Any]:
        """Wire representation: '@context' key, no null fields."""
        return self.model_dump(by_alias=True, exclude_none=True)

    @property
    def subject_id(self) -> Optional[str]:
        return self.credentialSubject.get("id")


class StoredCredentialModel(BaseModel):
    id: str
    credential: VerifiableCredentialModel
    jwt: str
    createdAt: str

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class VerificationResult(BaseModel):
    valid: bool
    credential: Optional[VerifiableCredentialModel] = None
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str) -> "VerificationResult":
        return cls(valid=False, error=error)

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# === Request / response bodies ===

class CreateCredentialRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: str = Field(..., description="Type of credential (e.g., GymMembership, EmployeeID, Certificate).", examples=["GymMembership"])
    claims: Dict[str, Any] = Field(
        ...,
        description="Claims/attributes for the credential subject.",
        examples=[{"memberName": "John Doe", "membershipType": "Premium", "validUntil": "2025-12-31"}],
    )
    holderName: Optional[str] = Field(default=None, description="Optional name of the credential holder.")
    expirationDate: Optional[datetime] = Field(default=None, description="Optional expiry instant of the credential.")


class VerifyCredentialRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    jwt: str = Field(..., min_length=1, description="JWT representing the signed verifiable credential.")


class MessageResponse(BaseModel):
    message: str


class IssuerInfo(BaseModel):
    did: str
    publicKeyJwk: Dict[str, str]


# === Credential templates ===

class FieldConfig(BaseModel):
    name: str
    label: str
    type: str
    options: Optional[List[str]] = None
    placeholder: Optional[str] = None
    required: bool = False


class CredentialTemplate(BaseModel):
    type: str
    label: str
    fields: List[FieldConfig]


# === Issuer key file ===

class IssuerKeyFileModel(BaseModel):
    did: str
    publicKeyMultibase: str
    privateKeyMultibase: str
    verificationMethod: Optional[str] = None
