
class WalletError(Exception):
    """Base class for exceptions in the vcwallet library."""
    pass

class InvalidInputError(WalletError):
    """Raised when a caller supplies an empty type, empty claims or an otherwise malformed request."""
    pass

class NotFoundError(WalletError):
    """Raised when a credential record does not exist."""
    pass

class StorageError(WalletError):
    """Raised when the credential store cannot persist its contents."""
    pass

class FatalError(WalletError):
    """Raised for startup preconditions that make the process unable to serve requests."""
    pass

class KeyManagerNotInitializedError(FatalError):
    """Raised when key material is requested before the key manager has been initialized."""
    pass

class KeyGenerationError(FatalError):
    """Raised when the issuer keypair cannot be generated or loaded."""
    pass
