"""Error taxonomy for wallet custody and transfer monitoring.

Business errors (validation, conflict, not found) carry a message that is
safe to show to the user. Integrity and collaborator errors are logged and
replaced by a generic reply at the chat boundary.
"""


class MomoError(Exception):
    """Base class for all application errors."""

    user_message = "Something went wrong. Please try again later."


class BusinessError(MomoError):
    """Expected outcome that the user can act on."""

    def __init__(self, message: str):
        super().__init__(message)
        self.user_message = message


class ValidationError(BusinessError):
    """Bad input such as an invalid wallet name or private key."""


class ConflictError(BusinessError):
    """A wallet with the same name already exists for the user."""


class NotFoundError(BusinessError):
    """Unknown wallet or user."""


class DecryptionError(MomoError):
    """Stored ciphertext could not be decrypted with the configured key."""


class CollaboratorError(MomoError):
    """Blockchain node or other external service failure."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class AccountNotFoundError(CollaboratorError):
    """The address has no on-chain account yet."""

    def __init__(self, address: str):
        super().__init__(f"Account {address} not found", status_code=404)
        self.address = address
