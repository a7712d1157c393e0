"""Error taxonomy for the invite pool.

Engines raise these; the handlers registered in ``invitepool.main`` turn
them into JSON responses. Each class carries the HTTP status and the public
message the boundary should show.
"""

from typing import Iterable


class InvitePoolError(Exception):
    """Base class for all invite pool errors."""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.public_message
        super().__init__(self.message)


class NotFound(InvitePoolError):
    """Raised when a code, usage or admin does not exist."""

    status_code = 404

    def __init__(self, entity: str, ident=None):
        self.entity = entity
        self.ident = ident
        super().__init__(f"{entity} not found")


class DuplicateCode(InvitePoolError):
    """Raised when a code value already exists in the pool."""

    status_code = 400

    def __init__(self, codes: Iterable[str]):
        self.codes = sorted(set(codes))
        if len(self.codes) == 1:
            msg = f"Code '{self.codes[0]}' already exists"
        else:
            msg = "Codes already exist: " + ", ".join(self.codes)
        super().__init__(msg)


class NoCodesAvailable(InvitePoolError):
    """Raised when the pool has nothing left to hand out. Expected, not a bug."""

    status_code = 404
    public_message = "No codes available at this time. Please check back later."


class Unauthorized(InvitePoolError):
    status_code = 401
    public_message = "Unauthorized"


class ValidationError(InvitePoolError):
    """Raised when input is well-formed JSON but semantically invalid."""

    status_code = 400
    public_message = "Invalid request"


class TransactionFailure(InvitePoolError):
    """Raised after a store-level abort has been rolled back."""

    status_code = 500
