"""Base exception for user-facing service failures."""

from typing import Optional


class ServiceError(Exception):
    """A failure that is reported to the caller as ``{kind, message}``.

    Subclasses pick a default HTTP status and expose classmethod
    constructors, one per failure kind.
    """

    status_code: int = 400
    default_kind: str = "error"

    def __init__(
        self,
        message: str,
        kind: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.kind = kind or self.default_kind
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"success": False, "kind": self.kind, "message": self.message}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} kind={self.kind} message={self.message!r}>"
