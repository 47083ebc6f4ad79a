"""
Error kinds raised by the document store, guard and ledger.

The core never redirects or flashes. It raises one of these and the HTTP
layer turns ``status`` and ``message`` into a response.
"""

from typing import Any


class DocumentError(Exception):
    """
    Base class for every recoverable failure in the core.

    Usage:
        raise AlreadyExists(name="about.md")
    """

    code = "DOCUMENT_ERROR"
    status = 400
    template = "Something went wrong."

    def __init__(self, **context: Any) -> None:
        self.context = context
        super().__init__(self.message)

    @property
    def message(self) -> str:
        return self.template.format(**self.context)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.context}


class EmptyName(DocumentError):
    code = "EMPTY_NAME"
    status = 422
    template = "A name is required."


class InvalidName(DocumentError):
    code = "INVALID_NAME"
    status = 422
    template = "{name} is not a valid name."


class UnsupportedType(DocumentError):
    code = "UNSUPPORTED_TYPE"
    status = 415
    template = "{name}: only {allowed} files are supported."


class AlreadyExists(DocumentError):
    code = "ALREADY_EXISTS"
    status = 409
    template = "{name} already exists."


class NotFound(DocumentError):
    code = "NOT_FOUND"
    status = 404
    template = "{name} does not exist."


class Unauthenticated(DocumentError):
    code = "UNAUTHENTICATED"
    status = 401
    template = "You must be signed in to do that."


class OperationNotSupportedForKind(DocumentError):
    code = "OPERATION_NOT_SUPPORTED"
    status = 415
    template = "{name} cannot be {action}."


class EmptyPassword(DocumentError):
    code = "EMPTY_PASSWORD"
    status = 422
    template = "A password is required."


class InvalidCredentials(DocumentError):
    code = "INVALID_CREDENTIALS"
    status = 422
    template = "Invalid credentials."


class MissingUpload(DocumentError):
    code = "MISSING_UPLOAD"
    status = 400
    template = "Please choose a file to upload."
