from typing import Any, Optional


class FormStoreError(Exception):
    """Base for every failure the form store reports to the boundary layer."""

    kind = "error"
    status_code = 400

    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "detail": self.detail}


class NotFound(FormStoreError):
    kind = "not_found"
    status_code = 404


class NotAuthorized(FormStoreError):
    kind = "not_authorized"
    status_code = 403


class InvalidSection(FormStoreError):
    kind = "invalid_section"
    status_code = 400


class IncompleteForm(FormStoreError):
    kind = "incomplete_form"
    status_code = 400

    def __init__(self, message: str, missing_sections=None, errors=None):
        self.missing_sections = list(missing_sections or [])
        self.errors = list(errors or [])
        super().__init__(
            message,
            {"missing_sections": self.missing_sections, "errors": self.errors},
        )


class InvalidSlot(FormStoreError):
    kind = "invalid_slot"
    status_code = 400


class ConflictingWrite(FormStoreError):
    kind = "conflicting_write"
    status_code = 409
