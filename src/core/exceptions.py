class DomainError(Exception):
    """Base class for domain-specific errors."""

    pass


class ReportValidationError(DomainError):
    """Local validation failure; the generation service is never called."""

    pass


class MissingProjectFieldsError(ReportValidationError):
    """Raised when generation is requested without a title or description."""

    def __init__(
        self, message: str = "Please fill in at least the Title and Description."
    ) -> None:
        super().__init__(message)


class EmptyInstructionError(ReportValidationError):
    def __init__(self, message: str = "Enter an instruction before sending.") -> None:
        super().__init__(message)


class EmptyDocumentError(ReportValidationError):
    """Raised when an edit is requested before any document exists."""

    def __init__(
        self, message: str = "Generate a document before editing it."
    ) -> None:
        super().__init__(message)


class NoActiveSessionError(ReportValidationError):
    def __init__(
        self, message: str = "No drafting session is open; generate the report first."
    ) -> None:
        super().__init__(message)


class UnknownProjectFieldError(ReportValidationError):
    pass


class RosterIndexError(ReportValidationError):
    pass


class TabLockedError(ReportValidationError):
    def __init__(
        self, message: str = "Tabs cannot be switched while the report is generating."
    ) -> None:
        super().__init__(message)


class WorkspaceBusyError(DomainError):
    """Raised when a generation or edit is already in flight."""

    def __init__(
        self, message: str = "A request is already in progress; please wait."
    ) -> None:
        super().__init__(message)
