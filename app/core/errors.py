# app/core/errors.py


class BoloNyayError(Exception):
    """Base class for failures surfaced by the filing pipeline."""

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class PermissionDenied(BoloNyayError):
    """Microphone access was refused by the client device."""


class ConfigurationError(BoloNyayError):
    """Pipeline discovery returned a response without the expected shape."""


class InvalidResponse(BoloNyayError):
    """An external API returned a body that could not be decoded."""


class ApiError(BoloNyayError):
    def __init__(self, code: int, message: str):
        super().__init__(f"API error ({code}): {message}")
        self.code = code
        self.detail = message


class NetworkError(BoloNyayError):
    pass


class NoTranscriptFound(BoloNyayError):
    pass


class LanguageDetectionFailed(BoloNyayError):
    pass


class UserNotFound(BoloNyayError):
    pass


class RecordingInProgress(BoloNyayError):
    pass


class InvalidFilingState(BoloNyayError):
    pass


class PersistenceError(BoloNyayError):
    """The case or session could not be written to the database."""


class ReportStorageError(BoloNyayError):
    """The rendered document could not be written to the report directory."""


class DocumentRenderError(BoloNyayError):
    """The filing document could not be laid out as a PDF."""
