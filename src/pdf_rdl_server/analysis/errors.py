"""Exceptions raised by the analysis pipeline."""


class AnalysisError(Exception):
    """Base class for analysis failures."""

    pass


class ExtractionError(AnalysisError):
    """Raised when a document cannot be opened or read.

    Extraction failures are fatal for the document: no partial analysis is
    returned.
    """

    def __init__(self, message: str, file_path: str | None = None):
        super().__init__(message)
        self.file_path = file_path


class PairingError(AnalysisError):
    """Raised when a pairing would link a component twice."""

    pass
