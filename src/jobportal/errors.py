from __future__ import annotations


class PortalError(Exception):
    status_code = 500


class UnsupportedFileType(PortalError):
    status_code = 400


class ExtractionFailed(PortalError):
    status_code = 500


class AIServiceFailed(PortalError):
    status_code = 502


class ReviewGenerationFailed(AIServiceFailed):
    pass


class JobLookupFailed(PortalError):
    status_code = 404


class ApplicationNotFound(PortalError):
    status_code = 404


class InvalidRequest(PortalError):
    status_code = 400


class ConfigurationError(PortalError):
    """Raised at startup when a required credential is absent."""


class MalformedApplication(PortalError):
    """A stored application document does not match the Application shape."""
