"""
Exception hierarchy for the Repo Health API.

AppError subclasses are caller-visible and carry the HTTP status they map
to. NormalizationError subclasses never leave the AI normalizer: they are
absorbed into the fallback payload.
"""


class ConfigurationError(RuntimeError):
    """Required configuration is missing or malformed."""


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    """Bad or missing input."""
    status_code = 400


class InvalidRepoUrl(ValidationError):
    def __init__(self, url: str | None = None):
        super().__init__("Invalid GitHub repository URL. Expected format: https://github.com/owner/repo")
        self.url = url


class UpstreamError(AppError):
    """The GitHub REST API call failed (not found, rate limited, network)."""
    status_code = 404

    def __init__(self, message: str, upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class NotFoundError(AppError):
    status_code = 404


class StorageError(AppError):
    """Persistence failure."""
    status_code = 500


class InvalidTransition(StorageError):
    """An analysis in a terminal state was asked to change state."""


class AnalysisFailed(AppError):
    status_code = 500


# AI normalization failures, never surfaced to callers

class NormalizationError(Exception):
    pass


class NoProviderConfigured(NormalizationError):
    def __init__(self):
        super().__init__("No AI provider configured. Please set GEMINI_API_KEY or GROQ_API_KEY")


class ParseFailure(NormalizationError):
    """No parseable JSON object in the provider response."""


class ValidationFailure(NormalizationError):
    """Parsed JSON is missing required fields or has the wrong shape."""
