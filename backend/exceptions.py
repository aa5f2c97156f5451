"""
Custom exception classes for third-party providers and maintenance scripts.

These never reach clients directly: services catch them and either log and
return False (email, WhatsApp) or translate them into domain errors.
"""


class ProviderNotConfiguredError(Exception):
    """Raised when a provider's credentials are missing from settings."""
    def __init__(self, provider: str, missing: list[str]):
        super().__init__(f"{provider} is not configured (missing: {', '.join(missing)})")
        self.provider = provider
        self.missing = missing


class MediaUploadError(Exception):
    """Raised when a media file cannot be stored."""
    pass


class MigrationError(Exception):
    """Raised when a SQL migration statement fails for a reason other than 'already exists'."""
    def __init__(self, filename: str, statement: str, cause: Exception):
        preview = " ".join(statement.split())[:120]
        super().__init__(f"Migration {filename} failed at: {preview} ({cause})")
        self.filename = filename
        self.statement = statement
        self.cause = cause
