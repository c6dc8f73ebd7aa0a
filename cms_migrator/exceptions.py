"""Custom exceptions for the CMS migrator."""


class MigrationError(Exception):
    """Base exception for the CMS migrator."""


class ConfigError(MigrationError):
    """Raised when configuration or credentials are missing or invalid."""


class PreFlightCheckError(ConfigError):
    """Raised when the destination store cannot be reached or used."""


class IngestError(MigrationError):
    """Raised when a WordPress export cannot be read or parsed."""


class StoreError(MigrationError):
    """Raised when a record store call fails."""


class RenderError(MigrationError):
    """Raised when a headless browser render fails."""


class LLMError(MigrationError):
    """Raised when an LLM API call fails."""


class AssetError(MigrationError):
    """Raised when an asset cannot be downloaded or uploaded."""
