"""Custom exception hierarchy for the Gold Estimation App.

Pricing functions and the totals aggregator never raise for documented
inputs; failures surface at the persistence boundary and in the entry layer.
"""


class GoldEstimateError(Exception):
    """Base exception for all Gold Estimation App errors."""

    pass


# Database-related exceptions
class DatabaseError(GoldEstimateError):
    """Base exception for database-related errors."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when database connection fails."""

    pass


class DatabaseMigrationError(DatabaseError):
    """Raised when database migration fails."""

    pass


# Security-related exceptions
class SecurityError(GoldEstimateError):
    """Base exception for security-related errors."""

    pass


class BackupError(SecurityError):
    """Raised when a backup cannot be written, decrypted or restored."""

    pass


# Validation-related exceptions
class ValidationError(GoldEstimateError):
    """Base exception for validation errors."""

    pass


class ItemValidationError(ValidationError):
    """Raised when item entry data is incomplete or non-numeric."""

    pass


# Configuration exceptions
class ConfigurationError(GoldEstimateError):
    """Base exception for configuration-related errors."""

    pass


class SettingsError(ConfigurationError):
    """Raised when settings operation fails."""

    pass
