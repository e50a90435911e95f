"""Custom exceptions for mailsearch."""


class MailSearchError(Exception):
    """Base exception for all mailsearch errors."""


class ConfigurationError(MailSearchError):
    """Exception raised for invalid or incompatible search options."""


class QuerySyntaxError(MailSearchError):
    """Exception raised when a query string cannot be compiled."""


class EngineUnavailableError(MailSearchError):
    """Exception raised when the index cannot produce a requested sequence."""


class ResourceExhaustedError(MailSearchError):
    """Exception raised when building an output string fails."""


class IndexingError(MailSearchError):
    """Exception raised when a mail file cannot be added to the index."""
