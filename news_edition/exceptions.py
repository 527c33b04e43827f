"""Exception types raised by the edition pipeline."""


class NewsEditionError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(NewsEditionError):
    """Raised when the configuration or template file is missing or invalid."""


class IndexFetchError(NewsEditionError):
    """Raised when a source's index page cannot be fetched or parsed."""


class BackendUnavailableError(NewsEditionError):
    """Raised when the summarization backend cannot be reached or returns nothing."""


class SummaryParseError(NewsEditionError):
    """Raised when a backend response does not match the article summary schema."""


class PersistenceError(NewsEditionError):
    """Raised when the JSON feed cannot be written."""


class DocumentMergeError(NewsEditionError):
    """Raised when one or more document-tree files could not be updated."""

    def __init__(self, failed):
        self.failed = list(failed)
        super().__init__("Failed to update documents: " + ", ".join(str(p) for p in self.failed))
