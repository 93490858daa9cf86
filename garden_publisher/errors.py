"""Exception hierarchy for Garden Publisher.

Only ConfigError is ever raised to callers of the compiler; the others are
raised by collaborators and caught at the marker or note they concern.
"""


class PublisherError(Exception):
    """Base class for all publisher errors."""


class ConfigError(PublisherError):
    """Settings are invalid. Raised before any compilation starts."""


class NoteNotFoundError(PublisherError):
    """A vault path does not exist."""


class MalformedSourceError(PublisherError):
    """Source text (frontmatter, drawing data) cannot be parsed."""


class QueryEngineError(PublisherError):
    """The external query engine failed to render or evaluate a query."""
