class SourceResolverError(Exception):
    """Base class for every error raised inside source-resolver."""


class LookupFailure(SourceResolverError):
    """A read against the association store failed (transport, status or envelope).

    Never escapes ``source_resolver.core``: lookups turn it into ``None`` or an
    empty result.
    """


class ValidationFailure(SourceResolverError):
    """The caller supplied input the subsystem cannot act on."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors if errors is not None else [message]


class AssociationNotFound(ValidationFailure):
    """No association with the given id exists for the project."""


class MutationFailure(SourceResolverError):
    """The store was unreachable or rejected an upload, activation or delete."""
