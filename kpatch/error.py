"""Patch transformer error module."""

from collections.abc import Iterable
from contextlib import contextmanager


class Error(Exception):
    """
    Base class for patch transformer errors.

    Errors are terminal; every error aborts the transformation that raised it.
    """


class ConfigError(Error):
    """Patch configuration is malformed."""


class MissingPatchSourceError(ConfigError):
    """Neither an inline patch nor a patch path was specified."""


class ConflictingPatchSourceError(ConfigError):
    """Both an inline patch and a patch path were specified."""


class PatchTypeError(Error):
    """
    Base class for errors raised when the type of a patch cannot be settled.
    """


class UnrecognizedPatchFormatError(PatchTypeError):
    """Patch is neither a strategic merge patch nor a JSON patch."""


class AmbiguousPatchTypeError(PatchTypeError):
    """Patch is both a strategic merge patch and a JSON patch."""


class TargetError(Error):
    """
    Base class for errors raised when a patch target cannot be resolved.
    """


class MissingTargetError(TargetError):
    """Patch requires a target selector and none was specified."""


class TargetNotFoundError(TargetError):
    """No single resource matches the identity of a strategic merge patch."""


class PatchApplyError(Error):
    """
    Error raised when a JSON patch cannot be applied to a resource.

    The error raised by the patch operation is available through the cause
    attribute, and is also the exception's __cause__.
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class MergeError(Error):
    """Strategic merge patch cannot be merged into a resource."""


class SelectorError(Error):
    """Selector is malformed or cannot be evaluated."""


class LoadError(Error):
    """Patch content cannot be loaded."""


@contextmanager
def wrap_exception(
    *,
    catch: type[BaseException] | Iterable[type[BaseException]] = Exception,
    throw: type[BaseException] = Error,
    message: str | None = None,
):
    """
    Return a context manager that catches exceptions and raises another exception in its
    place, chaining the original exception as its cause.

    Parameters:
    • catch: exception class or classes to catch  [Exception]
    • throw: exception class to raise  [Error]
    • message: message of raised exception  [message of caught exception]

    Exceptions that are already instances of the throw class pass through unchanged.
    """
    catch = tuple(catch) if isinstance(catch, Iterable) else (catch,)
    try:
        yield
    except catch as e:
        if isinstance(e, throw):
            raise
        raise throw(message if message is not None else str(e)) from e
