"""Exceptions raised by nstree."""


class NstreeError(Exception):
    """Base class for nstree errors."""


class ProcUnavailableError(NstreeError):
    """The proc filesystem cannot be scanned at all."""


class FilterSpecError(NstreeError, ValueError):
    """A namespace filter could not be parsed."""
