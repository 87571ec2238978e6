"""Exceptions raised by the J-REIT query layer."""


class JReitError(Exception):
    """Base class for J-REIT query errors."""
    pass


class InvalidSearchConditionError(JReitError):
    """Raised when a search, sort or lookup request cannot be compiled."""
    pass


class BackendUnavailableError(JReitError):
    """Raised when the J-REIT store fails to answer a query."""
    pass
