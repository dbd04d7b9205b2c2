"""
Sales Orders: error types

"Not found" is not an error here: single-entity reads return None.
Errors raised by the database driver are never wrapped; they reach the
caller unchanged after the surrounding transaction has been rolled back.
"""


class SalesOrdersError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(SalesOrdersError):
    """Process configuration cannot select or reach a backend."""


class ConnectionFailure(SalesOrdersError):
    """The selected backend is unreachable or the handle is not connected."""


class ValidationError(SalesOrdersError, ValueError):
    """Caller input was rejected before any statement was issued."""


class IntegrityFailure(SalesOrdersError):
    """A write could not keep an order and its details consistent."""


class Unimplemented(SalesOrdersError, NotImplementedError):
    """The requested operation is not supported."""
