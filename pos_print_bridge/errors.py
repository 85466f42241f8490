"""
Errors
======

Exception taxonomy shared by discovery, rendering and dispatch.
Each error carries the HTTP status the API answers with.
"""

from typing import Optional


class PrintBridgeError(Exception):
    """Base class for bridge errors."""

    http_status = 500

    def __init__(self, message: str = '', *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class DiscoveryMechanismFailure(PrintBridgeError):
    """One discovery mechanism failed; the cycle continues without it."""

    def __init__(self, mechanism: str, message: str = '', **kwargs):
        super().__init__(message or f'{mechanism} discovery failed', **kwargs)
        self.mechanism = mechanism


class ConfigError(PrintBridgeError):
    """A printer record lacks the fields its transport needs."""

    http_status = 400


class ConnectionFailure(PrintBridgeError):
    """Transport unreachable, refused or timed out."""

    http_status = 502


class TransportError(PrintBridgeError):
    """Transport failed mid-job."""

    http_status = 502


class TemplateError(PrintBridgeError):
    """Template missing, raised, or produced a malformed sequence."""

    http_status = 500


class PrinterNotFound(PrintBridgeError):
    http_status = 404


class RenderError(PrintBridgeError):
    """A command entry could not be materialized by a byte renderer."""

    http_status = 500


class CommandParseError(PrintBridgeError, ValueError):
    """A wire command entry is malformed."""

    http_status = 400

    def __init__(self, message: str, index: Optional[int] = None, **kwargs):
        if index is not None:
            message = f'Command #{index}: {message}'
        super().__init__(message, **kwargs)
        self.index = index
