"""Exception hierarchy shared by every layer of the service.

Routes translate these into HTTP status codes; services decide which of
them abort a chat turn and which merely degrade it.
"""

from __future__ import annotations


class GroundedChatError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(GroundedChatError):
    """Caller input was rejected before any side effect happened."""


class NotFoundError(GroundedChatError):
    """A chat or message does not exist or is not owned by the caller."""


class GatewayError(GroundedChatError):
    """An embedding or generation call failed."""


class EmptyResponseError(GatewayError):
    """The model answered successfully but produced no usable text."""


class PersistenceError(GroundedChatError):
    """A storage call failed."""


class DimensionMismatchError(GroundedChatError, ValueError):
    """Two vectors that must be compared have different lengths."""


class EmptyVectorError(GroundedChatError, ValueError):
    """A vector operation received a zero-length vector."""


class NonFiniteVectorError(GroundedChatError, ValueError):
    """A vector operation met a NaN or infinite component."""
