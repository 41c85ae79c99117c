"""
Core Package

Error taxonomy and logging setup shared across the service.
"""

from .errors import (
    SlackRagError,
    ConfigurationError,
    UpstreamError,
    ProtocolError,
)

__all__ = [
    "SlackRagError",
    "ConfigurationError",
    "UpstreamError",
    "ProtocolError",
]
