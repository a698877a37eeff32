#  -*- coding: utf-8 -*-
"""
Exception classes for the configtree package.

Every configtree error inherits from ``ConfigurationError``. Errors raised
while converting a value carry the key path from the root of the tree to the
failing value; the path is filled in as the error propagates out of nested
aggregates and collections.
"""

from __future__ import annotations

from typing import Any


class ConfigurationError(Exception):
    """Base exception for all configtree errors."""

    def __init__(self, message: str, path: tuple[Any, ...] = ()) -> None:
        super().__init__(message)
        self.message: str = message
        self.path: tuple[Any, ...] = tuple(path)

    def __str__(self) -> str:
        if not self.path:
            return self.message

        location = '.'.join(str(key) for key in self.path)
        return f"{self.message} (at '{location}')"

    def prefixed(self, key: Any) -> ConfigurationError:
        """Prepend ``key`` to the error path and return the error itself."""
        self.path = (key, *self.path)
        return self


class TypeDiscoveryError(ConfigurationError, TypeError):
    """Raised when a configuration type has an unsupported or invalid shape."""


class SerializerResolutionError(ConfigurationError, TypeError):
    """Raised when no serializer can be resolved for a declared type."""


class ShapeMismatchError(ConfigurationError, ValueError):
    """Raised when a tree node does not match the shape its serializer expects."""


class NullPolicyViolation(ConfigurationError, ValueError):
    """Raised when an explicit null targets a slot that cannot hold null."""


__all__ = [
    'ConfigurationError',
    'TypeDiscoveryError',
    'SerializerResolutionError',
    'ShapeMismatchError',
    'NullPolicyViolation',
]
