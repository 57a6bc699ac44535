"""Error taxonomy shared by the catalog engine and its collaborators."""

from __future__ import annotations

from typing import Optional


class GvcError(Exception):
    """Base class for every error raised by gvc."""


class ValidationError(GvcError):
    """Missing catalog, invalid project layout or unusable configuration."""


class ParseError(GvcError):
    """A catalog entry has a shape that cannot be interpreted."""

    def __init__(self, message: str, alias: Optional[str] = None):
        super().__init__(message)
        self.alias = alias


class ResolutionError(GvcError):
    """Per-entry failure while resolving newer versions."""


class NetworkError(ResolutionError):
    """A repository lookup failed (transport error, timeout, bad payload)."""


class UnresolvableVersionRef(ResolutionError):
    """An entry references a [versions] alias that does not exist."""

    def __init__(self, alias: str, ref: str):
        super().__init__(f"'{alias}' references missing version alias '{ref}'")
        self.alias = alias
        self.ref = ref


class ConflictError(GvcError):
    """An add operation collides with an existing catalog entry."""


class DuplicateAlias(ConflictError):
    """The requested alias already exists in the target table."""

    def __init__(self, table: str, alias: str):
        super().__init__(f"Alias '{alias}' already exists in [{table}]")
        self.table = table
        self.alias = alias


class DuplicateCoordinate(ConflictError):
    """The coordinate is already declared under another alias."""

    def __init__(self, table: str, coordinate: str, existing_alias: str):
        super().__init__(
            f"'{coordinate}' already exists in [{table}] as '{existing_alias}'"
        )
        self.table = table
        self.coordinate = coordinate
        self.existing_alias = existing_alias


class CancelledByUser(GvcError):
    """The user cancelled an interactive run; nothing may be written."""

    def __init__(self, message: str = "Operation cancelled by user"):
        super().__init__(message)


class VersionControlError(GvcError):
    """A git invocation failed or was refused."""
