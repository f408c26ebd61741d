"""Exception hierarchy shared by the build and publish pipeline."""

from __future__ import annotations


class DocweaveError(RuntimeError):
    """Base class for errors raised by docweave."""


class ContentConflict(DocweaveError):
    """Raised when promoting an index page would discard existing content."""


class FileSystemError(DocweaveError):
    """Raised when a local read, write, or directory creation fails."""


class ManifestError(DocweaveError):
    """Raised when manifest data cannot be parsed or validated."""


class ManifestNotFound(ManifestError):
    """Raised when a module has no previously published manifest."""


class ManifestFetchError(ManifestError):
    """Raised when a remote manifest cannot be retrieved for any other reason."""


class RemoteDeleteError(DocweaveError):
    """Raised (and usually logged) when removing remote objects fails."""


class RemoteUploadError(DocweaveError):
    """Raised (and usually logged) when uploading a local file fails."""
