"""Exception taxonomy shared by the core and the web layer."""

from __future__ import annotations


class SorterError(Exception):
    """Base class for every error raised by this application."""


class ValidationError(SorterError):
    """Missing or invalid user input (e.g. an empty client ID)."""


class CryptoUnavailableError(SorterError):
    """Secure random source or SHA-256 digest is not available."""


class AuthError(SorterError):
    """The token endpoint rejected the exchange, or login was aborted."""

    def __init__(self, error: str, description: str = ""):
        self.error = error
        self.description = description
        super().__init__(f"{error}: {description}" if description else error)


class ApiError(SorterError):
    """A Spotify Web API call returned a non-2xx response.

    ``status`` is ``None`` when the request never got a response
    (connection refused, timeout, …).
    """

    def __init__(self, status: int | None, status_text: str, url: str = ""):
        self.status = status
        self.status_text = status_text
        self.url = url
        super().__init__(f"Spotify API {status}: {status_text}")


class PaginationLoopError(ApiError):
    """A list endpoint handed back a ``next`` cursor that was already visited."""

    def __init__(self, url: str):
        super().__init__(502, f"Pagination cursor repeated: {url}", url)


class PartialPublishError(SorterError):
    """Playlist was created but not every track batch could be appended."""

    def __init__(self, playlist_id: str, appended_batches: int, total_batches: int):
        self.playlist_id = playlist_id
        self.appended_batches = appended_batches
        self.total_batches = total_batches
        super().__init__(
            f"Playlist {playlist_id} created, "
            f"{appended_batches} of {total_batches} track batches appended"
        )
