"""Errors raised by the store client, the move saga and the session check.

Every error carries the HTTP status it is reported with; the api turns them into
a ``{"error": message, **details}`` body.
"""


class ImgbedError(Exception):
    status_code = 500

    def details(self) -> dict:
        return {}


class UpstreamUnavailable(ImgbedError):
    """A read call to the repository failed or returned a non-success status"""


class UpstreamWriteRejected(ImgbedError):
    """A write or delete call to the repository failed or returned a non-success status"""


class InvalidDestination(ImgbedError):
    """The destination of a move is empty or equal to its source"""


class ProxyTransportError(ImgbedError):
    """The raw content host could not be reached"""

    status_code = 502


class Unauthorized(ImgbedError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class MoveFailed(ImgbedError):
    """
    A move stopped at one of its steps.

    ``state`` is the last state the move reached: ``pending-write`` means the repository is
    unchanged, ``written`` means the destination exists but the source was not removed.
    """

    state = "pending-write"

    def __init__(self, message: str, source_path: str, destination_path: str):
        super().__init__(message)
        self.source_path = source_path
        self.destination_path = destination_path

    def details(self) -> dict:
        return dict(state=self.state, source_path=self.source_path, destination_path=self.destination_path)


class SourceFetchFailed(MoveFailed):
    pass


class DestinationWriteFailed(MoveFailed):
    pass


class SourceDeleteFailed(MoveFailed):
    state = "written"


class WriteResultUnreadable(ImgbedError):
    """A write call succeeded, but its response could not be read"""
