"""Errors raised by the Unisave API client."""

from typing import Optional

AUTH_HINT = "Check that your game token and editor key are correctly set up."


class UploaderError(Exception):
    """Base class for failed requests against the Unisave server."""

    def __init__(self, message: str, body: str = "", status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.body = body or ""
        self.status_code = status_code


class AuthorizationError(UploaderError):
    """Server answered 401: game token or editor key invalid or revoked."""

    def __init__(self, body: str = "") -> None:
        super().__init__(
            "Server rejected the request due to authorization (401 Unauthorized). " + AUTH_HINT,
            body=body,
            status_code=401,
        )


class ServerError(UploaderError):
    """Server answered with a status other than 200 or 401."""

    def __init__(self, status_code: int, body: str = "", message: Optional[str] = None) -> None:
        super().__init__(
            message or f"Server responded with non 200 response ({status_code})",
            body=body,
            status_code=status_code,
        )


class InvalidResponseError(ServerError):
    """200 response whose body is not the JSON document the protocol expects."""

    def __init__(self, message: str, body: str = "") -> None:
        super().__init__(200, body=body, message=message)


class TransportError(UploaderError):
    """Connection could not be established or the response could not be read.

    The request may not have reached the server at all.
    """
