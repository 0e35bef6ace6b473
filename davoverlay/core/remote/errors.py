from __future__ import annotations


class RemoteFsError(Exception):
    default_detail = "Remote filesystem operation failed."
    message_key = "error.remote"

    def __init__(self, detail: str | None = None, *, path: str | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail
        self.path = path


class NotFound(RemoteFsError):
    default_detail = "Path not found."
    message_key = "error.not_found"


class Unavailable(RemoteFsError):
    default_detail = "Remote service rejected the operation."
    message_key = "error.unavailable"


class AuthFailure(RemoteFsError):
    default_detail = "Invalid credentials or server unreachable."
    message_key = "error.auth"


class TransportFailure(RemoteFsError):
    default_detail = "No response from remote service."
    message_key = "error.transport"


class InvalidAddress(RemoteFsError):
    default_detail = "Server URL is not a valid http:// or https:// address."
    message_key = "error.invalid_url"


class UnsupportedOperation(RemoteFsError):
    default_detail = "Operation is not supported for virtual entries."
    message_key = "error.unsupported"


class ListingParseError(ValueError):
    pass
