"""Project error hierarchy."""


class CursorGateError(Exception):
    """Base error."""


class SchemaValidationError(CursorGateError):
    """Raised when a chat request does not conform to the wire schema."""


class FrameDecodeError(CursorGateError):
    """Raised when a frame payload is not a valid response message."""


class UpstreamError(CursorGateError):
    """Raised when the upstream call fails before or while streaming."""

    def __init__(self, reason: str, detail: str, status_code: int | None = None) -> None:
        super().__init__(f"{reason}: {detail}")
        self.reason = reason
        self.detail = detail
        self.status_code = status_code
