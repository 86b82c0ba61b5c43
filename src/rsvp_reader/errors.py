"""Failure kinds raised by the fetch pipeline.

Each class carries a user-safe message, an optional hint and the HTTP status
the API layer answers with. Library error text never goes into ``message``.
"""

PASTE_HINT = "You can copy the text from the page and paste it directly."


class FetchError(Exception):
    """Base class for every expected fetch pipeline failure."""

    status_code = 500
    default_message = "Something went wrong while loading the page."

    def __init__(self, message: str | None = None, hint: str | None = None) -> None:
        self.message = message or self.default_message
        self.hint = hint
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body: dict = {"error": self.message, "success": False}
        if self.hint:
            body["hint"] = self.hint
        return body


class InvalidInput(FetchError):
    status_code = 400
    default_message = "A valid URL is required."


class PolicyRejected(FetchError):
    status_code = 400
    default_message = "This URL is not allowed."


class RedirectBlocked(PolicyRejected):
    default_message = "The page redirected to an address that is not allowed."


class RateLimited(FetchError):
    status_code = 429
    default_message = "Too many requests. Please wait before loading another URL."

    def __init__(self, retry_after: int, limit: int) -> None:
        super().__init__(hint=f"Try again in {retry_after} seconds.")
        self.retry_after = retry_after
        self.limit = limit


class FetchTimeout(FetchError):
    status_code = 408

    def __init__(self, via_fallback: bool = False) -> None:
        if via_fallback:
            message = (
                "The site could not be reached directly and the backup "
                "fetch timed out."
            )
        else:
            message = "The site took too long to respond."
        super().__init__(message, hint=PASTE_HINT)
        self.via_fallback = via_fallback


class TooLarge(FetchError):
    status_code = 413
    default_message = "The page is too large to load."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message, hint=PASTE_HINT)


class Unextractable(FetchError):
    status_code = 422
    default_message = "No readable text was found on this page."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message, hint=PASTE_HINT)


class NetworkError(FetchError):
    status_code = 502
    default_message = "Could not connect to the site."


class InternalError(FetchError):
    status_code = 500
    default_message = "Unexpected error while loading the page."
