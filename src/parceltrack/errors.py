"""Error taxonomy shared by every carrier adapter."""


class TrackError(Exception):
    """Base class for the errors allowed to cross the carrier boundary."""

    kind: str = "TrackError"
    code: str = "INTERNAL"
    default_message: str = "Tracking failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequestError(TrackError):
    """The input itself is invalid (malformed tracking number, bad cursor)."""

    kind = "BadRequestError"
    code = "BAD_REQUEST"
    default_message = "Invalid request"


class NotFoundError(TrackError):
    """The upstream affirmatively reports no such shipment."""

    kind = "NotFoundError"
    code = "NOT_FOUND"
    default_message = "Not found"


class InternalError(TrackError):
    """Anything unexpected. Never carries upstream detail."""

    kind = "InternalError"
    code = "INTERNAL"
    default_message = "Please try again in a few minutes."


class RegistryError(Exception):
    """The carrier registry could not be bootstrapped."""


class RegistryConfigError(RegistryError):
    """The carrier registry configuration is missing fields or malformed."""
