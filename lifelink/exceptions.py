class LifeLinkError(Exception):
    """Base class for errors raised by the matching core."""


class InvalidBloodType(LifeLinkError, ValueError):
    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid blood type: {value!r}")


class StoreUnavailable(LifeLinkError):
    """The donor store could not be read (connection failure or timeout)."""


class CompatibilityTableError(LifeLinkError):
    pass
