class BridgeError(Exception):

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return f"{type(self).__name__}: {self.message}"


class FetchError(BridgeError):
    """The status document could not be fetched (network, timeout, non-2xx)."""

    kind = "fetch"


class DeserializeError(BridgeError):
    """The fetched body is not a status document of the expected shape."""

    kind = "deserialize"


class MalformedFieldError(BridgeError):
    """A single field's text does not match its expected encoding."""

    def __init__(self, field: str, value: str, reason: str):
        super().__init__(f"malformed {field} value {value!r}: {reason}")
        self.field = field
        self.value = value
        self.reason = reason
