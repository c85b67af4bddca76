class BencodeError(ValueError):
    """Base class for every failure raised by the codec."""


class BencodeDecodeError(BencodeError):
    """
    A decode call could not produce a value.
    'context' names the sub-decoder that gave up, 'position' is the
    offset into the buffer where it happened.
    """
    def __init__(self, context, detail, position=None):
        self.context = context
        self.detail = detail
        self.position = position
        if position is None:
            message = f"{context}: {detail}"
        else:
            message = f"{context}: {detail} at {position}"
        super().__init__(message)


class EmptyInputError(BencodeDecodeError):
    pass


class OffsetOutOfRangeError(BencodeDecodeError):
    pass


class UnexpectedCharacterError(BencodeDecodeError):
    pass


class MissingDelimiterError(BencodeDecodeError):
    pass


class InvalidIntegerError(BencodeDecodeError):
    pass


class InvalidKeyTypeError(BencodeDecodeError):
    pass


class TruncatedContentError(BencodeDecodeError):
    pass


class NestingTooDeepError(BencodeDecodeError):
    pass


class EncodeError(BencodeError):
    """Raised when there is nothing to encode."""


class IntegerTooLongError(BencodeError):
    """Raised when an integer has more decimal digits than the codec handles."""
