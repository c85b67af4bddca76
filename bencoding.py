import re

from atoms import (
    MAX_INTEGER_DIGITS,
    TEXT_ENCODING,
    AtomDictionary,
    AtomInteger,
    AtomKind,
    AtomList,
    AtomString,
    to_atom,
)
from errors import (
    BencodeDecodeError,
    EmptyInputError,
    EncodeError,
    InvalidIntegerError,
    InvalidKeyTypeError,
    MissingDelimiterError,
    NestingTooDeepError,
    OffsetOutOfRangeError,
    TruncatedContentError,
    UnexpectedCharacterError,
)
from utils import DIGITS, find_first_not_of, logger, read_file_bytes

# Deepest list/dict nesting the decoder will follow before giving up
MAX_DEPTH = 200

_INTEGER = re.compile(rb'0|-?[1-9][0-9]*')
_LENGTH = re.compile(rb'0|[1-9][0-9]*')


def _as_buffer(data, context):
    if data is None:
        raise EmptyInputError(context, "null input")
    if isinstance(data, str):
        try:
            return data.encode(TEXT_ENCODING)
        except UnicodeEncodeError as exc:
            raise UnexpectedCharacterError(
                context, f"character {data[exc.start]!r} is not single-byte text",
                exc.start) from exc
    if isinstance(data, (bytearray, memoryview)):
        return bytes(data)
    if not isinstance(data, bytes):
        raise TypeError(f"Cannot decode type: {type(data).__name__}")
    return data


class Decoder:
    """
    Decodes Bencoded data (i, l, d, digits) into atoms.
    Uses a recursive descent parser with one cursor over the whole buffer;
    nothing is re-scanned and nothing is read past what a value needs.

    A Decoder is single use: after a failure its cursor is meaningless.
    """
    def __init__(self, data, start: int = 0, max_depth: int = MAX_DEPTH):
        self._data = _as_buffer(data, "decode")
        if isinstance(start, bool) or not isinstance(start, int):
            raise TypeError(f"start offset must be an int, not {type(start).__name__}")
        self._start = start
        self._index = start
        self._depth = 0
        self.max_depth = max_depth

    @property
    def position(self) -> int:
        return self._index

    @property
    def consumed(self) -> int:
        """Bytes used so far, counted from the start offset."""
        return self._index - self._start

    def decode(self):
        """Main entry point for decoding. Returns the atom at the cursor."""
        self._check_args("decode")
        return self._decode_next()

    def decode_int(self) -> AtomInteger:
        self._check_args("decode_int")
        self._expect(b'i', "decode_int")
        return self._decode_int()

    def decode_str(self) -> AtomString:
        self._check_args("decode_str")
        if not self._lead().isdigit():
            raise UnexpectedCharacterError(
                "decode_str", f"expected a digit, found {self._lead()!r}", self._index)
        return self._decode_string()

    def decode_list(self) -> AtomList:
        self._check_args("decode_list")
        self._expect(b'l', "decode_list")
        return self._nested(self._decode_list)

    def decode_dict(self) -> AtomDictionary:
        self._check_args("decode_dict")
        self._expect(b'd', "decode_dict")
        return self._nested(self._decode_dict)

    def _check_args(self, context):
        size = len(self._data)
        if size == 0:
            raise EmptyInputError(context, "empty input")
        if self._index < 0 or self._index > size:
            raise OffsetOutOfRangeError(
                context, f"offset {self._index} outside buffer of {size} bytes")
        if self._index == size:
            raise EmptyInputError(context, "nothing left to decode", self._index)

    def _lead(self) -> bytes:
        return self._data[self._index:self._index + 1]

    def _expect(self, lead, context):
        if self._lead() != lead:
            raise UnexpectedCharacterError(
                context, f"expected {lead!r}, found {self._lead()!r}", self._index)

    def _has_more(self) -> bool:
        return self._index < len(self._data) and self._data[self._index] != ord('e')

    def _finish(self, context, start):
        if self._index >= len(self._data):
            raise MissingDelimiterError(context, "did not find 'e'", start)
        self._index += 1  # Skip 'e'

    def _nested(self, production):
        self._depth += 1
        try:
            if self._depth > self.max_depth:
                raise NestingTooDeepError(
                    "decode", f"nesting deeper than {self.max_depth}", self._index)
            return production()
        finally:
            self._depth -= 1

    def _decode_next(self):
        lead = self._lead()
        if lead == b'i':
            return self._decode_int()
        elif lead == b'l':
            return self._nested(self._decode_list)
        elif lead == b'd':
            return self._nested(self._decode_dict)
        elif lead.isdigit():
            return self._decode_string()
        elif not lead:
            raise TruncatedContentError("decode", "unexpected end of input", self._index)
        raise UnexpectedCharacterError("decode", f"unexpected character {lead!r}", self._index)

    def _decode_int(self):
        start = self._index
        end = self._data.find(b'e', start + 1)
        if end == -1:
            raise MissingDelimiterError("decode_int", "did not find 'e'", start)

        body = self._data[start + 1:end]
        if body == b'-0':
            raise InvalidIntegerError("decode_int", "negative zero is not allowed", start)
        if not _INTEGER.fullmatch(body):
            raise InvalidIntegerError("decode_int", f"invalid integer {body!r}", start)
        if len(body.lstrip(b'-')) > MAX_INTEGER_DIGITS:
            raise InvalidIntegerError(
                "decode_int", f"more than {MAX_INTEGER_DIGITS} digits", start)
        number = int(body)

        self._index = end + 1  # Skip 'e'
        return AtomInteger(number)

    def _decode_string(self):
        start = self._index
        colon = find_first_not_of(self._data, DIGITS, start)
        if colon == -1 or self._data[colon] != ord(':'):
            raise MissingDelimiterError("decode_str", "did not find ':'", start)

        length_field = self._data[start:colon]
        if not _LENGTH.fullmatch(length_field):
            raise InvalidIntegerError("decode_str", f"invalid length {length_field!r}", start)
        try:
            length = int(length_field)
        except ValueError as exc:
            raise InvalidIntegerError("decode_str", str(exc), start) from exc

        begin = colon + 1
        available = len(self._data) - begin
        if length > available:
            raise TruncatedContentError(
                "decode_str", f"declared {length} bytes but only {available} remain", begin)

        self._index = begin + length
        return AtomString(self._data[begin:self._index])

    def _decode_list(self):
        start = self._index
        self._index += 1  # Skip 'l'
        result = AtomList()
        while self._has_more():
            result.append(self._decode_next())
        self._finish("decode_list", start)
        return result

    def _decode_dict(self):
        start = self._index
        self._index += 1  # Skip 'd'
        result = AtomDictionary()
        while self._has_more():
            key_at = self._index
            key = self._decode_next()
            if key.kind is not AtomKind.STRING:
                raise InvalidKeyTypeError(
                    "decode_dict", f"keys must be strings, found {key.kind.value}", key_at)
            # Input order is not checked; a repeated key keeps the last value
            result[key] = self._decode_next()
        self._finish("decode_dict", start)
        return result


def decode(data, start: int = 0, max_depth: int = MAX_DEPTH):
    """
    Decodes the value at 'start'.
    Returns (atom, bytes consumed); raises a BencodeDecodeError on malformed input.
    Trailing bytes after the value are left for the caller to deal with.
    """
    decoder = Decoder(data, start, max_depth)
    atom = decoder.decode()
    return atom, decoder.consumed


def try_decode(data, start: int = 0, max_depth: int = MAX_DEPTH):
    """Like decode() but logs the failure and returns None instead of raising."""
    try:
        atom, _ = decode(data, start, max_depth)
    except BencodeDecodeError as e:
        logger.warning(f"{e}, halting decode")
        return None
    return atom


def decode_file(path, max_depth: int = MAX_DEPTH):
    data = read_file_bytes(path)
    logger.debug(f"Read {len(data)} bytes from {path}")
    atom, _ = decode(data, 0, max_depth)
    return atom


class Encoder:
    """Encodes atoms (or plain Python values) back into canonical Bencoded bytes."""
    @staticmethod
    def encode(value) -> bytes:
        if value is None:
            raise EncodeError("encode: nothing to encode")
        out = bytearray()
        Encoder._write(to_atom(value), out)
        return bytes(out)

    @staticmethod
    def encode_to_str(value) -> str:
        """The encoding as single-byte text."""
        return Encoder.encode(value).decode(TEXT_ENCODING)

    @staticmethod
    def _write(atom, out: bytearray):
        kind = atom.kind
        if kind is AtomKind.INTEGER:
            out += f"i{atom.value}e".encode()
        elif kind is AtomKind.STRING:
            out += f"{len(atom)}:".encode()
            out += atom.value
        elif kind is AtomKind.LIST:
            out += b'l'
            for child in atom:
                Encoder._write(child, out)
            out += b'e'
        elif kind is AtomKind.DICTIONARY:
            out += b'd'
            # The dictionary hands its entries back already sorted
            for key, child in atom.entries():
                Encoder._write(key, out)
                Encoder._write(child, out)
            out += b'e'
        else:
            raise TypeError(f"Cannot encode type: {type(atom).__name__}")


def encode(value) -> bytes:
    return Encoder.encode(value)
