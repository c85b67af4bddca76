import random
import logging

logger = logging.getLogger("FluxBencode")

DIGITS = b"0123456789"


def configure_logging(level=logging.INFO):
    """Configure logging to look professional. Called by the front end only."""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )


def _as_byte_set(chars):
    if isinstance(chars, str):
        chars = chars.encode('latin-1')
    return frozenset(chars)


def find_first_of(data: bytes, chars, start: int = 0) -> int:
    """Index of the first byte at or after 'start' that is in 'chars', else -1."""
    wanted = _as_byte_set(chars)
    for index in range(max(start, 0), len(data)):
        if data[index] in wanted:
            return index
    return -1


def find_first_not_of(data: bytes, chars, start: int = 0) -> int:
    """Index of the first byte at or after 'start' that is NOT in 'chars', else -1."""
    unwanted = _as_byte_set(chars)
    for index in range(max(start, 0), len(data)):
        if data[index] not in unwanted:
            return index
    return -1


def key_order(key) -> bytes:
    """
    Sort key for dictionary keys.
    Bencode orders keys as raw strings, so this is plain byte-wise order
    ('100' < '90' < 'ABC' < 'bar').
    """
    return bytes(key)


def compare_keys(a, b) -> int:
    """Three-way byte-wise comparison: -1, 0 or 1."""
    a, b = key_order(a), key_order(b)
    return (a > b) - (a < b)


def rand_int(lo: int, hi: int) -> int:
    """Random integer in [lo, hi)."""
    return random.randrange(lo, hi)


def rand_int_closed(lo: int, hi: int) -> int:
    """Random integer in [lo, hi]."""
    return rand_int(lo, hi + 1)


def clamp_int(value: int, lo: int, hi: int) -> int:
    return min(max(value, lo), hi)


def read_file_bytes(path) -> bytes:
    with open(path, 'rb') as f:
        return f.read()
