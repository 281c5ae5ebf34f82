r"""
``lfchash``: SHA-256 content hashes for large-file control
==================================================================

Every large file is identified by the SHA-256 digest of its bytes,
written as a lowercase hex string of 64 characters. Two files with the
same contents always have the same hash, which is what lets the store
keep only one copy of each.
"""

# Standard library
import hashlib
import re

# Local imports
from .lfcerror import LFCPointerError, assert_isinstance


# Number of hex characters in a SHA-256 digest
HASH_LEN = 64
# Number of bytes to read at a time while hashing files/streams
CHUNK_SIZE = 1024 * 1024

# Regular expression for a valid hex digest
REGEX_SHA256 = re.compile(f"[0-9a-f]{{{HASH_LEN}}}")


def genr8_hash(data: bytes) -> str:
    r"""Calculate SHA-256 hex digest of some bytes

    :Call:
        >>> hexhash = genr8_hash(data)
    :Inputs:
        *data*: :class:`bytes`
            Contents to hash
    :Outputs:
        *hexhash*: :class:`str`
            SHA-256 hex digest of *data*
    """
    # Check type
    assert_isinstance(data, (bytes, bytearray, memoryview), "file contents")
    # Calculate hash
    return hashlib.sha256(data).hexdigest()


def genr8_file_hash(fname: str) -> str:
    r"""Calculate SHA-256 hex digest of a file, reading in chunks

    :Call:
        >>> hexhash = genr8_file_hash(fname)
    :Inputs:
        *fname*: :class:`str`
            Name of file to hash
    :Outputs:
        *hexhash*: :class:`str`
            SHA-256 hex digest of file's bytes
    """
    # Initialize hasher
    obj = hashlib.sha256()
    # Read the file one chunk at a time
    with open(fname, "rb") as fp:
        for chunk in iter(lambda: fp.read(CHUNK_SIZE), b""):
            obj.update(chunk)
    # Get the SHA-256 hash out
    return obj.hexdigest()


def check_hash(hexhash) -> bool:
    r"""Check if *hexhash* is a well-formed SHA-256 hex digest

    :Call:
        >>> q = check_hash(hexhash)
    :Inputs:
        *hexhash*: :class:`object`
            Candidate hash
    :Outputs:
        *q*: ``True`` | ``False``
            Whether *hexhash* is 64 lowercase hex characters
    """
    return isinstance(hexhash, str) and (
        REGEX_SHA256.fullmatch(hexhash) is not None)


def valid8_hash(hexhash, desc="content hash"):
    r"""Raise an exception unless *hexhash* is a valid hex digest

    :Call:
        >>> valid8_hash(hexhash, desc="content hash")
    :Inputs:
        *hexhash*: :class:`str`
            Candidate hash
        *desc*: {``"content hash"``} | :class:`str`
            Description of *hexhash* for error message
    :Raises:
        :class:`LFCPointerError`
    """
    # Check format
    if not check_hash(hexhash):
        raise LFCPointerError(
            f"Invalid {desc} {hexhash!r}; expected {HASH_LEN} "
            "lowercase hex characters")


def trunc8_hash(hexhash: str, n: int = 8) -> str:
    # Short form of a hash for status lines
    return hexhash[:n]
