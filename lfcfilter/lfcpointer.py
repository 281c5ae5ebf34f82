r"""
``lfcpointer``: Pointer records that stand in for large files
==================================================================

The clean filter replaces the contents of a large file with a short
text record that git stores instead. It looks like this:

    .. code-block:: yaml

        lfc: v1
        sha256: b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9
        size: 11

The first line identifies the record and its format version, so that
arbitrary file contents are never mistaken for a pointer. The ``size``
line is optional. The record always ends with a newline; a record that
doesn't was truncated.

Records are written with plain string formatting, so encoding the same
hash and size always gives the same bytes. They are read back with
:mod:`yaml` using the :class:`yaml.BaseLoader`, which keeps every value
a string (a hash made only of digits would otherwise become an
:class:`int`).
"""

# Third-party
import yaml

# Local imports
from .lfcerror import LFCPointerError, LFCValueError, assert_isinstance
from .lfchash import check_hash, valid8_hash


# First line of every pointer record
POINTER_HEADER = b"lfc: v1\n"
# Largest input considered a pointer
MAX_POINTER_SIZE = 1024


# YAML loader that refuses repeated keys
class _PointerLoader(yaml.BaseLoader):
    def construct_mapping(self, node, deep=False):
        # Check each scalar key against the ones before it
        keys = set()
        pairs = node.value if isinstance(node, yaml.MappingNode) else []
        for key_node, _ in pairs:
            if not isinstance(key_node, yaml.ScalarNode):
                continue
            if key_node.value in keys:
                raise yaml.constructor.ConstructorError(
                    "while constructing a mapping", node.start_mark,
                    f"found duplicate key {key_node.value!r}",
                    key_node.start_mark)
            keys.add(key_node.value)
        return super().construct_mapping(node, deep=deep)


# Create new class
class LFCPointer(object):
    r"""Hash and (optional) size of a large file

    :Call:
        >>> ptr = LFCPointer(sha256, size=None)
    :Inputs:
        *sha256*: :class:`str`
            SHA-256 hex digest of large file contents
        *size*: {``None``} | :class:`int`
            Number of bytes in large file
    :Outputs:
        *ptr*: :class:`LFCPointer`
            Pointer to a store entry
    """
    __slots__ = (
        "sha256",
        "size",
    )

    def __init__(self, sha256: str, size=None):
        # Check values
        valid8_hash(sha256)
        _valid8_size(size)
        # Save
        object.__setattr__(self, "sha256", sha256)
        object.__setattr__(self, "size", size)

    def __setattr__(self, name, value):
        raise AttributeError(
            f"{self.__class__.__name__} attributes are read-only")

    def __eq__(self, other):
        if not isinstance(other, LFCPointer):
            return NotImplemented
        return (self.sha256, self.size) == (other.sha256, other.size)

    def __hash__(self):
        return hash((self.sha256, self.size))

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(sha256={self.sha256!r}, "
            f"size={self.size!r})")

    def encode(self) -> bytes:
        r"""Write pointer record for this pointer

        :Call:
            >>> txt = ptr.encode()
        :Outputs:
            *txt*: :class:`bytes`
                Pointer record
        """
        return encode_pointer(self.sha256, self.size)


def encode_pointer(sha256: str, size=None) -> bytes:
    r"""Create pointer record for a large file

    :Call:
        >>> txt = encode_pointer(sha256, size=None)
    :Inputs:
        *sha256*: :class:`str`
            SHA-256 hex digest of large file contents
        *size*: {``None``} | :class:`int`
            Number of bytes in large file
    :Outputs:
        *txt*: :class:`bytes`
            UTF-8 pointer record, ending with a newline
    """
    # Check inputs
    if not check_hash(sha256):
        raise LFCValueError(f"Can't encode pointer to hash {sha256!r}")
    _valid8_size(size)
    # Build record
    txt = POINTER_HEADER.decode("ascii") + f"sha256: {sha256}\n"
    # Optional size
    if size is not None:
        txt += f"size: {size}\n"
    # Output
    return txt.encode("utf-8")


def decode_pointer(data: bytes) -> LFCPointer:
    r"""Parse a pointer record

    :Call:
        >>> ptr = decode_pointer(data)
    :Inputs:
        *data*: :class:`bytes`
            Contents of a file as stored by git
    :Outputs:
        *ptr*: :class:`LFCPointer`
            Hash and size of large file
    :Raises:
        :class:`LFCPointerError` if *data* is not a well-formed pointer
    """
    # Check type
    assert_isinstance(data, (bytes, bytearray), "pointer record")
    data = bytes(data)
    # Quick checks that don't need parsing
    if len(data) > MAX_POINTER_SIZE:
        raise LFCPointerError(
            f"Input is not an lfc pointer ({len(data)} bytes; a pointer "
            f"is at most {MAX_POINTER_SIZE}); is the file being smudged "
            "without having been cleaned?")
    if not data.startswith(POINTER_HEADER):
        raise LFCPointerError(
            "Input is not an lfc pointer (missing 'lfc: v1' header); "
            "is the file being smudged without having been cleaned?")
    if not data.endswith(b"\n"):
        raise LFCPointerError("Truncated lfc pointer (no final newline)")
    # Decode text
    try:
        txt = data.decode("utf-8")
    except UnicodeDecodeError:
        raise LFCPointerError("lfc pointer is not valid UTF-8") from None
    # Parse w/o converting any values
    try:
        info = yaml.load(txt, Loader=_PointerLoader)
    except yaml.YAMLError as err:
        raise LFCPointerError(f"Can't parse lfc pointer: {err}") from None
    # Must be a flat mapping
    if not isinstance(info, dict):
        raise LFCPointerError("lfc pointer is not a 'key: value' record")
    # Header must be the only version line
    if info.get("lfc") != "v1":
        raise LFCPointerError(
            f"Unsupported lfc pointer version {info.get('lfc')!r}")
    # Get hash
    sha256 = info.get("sha256")
    if sha256 is None:
        raise LFCPointerError("lfc pointer has no 'sha256' line")
    if not check_hash(sha256):
        raise LFCPointerError(f"lfc pointer has invalid hash {sha256!r}")
    # Get size, if any
    rawsize = info.get("size")
    if rawsize is None:
        size = None
    elif isinstance(rawsize, str) and rawsize.isdigit() and rawsize.isascii():
        size = int(rawsize)
    else:
        raise LFCPointerError(
            f"lfc pointer to {sha256} has invalid size {rawsize!r}")
    # Output
    return LFCPointer(sha256, size)


def is_pointer(data: bytes) -> bool:
    r"""Check if some bytes are a well-formed pointer record

    :Call:
        >>> q = is_pointer(data)
    :Inputs:
        *data*: :class:`bytes`
            Contents to check
    :Outputs:
        *q*: ``True`` | ``False``
            Whether :func:`decode_pointer` would succeed
    """
    try:
        decode_pointer(data)
    except LFCPointerError:
        return False
    return True


def _valid8_size(size=None):
    # Allow size=None
    if size is None:
        return
    # Check type; bool is an int but not a size
    if isinstance(size, bool):
        raise LFCValueError(f"Invalid large file size {size!r}")
    assert_isinstance(size, int, "large file size")
    # Check value
    if size < 0:
        raise LFCValueError(f"Invalid large file size {size}")
