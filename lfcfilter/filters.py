r"""
``filters``: The ``clean`` and ``smudge`` filters for git
==================================================================

Git runs a filter's ``clean`` command when a file goes from the working
tree into the index and its ``smudge`` command on the way back. Both
read the whole file on STDIN and write the replacement on STDOUT.

    * :func:`lfc_clean`: save contents in the store, write a pointer
    * :func:`lfc_smudge`: read a pointer, write the stored contents

Both functions take the store and the two streams as arguments so they
can run on any binary file-like objects, not just the process's own.
"""

# Standard library
import sys

# Local imports
from .lfcerror import LFCIOError, LFCPointerError
from .lfchash import CHUNK_SIZE
from .lfcpointer import MAX_POINTER_SIZE, LFCPointer, decode_pointer


def lfc_clean(store, istream=None, ostream=None) -> LFCPointer:
    r"""Store a large file and write its pointer record

    :Call:
        >>> ptr = lfc_clean(store, istream=None, ostream=None)
    :Inputs:
        *store*: :class:`LFCStore`
            Interface to local large file store
        *istream*: {``None``} | :class:`io.BufferedReader`
            Binary input, default ``sys.stdin.buffer``
        *ostream*: {``None``} | :class:`io.BufferedWriter`
            Binary output, default ``sys.stdout.buffer``
    :Outputs:
        *ptr*: :class:`LFCPointer`
            Hash and size of the stored contents
    :Raises:
        :class:`LFCIOError` if the input can't be read, the entry can't
        be written, or the pointer can't be written
    """
    # Default streams
    istream = sys.stdin.buffer if istream is None else istream
    ostream = sys.stdout.buffer if ostream is None else ostream
    # Store all of the input
    fhash, size = store.put_file(istream)
    # Create pointer
    ptr = LFCPointer(fhash, size)
    # Write it
    _write(ostream, ptr.encode(), ptr)
    # Output
    return ptr


def lfc_smudge(store, istream=None, ostream=None) -> LFCPointer:
    r"""Read a pointer record and write the large file it points to

    :Call:
        >>> ptr = lfc_smudge(store, istream=None, ostream=None)
    :Inputs:
        *store*: :class:`LFCStore`
            Interface to local large file store
        *istream*: {``None``} | :class:`io.BufferedReader`
            Binary input, default ``sys.stdin.buffer``
        *ostream*: {``None``} | :class:`io.BufferedWriter`
            Binary output, default ``sys.stdout.buffer``
    :Outputs:
        *ptr*: :class:`LFCPointer`
            Pointer that was read from *istream*
    :Raises:
        * :class:`LFCPointerError` if the input is not a pointer or its
          size disagrees with the store
        * :class:`LFCNotFoundError` if the store has no such entry
        * :class:`LFCIOError` if reading or writing fails
    """
    # Default streams
    istream = sys.stdin.buffer if istream is None else istream
    ostream = sys.stdout.buffer if ostream is None else ostream
    # Read all of the input
    data = _read_all(istream)
    # Parse it
    ptr = decode_pointer(data)
    # Compare size before writing anything
    if ptr.size is not None:
        size = store.get_size(ptr.sha256)
        if size != ptr.size:
            raise LFCPointerError(
                f"lfc pointer to {ptr.sha256} says {ptr.size} bytes, but "
                f"the store entry has {size}")
    # Copy entry to output
    with store.open(ptr.sha256) as fp:
        for chunk in iter(lambda: _read_entry(fp, ptr), b""):
            _write(ostream, chunk, ptr, "contents of")
    # Output
    return ptr


def _read_entry(fp, ptr: LFCPointer) -> bytes:
    # Read next chunk of a store entry
    try:
        return fp.read(CHUNK_SIZE)
    except OSError as err:
        raise LFCIOError(
            f"Can't read store entry {ptr.sha256}: {err}") from err


def _read_all(istream) -> bytes:
    # Read whole input, but only keep enough to parse a pointer
    chunks = []
    nbytes = 0
    try:
        for chunk in iter(lambda: istream.read(CHUNK_SIZE), b""):
            # Git expects the filter to consume all of STDIN
            if nbytes <= MAX_POINTER_SIZE:
                chunks.append(chunk)
            nbytes += len(chunk)
    except OSError as err:
        raise LFCIOError(f"Can't read lfc pointer: {err}") from err
    # Output
    return b"".join(chunks)


def _write(ostream, data: bytes, ptr: LFCPointer, desc="lfc pointer to"):
    # Write and flush so git sees all of it
    try:
        ostream.write(data)
        ostream.flush()
    except OSError as err:
        raise LFCIOError(
            f"Can't write {desc} {ptr.sha256}: {err}") from err
