
# Standard library
import io
import os

# Third-party
import pytest

# Local imports
from lfcfilter.filters import lfc_clean, lfc_smudge
from lfcfilter.lfcerror import (
    LFCIOError,
    LFCNotFoundError,
    LFCPointerError)
from lfcfilter.lfcpointer import LFCPointer, decode_pointer, encode_pointer
from lfcfilter.lfcstore import LFCStore


# Hash of "hello world"
HASH_HELLO = (
    "b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9")


class BrokenWriter(io.RawIOBase):
    def writable(self):
        return True

    def write(self, b):
        raise BrokenPipeError(32, "Broken pipe")


def _clean(store, data: bytes) -> bytes:
    # Run clean filter on bytes
    ostream = io.BytesIO()
    lfc_clean(store, io.BytesIO(data), ostream)
    return ostream.getvalue()


def _smudge(store, data: bytes) -> bytes:
    # Run smudge filter on bytes
    ostream = io.BytesIO()
    lfc_smudge(store, io.BytesIO(data), ostream)
    return ostream.getvalue()


# The "hello world" walk-through
def test_filters01(tmp_path):
    # Create store
    store = LFCStore(tmp_path / "store")
    # Clean
    ptrtxt = _clean(store, b"hello world")
    # Entry named by SHA-256
    assert store.list_entries() == [HASH_HELLO]
    # Pointer has hash and size
    ptr = decode_pointer(ptrtxt)
    assert ptr == LFCPointer(HASH_HELLO, 11)
    assert HASH_HELLO.encode() in ptrtxt
    assert b"size: 11\n" in ptrtxt
    # Smudge gives original bytes
    assert _smudge(store, ptrtxt) == b"hello world"
    # Delete the entry
    os.remove(store.get_entry_path(HASH_HELLO))
    # Now smudge can't find it
    with pytest.raises(LFCNotFoundError) as excinfo:
        _smudge(store, ptrtxt)
    assert HASH_HELLO in str(excinfo.value)
    # Non-pointer input
    with pytest.raises(LFCPointerError):
        _smudge(store, b"not a pointer")


# Round trip for assorted contents
def test_filters02(tmp_path):
    # Create store
    store = LFCStore(tmp_path / "store", fsync=False)
    # Various contents, including ones that look like pointers
    samples = [
        b"",
        b"\n",
        b"\x00\x01\x02\xff" * 100,
        os.urandom(2 * 1024 * 1024 + 3),
        "unicode éè\n".encode("utf-8"),
        encode_pointer(HASH_HELLO, 11),
    ]
    # Loop through them
    for data in samples:
        # Clean output is always a pointer, never the contents
        ptrtxt = _clean(store, data)
        ptr = decode_pointer(ptrtxt)
        assert ptr.size == len(data)
        # Deterministic
        assert _clean(store, data) == ptrtxt
        # Round trip
        assert _smudge(store, ptrtxt) == data
    # One entry per distinct sample
    assert len(store.list_entries()) == len(samples)


# Return values
def test_filters03(tmp_path):
    # Create store
    store = LFCStore(tmp_path / "store")
    # Clean returns pointer
    ostream = io.BytesIO()
    ptr1 = lfc_clean(store, io.BytesIO(b"hello world"), ostream)
    assert ptr1 == LFCPointer(HASH_HELLO, 11)
    # Smudge returns the pointer it read
    ptr2 = lfc_smudge(store, io.BytesIO(ostream.getvalue()), io.BytesIO())
    assert ptr2 == ptr1


# Pointer w/o size, and size that disagrees with store
def test_filters04(tmp_path):
    # Create store
    store = LFCStore(tmp_path / "store")
    store.put(b"hello world")
    # No size is fine
    assert _smudge(store, encode_pointer(HASH_HELLO)) == b"hello world"
    # Wrong size is not
    ostream = io.BytesIO()
    with pytest.raises(LFCPointerError) as excinfo:
        lfc_smudge(
            store, io.BytesIO(encode_pointer(HASH_HELLO, 12)), ostream)
    assert HASH_HELLO in str(excinfo.value)
    # Nothing written
    assert ostream.getvalue() == b""


# Large non-pointer input to smudge
def test_filters05(tmp_path):
    # Create store
    store = LFCStore(tmp_path / "store")
    # Input that was never cleaned
    istream = io.BytesIO(os.urandom(100000))
    with pytest.raises(LFCPointerError):
        lfc_smudge(store, istream, io.BytesIO())
    # All of the input was consumed
    assert istream.read() == b""


# Output that can't be written
def test_filters06(tmp_path):
    # Create store
    store = LFCStore(tmp_path / "store")
    # Clean to broken output
    with pytest.raises(LFCIOError):
        lfc_clean(store, io.BytesIO(b"hello world"), BrokenWriter())
    # Contents were still stored
    assert store.contains(HASH_HELLO)
    # Smudge to broken output
    with pytest.raises(LFCIOError):
        lfc_smudge(
            store, io.BytesIO(encode_pointer(HASH_HELLO, 11)),
            BrokenWriter())


# Folder where the entry should be
def test_filters07(tmp_path):
    # Create store w/ a folder named like the entry
    store = LFCStore(tmp_path / "store")
    store.make_storedir()
    os.mkdir(store.get_entry_path(HASH_HELLO))
    # Clean fails before writing a pointer
    ostream = io.BytesIO()
    with pytest.raises(LFCIOError) as excinfo:
        lfc_clean(store, io.BytesIO(b"hello world"), ostream)
    assert HASH_HELLO in str(excinfo.value)
    assert ostream.getvalue() == b""
    # Smudge reports a store problem, not a bad pointer
    with pytest.raises(LFCIOError) as excinfo:
        _smudge(store, encode_pointer(HASH_HELLO, 11))
    assert not isinstance(excinfo.value, LFCPointerError)


# Store entry that can't be read
def test_filters08(tmp_path, monkeypatch):

    class BrokenReader(io.RawIOBase):
        def readable(self):
            return True

        def readinto(self, b):
            raise OSError(5, "Input/output error")

    # Create store w/ one entry
    store = LFCStore(tmp_path / "store")
    ptxt = _clean(store, b"hello world")
    # Entry can be opened but not read
    monkeypatch.setattr(LFCStore, "open", lambda self, fhash: BrokenReader())
    with pytest.raises(LFCIOError) as excinfo:
        _smudge(store, ptxt)
    assert "Can't read store entry" in str(excinfo.value)
