
# Standard library
import io
import os
import stat
from concurrent.futures import ThreadPoolExecutor

# Third-party
import pytest

# Local imports
from lfcfilter.lfcerror import (
    LFCIOError,
    LFCNotFoundError,
    LFCPointerError)
from lfcfilter.lfchash import genr8_hash
from lfcfilter.lfcstore import STAGING_DIR, LFCStore


# Test contents
TEST_CONTENTS = b"this is a test\nand a second line"
TEST_HASH = "fbbeac4b21cc086bfd7ed8b9c7b99e014e436b8bb0069114054ca374e8e69b26"


def _list_staging(store):
    return os.listdir(os.path.join(store.root, STAGING_DIR))


# Basic put/get
def test_store01(tmp_path):
    # Create store in folder that doesn't exist yet
    store = LFCStore(tmp_path / "store")
    assert not store.contains(TEST_HASH)
    assert store.list_entries() == []
    # Store something
    fhash = store.put(TEST_CONTENTS)
    assert fhash == TEST_HASH
    # Check entry
    fentry = os.path.join(store.root, TEST_HASH)
    assert store.get_entry_path(TEST_HASH) == fentry
    assert os.path.isfile(fentry)
    assert store.contains(TEST_HASH)
    assert store.get(TEST_HASH) == TEST_CONTENTS
    assert store.get_size(TEST_HASH) == len(TEST_CONTENTS)
    assert store.list_entries() == [TEST_HASH]
    # Entry is read-only
    assert not (os.stat(fentry).st_mode & stat.S_IWUSR)
    # No leftovers
    assert _list_staging(store) == []
    # Read with handle
    with store.open(TEST_HASH) as fp:
        assert fp.read() == TEST_CONTENTS


# Storing twice
def test_store02(tmp_path, monkeypatch):
    # Create store
    store = LFCStore(tmp_path / "store", fsync=False)
    # Store something
    fhash1 = store.put(TEST_CONTENTS)

    # Second put must not write anything
    def no_write(self):
        raise AssertionError("unexpected write to store")

    monkeypatch.setattr(LFCStore, "_new_staging_file", no_write)
    fhash2 = store.put(TEST_CONTENTS)
    # Same result, one entry
    assert fhash1 == fhash2
    assert store.list_entries() == [TEST_HASH]


# Losing a race against another writer
def test_store03(tmp_path, monkeypatch):
    # Create store
    store = LFCStore(tmp_path / "store")
    # Pretend nothing is ever stored, so both calls try to write
    monkeypatch.setattr(LFCStore, "contains", lambda self, fhash: False)
    # Store twice
    assert store.put(TEST_CONTENTS) == TEST_HASH
    assert store.put(TEST_CONTENTS) == TEST_HASH
    # Still exactly one entry and no leftovers
    monkeypatch.undo()
    assert store.list_entries() == [TEST_HASH]
    assert store.get(TEST_HASH) == TEST_CONTENTS
    assert _list_staging(store) == []


# Many writers at once
def test_store04(tmp_path):
    # Folder for store
    root = tmp_path / "store"

    # Each thread has its own store interface, like separate processes
    def put(_):
        return LFCStore(root).put(TEST_CONTENTS)

    with ThreadPoolExecutor(max_workers=8) as pool:
        hashes = list(pool.map(put, range(32)))
    # All agree
    assert set(hashes) == {TEST_HASH}
    # One entry
    store = LFCStore(root)
    assert store.list_entries() == [TEST_HASH]
    assert store.get(TEST_HASH) == TEST_CONTENTS
    assert _list_staging(store) == []


# Store from stream
def test_store05(tmp_path):
    # Create store
    store = LFCStore(tmp_path / "store")
    # Contents larger than one chunk
    data = os.urandom(3 * 1024 * 1024 + 17)
    # Store from stream
    fhash, size = store.put_file(io.BytesIO(data))
    assert fhash == genr8_hash(data)
    assert size == len(data)
    assert store.get(fhash) == data
    # Again from stream; still one entry
    assert store.put_file(io.BytesIO(data)) == (fhash, size)
    assert store.list_entries() == [fhash]
    assert _list_staging(store) == []
    # Empty stream
    fhash0, size0 = store.put_file(io.BytesIO(b""))
    assert size0 == 0
    assert store.get(fhash0) == b""


# Missing entries
def test_store06(tmp_path):
    # Create store, but don't write anything
    store = LFCStore(tmp_path / "store")
    # Missing entry
    with pytest.raises(LFCNotFoundError) as excinfo:
        store.get(TEST_HASH)
    # Message names the hash
    assert TEST_HASH in str(excinfo.value)
    # Also for other read functions
    with pytest.raises(LFCNotFoundError):
        store.open(TEST_HASH)
    with pytest.raises(LFCNotFoundError):
        store.get_size(TEST_HASH)
    # Malformed hashes can't be looked up (or escape the folder)
    for bad in ("abc", "../" + TEST_HASH[3:], TEST_HASH.upper()):
        with pytest.raises(LFCPointerError):
            store.get(bad)
        with pytest.raises(LFCPointerError):
            store.contains(bad)


# Store that can't be written
def test_store07(tmp_path):
    # Put a file where the store's parent folder should be
    fblock = tmp_path / "blocker"
    fblock.write_bytes(b"")
    store = LFCStore(fblock / "store")
    # Writing should fail with an I/O error
    with pytest.raises(LFCIOError):
        store.put(TEST_CONTENTS)
    with pytest.raises(LFCIOError):
        store.put_file(io.BytesIO(TEST_CONTENTS))


# Input stream that fails
def test_store08(tmp_path):

    class BrokenReader(io.RawIOBase):
        def readable(self):
            return True

        def read(self, n=-1):
            raise OSError(5, "Input/output error")

    # Create store
    store = LFCStore(tmp_path / "store")
    with pytest.raises(LFCIOError):
        store.put_file(BrokenReader())
    # Nothing stored, nothing left behind
    assert store.list_entries() == []
    assert _list_staging(store) == []


# Folder in the place of an entry
def test_store09(tmp_path):
    # Create store w/ a folder named like the entry
    store = LFCStore(tmp_path / "store")
    store.make_storedir()
    fentry = store.get_entry_path(TEST_HASH)
    os.mkdir(fentry)
    # Not an entry
    assert not store.contains(TEST_HASH)
    assert store.list_entries() == []
    # Writing must not report success
    with pytest.raises(LFCIOError) as excinfo:
        store.put(TEST_CONTENTS)
    assert TEST_HASH in str(excinfo.value)
    with pytest.raises(LFCIOError):
        store.put_file(io.BytesIO(TEST_CONTENTS))
    # Reading is an I/O problem, not a missing entry
    with pytest.raises(LFCIOError):
        store.get_size(TEST_HASH)
    with pytest.raises(LFCIOError):
        store.get(TEST_HASH)
    # No staging files left behind
    assert _list_staging(store) == []
