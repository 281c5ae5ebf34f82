r"""
``lfcstore``: Content-addressed store for large file contents
==================================================================

This module provides the :class:`LFCStore`, a folder of files named by
the SHA-256 hash of their own contents. The layout is

    .. code-block:: none

        STORE/
            2c26b46b68ffc68ff99b453c1d30413413422d706483bfa0f98a5e886266e7ae
            b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9
            tmp/

Entries are written to a private temporary file in ``tmp/`` first and
then linked to their final name only if no entry of that name exists
yet. Readers therefore never see a partially written entry, and two
processes storing the same contents at the same time both succeed with
exactly one entry on disk. Entries are read-only once created and the
store never deletes them.
"""

# Standard library
import errno
import hashlib
import os
import stat
import tempfile

# Local imports
from .lfcerror import (
    LFCIOError,
    LFCNotFoundError,
    assert_isinstance)
from .lfchash import (
    CHUNK_SIZE,
    check_hash,
    genr8_file_hash,
    genr8_hash,
    valid8_hash)


# Name of staging folder within the store
STAGING_DIR = "tmp"
# Permissions of finished entries
ENTRY_MODE = 0o444

# Errors from os.link() that mean hard links aren't supported here
NOLINK_ERRNOS = (
    errno.EPERM,
    errno.EXDEV,
    errno.ENOSYS,
    errno.EOPNOTSUPP,
)


# Results of checking a store
class LFCStoreReport(object):
    r"""Problems found while validating an :class:`LFCStore`

    :Call:
        >>> report = LFCStoreReport()
    :Attributes:
        *hash_mismatches*: :class:`list`\ [:class:`tuple`]
            List of ``(name, actual_hash)`` for entries whose contents
            don't match their name
        *unexpected_files*: :class:`list`\ [:class:`str`]
            Files (relative to store root) that don't belong there
    """
    __slots__ = (
        "hash_mismatches",
        "unexpected_files",
    )

    def __init__(self):
        self.hash_mismatches = []
        self.unexpected_files = []

    def is_valid(self) -> bool:
        r"""Check if no problems were found

        :Call:
            >>> q = report.is_valid()
        :Outputs:
            *q*: ``True`` | ``False``
                Whether store is consistent
        """
        return not (self.hash_mismatches or self.unexpected_files)


# Create new class
class LFCStore(object):
    r"""Content-addressed store of large file contents

    :Call:
        >>> store = LFCStore(root, fsync=True)
    :Inputs:
        *root*: :class:`str`
            Path to store folder; created on first write
        *fsync*: {``True``} | ``False``
            Whether to flush new entries to disk before linking them
    :Outputs:
        *store*: :class:`LFCStore`
            Interface to local large file store
    """
   # --- Class attributes ---
    # Class attributes
    __slots__ = (
        "fsync",
        "root",
        "tmpdir",
    )

   # --- __dunder__ ---
    def __init__(self, root, fsync=True):
        # Check type
        assert_isinstance(root, (str, os.PathLike), "store root")
        # Save absolute paths
        self.root = os.path.abspath(os.fspath(root))
        self.tmpdir = os.path.join(self.root, STAGING_DIR)
        self.fsync = bool(fsync)

    def __repr__(self):
        return f"{self.__class__.__name__}({self.root!r})"

   # --- Write ---
    def put(self, data: bytes) -> str:
        r"""Save contents to the store, unless already present

        :Call:
            >>> fhash = store.put(data)
        :Inputs:
            *store*: :class:`LFCStore`
                Interface to local large file store
            *data*: :class:`bytes`
                Contents to store
        :Outputs:
            *fhash*: :class:`str`
                SHA-256 hex digest of *data*, also the entry name
        :Raises:
            :class:`LFCIOError` if the entry can't be written
        """
        # Calculate hash up front
        fhash = genr8_hash(data)
        # Nothing to write if already stored
        if self.contains(fhash):
            return fhash
        # Create staging file
        fp, ftmp = self._new_staging_file()
        try:
            # Write contents
            with fp:
                fp.write(data)
                self._sync(fp)
            # Give it its permanent name
            self._commit(ftmp, fhash)
        except LFCIOError:
            raise
        except OSError as err:
            raise LFCIOError(
                f"Can't write store entry {fhash} in '{self.root}': "
                f"{_strerror(err)}") from err
        finally:
            self._rm_staging(ftmp)
        # Output
        return fhash

    def put_file(self, fp):
        r"""Save contents of a binary stream to the store

        The stream is read to the end before anything becomes visible in
        the store.

        :Call:
            >>> fhash, size = store.put_file(fp)
        :Inputs:
            *store*: :class:`LFCStore`
                Interface to local large file store
            *fp*: :class:`io.BufferedReader`
                Binary file-like object, for example ``sys.stdin.buffer``
        :Outputs:
            *fhash*: :class:`str`
                SHA-256 hex digest of contents of *fp*
            *size*: :class:`int`
                Number of bytes read from *fp*
        :Raises:
            :class:`LFCIOError` if *fp* can't be read or the entry can't
            be written
        """
        # Initialize hash and byte count
        obj = hashlib.sha256()
        size = 0
        # Create staging file
        fout, ftmp = self._new_staging_file()
        try:
            # Copy *fp* to staging file, hashing along the way
            with fout:
                for chunk in iter(lambda: fp.read(CHUNK_SIZE), b""):
                    obj.update(chunk)
                    fout.write(chunk)
                    size += len(chunk)
                self._sync(fout)
            # Final hash
            fhash = obj.hexdigest()
            # Link unless an equal entry is already there
            if not self.contains(fhash):
                self._commit(ftmp, fhash)
        except LFCIOError:
            raise
        except OSError as err:
            raise LFCIOError(
                f"Can't store input in '{self.root}': "
                f"{_strerror(err)}") from err
        finally:
            self._rm_staging(ftmp)
        # Output
        return fhash, size

    def _new_staging_file(self):
        # Make sure folders exist
        self.make_storedir()
        # Create a unique file in the staging folder
        try:
            fd, ftmp = tempfile.mkstemp(prefix="staging.", dir=self.tmpdir)
        except OSError as err:
            raise LFCIOError(
                f"Can't create staging file in '{self.tmpdir}': "
                f"{_strerror(err)}") from err
        # Output
        return os.fdopen(fd, "wb"), ftmp

    def _sync(self, fp):
        # Flush file to disk if requested
        if self.fsync:
            fp.flush()
            os.fsync(fp.fileno())

    def _commit(self, ftmp: str, fhash: str) -> bool:
        # Final name of entry
        fentry = self.get_entry_path(fhash)
        # Entries are never modified
        os.chmod(ftmp, ENTRY_MODE)
        # Create *fentry* only if it doesn't exist
        try:
            os.link(ftmp, fentry)
        except FileExistsError:
            # Another writer won; same name means same contents
            self._check_entry(fhash, fentry)
            return False
        except OSError as err:
            # Anything but "hard links not supported" is a real error
            if err.errno not in NOLINK_ERRNOS:
                raise
            # Check again before falling back to atomic rename
            if os.path.lexists(fentry):
                self._check_entry(fhash, fentry)
                return False
            os.replace(ftmp, fentry)
        return True

    def _check_entry(self, fhash: str, fentry: str):
        # Something other than a file in an entry's place
        if not os.path.isfile(fentry):
            raise LFCIOError(
                f"Can't write store entry {fhash}: '{fentry}' exists "
                "but is not a regular file")

    def _rm_staging(self, ftmp: str):
        # Remove staging file if still present
        if os.path.isfile(ftmp):
            os.remove(ftmp)

   # --- Read ---
    def get(self, fhash: str) -> bytes:
        r"""Read the contents of a store entry

        :Call:
            >>> data = store.get(fhash)
        :Inputs:
            *store*: :class:`LFCStore`
                Interface to local large file store
            *fhash*: :class:`str`
                SHA-256 hex digest of contents
        :Outputs:
            *data*: :class:`bytes`
                Exact contents previously stored under *fhash*
        :Raises:
            * :class:`LFCNotFoundError` if there is no such entry
            * :class:`LFCPointerError` if *fhash* is not a valid hash
            * :class:`LFCIOError` if the entry can't be read
        """
        with self.open(fhash) as fp:
            try:
                return fp.read()
            except OSError as err:
                raise LFCIOError(
                    f"Can't read store entry {fhash}: "
                    f"{_strerror(err)}") from err

    def open(self, fhash: str):
        r"""Open a store entry for binary reading

        :Call:
            >>> fp = store.open(fhash)
        :Inputs:
            *store*: :class:`LFCStore`
                Interface to local large file store
            *fhash*: :class:`str`
                SHA-256 hex digest of contents
        :Outputs:
            *fp*: :class:`io.BufferedReader`
                File handle; caller is responsible for closing it
        :Raises:
            * :class:`LFCNotFoundError` if there is no such entry
            * :class:`LFCPointerError` if *fhash* is not a valid hash
            * :class:`LFCIOError` if the entry can't be opened
        """
        # Get file name
        fentry = self.get_entry_path(fhash)
        try:
            return open(fentry, "rb")
        except FileNotFoundError:
            raise LFCNotFoundError(self._genr8_notfound_msg(fhash)) from None
        except OSError as err:
            raise LFCIOError(
                f"Can't open store entry {fhash}: "
                f"{_strerror(err)}") from err

    def get_size(self, fhash: str) -> int:
        r"""Get the number of bytes in a store entry

        :Call:
            >>> size = store.get_size(fhash)
        :Inputs:
            *store*: :class:`LFCStore`
                Interface to local large file store
            *fhash*: :class:`str`
                SHA-256 hex digest of contents
        :Outputs:
            *size*: :class:`int`
                Size of entry in bytes
        """
        # Get file name
        fentry = self.get_entry_path(fhash)
        try:
            st = os.stat(fentry)
        except FileNotFoundError:
            raise LFCNotFoundError(self._genr8_notfound_msg(fhash)) from None
        except OSError as err:
            raise LFCIOError(
                f"Can't stat store entry {fhash}: "
                f"{_strerror(err)}") from err
        # Folders and such aren't entries
        if not stat.S_ISREG(st.st_mode):
            raise LFCIOError(
                f"Store entry {fhash} at '{fentry}' is not a regular file")
        return st.st_size

    def contains(self, fhash: str) -> bool:
        r"""Check if the store has an entry, without reading it

        :Call:
            >>> q = store.contains(fhash)
        :Inputs:
            *store*: :class:`LFCStore`
                Interface to local large file store
            *fhash*: :class:`str`
                SHA-256 hex digest of contents
        :Outputs:
            *q*: ``True`` | ``False``
                Whether entry *fhash* is present
        """
        return os.path.isfile(self.get_entry_path(fhash))

    def _genr8_notfound_msg(self, fhash: str) -> str:
        return (
            f"Content {fhash} is not in the local store '{self.root}'; "
            "the pointer is valid but this store was never given the "
            "file (copy the entry from the store that cleaned it)")

   # --- Folders ---
    def get_entry_path(self, fhash: str) -> str:
        r"""Get absolute path to the entry for a hash

        :Call:
            >>> fentry = store.get_entry_path(fhash)
        :Inputs:
            *store*: :class:`LFCStore`
                Interface to local large file store
            *fhash*: :class:`str`
                SHA-256 hex digest of contents
        :Outputs:
            *fentry*: :class:`str`
                Absolute path to entry (which may or may not exist)
        """
        # Make sure the hash can't escape the store folder
        valid8_hash(fhash)
        # Output
        return os.path.join(self.root, fhash)

    def make_storedir(self):
        r"""Create store and staging folders if necessary

        :Call:
            >>> store.make_storedir()
        :Inputs:
            *store*: :class:`LFCStore`
                Interface to local large file store
        """
        try:
            os.makedirs(self.tmpdir, exist_ok=True)
        except OSError as err:
            raise LFCIOError(
                f"Can't create store folder '{self.tmpdir}': "
                f"{_strerror(err)}") from err

    def list_entries(self) -> list:
        r"""List the hashes of all entries in the store

        :Call:
            >>> hashes = store.list_entries()
        :Inputs:
            *store*: :class:`LFCStore`
                Interface to local large file store
        :Outputs:
            *hashes*: :class:`list`\ [:class:`str`]
                Sorted list of entry names
        """
        # Empty if never written
        if not os.path.isdir(self.root):
            return []
        # Filter folder contents
        return [
            fname for fname in sorted(os.listdir(self.root))
            if check_hash(fname) and
            os.path.isfile(os.path.join(self.root, fname))
        ]

   # --- Validate ---
    def validate(self) -> LFCStoreReport:
        r"""Check that all entries match their names

        Every entry is hashed again, and any file that doesn't belong in
        the store is reported. Nothing is repaired or deleted.

        :Call:
            >>> report = store.validate()
        :Inputs:
            *store*: :class:`LFCStore`
                Interface to local large file store
        :Outputs:
            *report*: :class:`LFCStoreReport`
                Lists of mismatched and unexpected files
        """
        # Initialize report
        report = LFCStoreReport()
        # Nothing to check for a store that was never written
        if not os.path.isdir(self.root):
            return report
        try:
            for fname in sorted(os.listdir(self.root)):
                # Absolute path
                fabs = os.path.join(self.root, fname)
                # Check for staging folder
                if fname == STAGING_DIR and os.path.isdir(fabs):
                    # Leftovers from interrupted writes
                    for fj in sorted(os.listdir(fabs)):
                        report.unexpected_files.append(
                            os.path.join(STAGING_DIR, fj))
                    continue
                # Anything else must be an entry
                if not (check_hash(fname) and os.path.isfile(fabs)):
                    report.unexpected_files.append(fname)
                    continue
                # Recompute hash
                fhash = genr8_file_hash(fabs)
                if fhash != fname:
                    report.hash_mismatches.append((fname, fhash))
        except OSError as err:
            raise LFCIOError(
                f"Can't validate store '{self.root}': "
                f"{_strerror(err)}") from err
        # Output
        return report


def _strerror(err: OSError) -> str:
    # Prefer plain system message, e.g. "No space left on device"
    return err.strerror or str(err)
