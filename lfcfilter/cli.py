r"""
``cli``: Command-line interface to ``lfc-filter``
=================================================

This module provides the functions git calls through its filter-driver
mechanism. There is a function :func:`main` that reads ``sys.argv``
(the command-line strings of the current command). Then :func:`main`
dispatches one of several other functions:

    * :func:`lfc_filter_clean`
    * :func:`lfc_filter_smudge`
    * :func:`lfc_filter_validate`

These secondary commands read Python arguments and keyword arguments
rather than parsing ``sys.argv``, so they are usable to Python API
programmers as well.

Messages never go to STDOUT during ``clean`` or ``smudge``, since git
reads the file contents from there.
"""

# Standard library
import os
import sys

# Third-party
from argread import ArgReader

# Local imports
from .filters import lfc_clean, lfc_smudge
from .lfcconfig import read_settings
from .lfcerror import (
    LFCError,
    LFCNotFoundError,
    LFCPointerError,
    LFCTypeError,
    LFCValueError,
    assert_isinstance)
from .lfchash import trunc8_hash
from .lfcstore import LFCStore


# Help message
HELP_LFC_FILTER = r"""Large File Control filter (lfc-filter)

Keep large files out of git history using a clean/smudge filter.

:Usage:
    .. code-block:: console

        $ lfc-filter CMD [OPTIONS]

:Inputs:
    * *CMD*: name of command to run

    Available commands are:

    ==================  ===========================================
    Command             Description
    ==================  ===========================================
    ``clean``           Store STDIN, write pointer to STDOUT
    ``smudge``          Read pointer on STDIN, write file to STDOUT
    ``validate``        Check that store entries match their hashes
    ==================  ===========================================

:Setup:
    .. code-block:: console

        $ git config filter.lfc.clean "lfc-filter clean"
        $ git config filter.lfc.smudge "lfc-filter smudge"
        $ git config filter.lfc.required true
        $ echo "*.bin filter=lfc" >> .gitattributes
"""

HELP_CLEAN = r"""
``lfc-filter-clean``: Store a large file and print its pointer
================================================================

Reads the complete contents of a file on STDIN, saves them in the store
under their SHA-256 hash (unless already there), and writes a short
pointer record to STDOUT for git to commit instead.

:Usage:
    .. code-block:: console

        $ lfc-filter clean [OPTIONS] < FILE > POINTER

:Options:
    -h, --help
        Display this help message and exit

    -s, --store STORE
        Use store folder *STORE* (default ``$GIT_DIR/lfc/store``)

    -v, --verbose
        Print status to STDERR

    --no-fsync
        Don't wait for new store entries to reach the disk
"""

HELP_SMUDGE = r"""
``lfc-filter-smudge``: Print the large file a pointer refers to
================================================================

Reads a pointer record on STDIN and writes the contents it refers to
from the store to STDOUT.

Fails with ``LFCPointerError`` (exit code 64) if STDIN is not a pointer
record and with ``LFCNotFoundError`` (exit code 128) if the pointer is
fine but the store doesn't have the contents.

:Usage:
    .. code-block:: console

        $ lfc-filter smudge [OPTIONS] < POINTER > FILE

:Options:
    -h, --help
        Display this help message and exit

    -s, --store STORE
        Use store folder *STORE* (default ``$GIT_DIR/lfc/store``)

    -v, --verbose
        Print status to STDERR
"""

HELP_VALIDATE = r"""
``lfc-filter-validate``: Check store consistency
==================================================

Recalculates the hash of every store entry and lists entries that don't
match their name and files that don't belong in the store. Nothing is
deleted or repaired.

:Usage:
    .. code-block:: console

        $ lfc-filter validate [OPTIONS]

:Options:
    -h, --help
        Display this help message and exit

    -s, --store STORE
        Use store folder *STORE* (default ``$GIT_DIR/lfc/store``)
"""


# Dictionary of help commands
HELP_DICT = {
    "clean": HELP_CLEAN,
    "smudge": HELP_SMUDGE,
    "validate": HELP_VALIDATE,
}


# Customized CLI parser
class LFCFilterArgParser(ArgReader):
    # No attributes
    __slots__ = ()

    # Aliases
    _optmap = {
        "h": "help",
        "s": "store",
        "v": "verbose",
    }

    # Options that never take a value
    _optlist_noval = (
        "fsync",
        "h",
        "help",
        "v",
        "verbose",
    )


# Return codes
IERR_OK = 0
IERR_IO = 1
IERR_INVALID = 8
IERR_CMD = 16
IERR_ARGS = 32
IERR_POINTER = 64
IERR_FILE_NOT_FOUND = 128

# Return codes for each error class, first match wins
IERR_DICT = (
    (LFCNotFoundError, IERR_FILE_NOT_FOUND),
    (LFCPointerError, IERR_POINTER),
    (LFCValueError, IERR_ARGS),
    (LFCTypeError, IERR_ARGS),
    (LFCError, IERR_IO),
)


def lfc_filter_clean(*a, **kw) -> int:
    r"""Store STDIN and write pointer record to STDOUT

    :Call:
        >>> ierr = lfc_filter_clean(store=None, verbose=None)
    :Inputs:
        *store*: {``None``} | :class:`str`
            Store folder (default from repo config)
        *verbose*: {``None``} | ``True`` | ``False``
            Print status to STDERR (default from repo config)
        *fsync*: {``None``} | ``True`` | ``False``
            Flush new entries to disk (default from repo config)
        *istream*, *ostream*: {``None``} | file
            Binary streams to use instead of STDIN and STDOUT
    :Outputs:
        *ierr*: :class:`int`
            Return code
    """
    # No positional args
    if len(a):
        print(
            "lfc-filter-clean got %i arguments; expected 0" % len(a),
            file=sys.stderr)
        return IERR_ARGS
    # Get store
    store, verbose = _make_store(kw)
    # Run filter
    ptr = lfc_clean(store, kw.get("istream"), kw.get("ostream"))
    # Status update
    if verbose:
        _status(
            f"lfc-filter clean: stored {trunc8_hash(ptr.sha256)} "
            f"({ptr.size} bytes)")
    return IERR_OK


def lfc_filter_smudge(*a, **kw) -> int:
    r"""Read pointer record on STDIN and write contents to STDOUT

    :Call:
        >>> ierr = lfc_filter_smudge(store=None, verbose=None)
    :Inputs:
        *store*: {``None``} | :class:`str`
            Store folder (default from repo config)
        *verbose*: {``None``} | ``True`` | ``False``
            Print status to STDERR (default from repo config)
        *istream*, *ostream*: {``None``} | file
            Binary streams to use instead of STDIN and STDOUT
    :Outputs:
        *ierr*: :class:`int`
            Return code
    """
    # No positional args
    if len(a):
        print(
            "lfc-filter-smudge got %i arguments; expected 0" % len(a),
            file=sys.stderr)
        return IERR_ARGS
    # Get store
    store, verbose = _make_store(kw)
    # Run filter
    ptr = lfc_smudge(store, kw.get("istream"), kw.get("ostream"))
    # Status update
    if verbose:
        _status(
            f"lfc-filter smudge: restored {trunc8_hash(ptr.sha256)}")
    return IERR_OK


def lfc_filter_validate(*a, **kw) -> int:
    r"""Check store and print any problems to STDOUT

    :Call:
        >>> ierr = lfc_filter_validate(store=None)
    :Inputs:
        *store*: {``None``} | :class:`str`
            Store folder (default from repo config)
    :Outputs:
        *ierr*: ``0`` | ``8``
            Return code; ``8`` if any problems were found
    """
    # No positional args
    if len(a):
        print(
            "lfc-filter-validate got %i arguments; expected 0" % len(a),
            file=sys.stderr)
        return IERR_ARGS
    # Get store
    store, _ = _make_store(kw)
    # Check it
    report = store.validate()
    # Print problems
    for fname, fhash in report.hash_mismatches:
        print(f"hash-mismatch: {fname}: {fhash}")
    for fname in report.unexpected_files:
        print(f"unexpected: {fname}")
    # Output
    return IERR_OK if report.is_valid() else IERR_INVALID


def _make_store(kw: dict):
    # Check for ``--store`` w/o a value
    fstore = kw.get("store")
    assert_isinstance(fstore, (str, os.PathLike, type(None)), "--store")
    # Get settings from repo, if any
    opts = read_settings(fstore)
    # Command-line options override config
    fsync = kw.get("fsync")
    verbose = kw.get("verbose")
    fsync = opts["fsync"] if fsync is None else fsync
    verbose = opts["verbose"] if verbose is None else verbose
    # Create store interface
    return LFCStore(opts["store"], fsync=fsync), verbose


def _status(msg: str):
    # Status updates go to STDERR; STDOUT is file contents
    print(msg, file=sys.stderr)
    sys.stderr.flush()


def _genr8_ierr(err: LFCError) -> int:
    # Find first matching error class
    for cls, ierr in IERR_DICT:
        if isinstance(err, cls):
            return ierr
    return IERR_IO


# Command dictionary
CMD_DICT = {
    "clean": lfc_filter_clean,
    "smudge": lfc_filter_smudge,
    "validate": lfc_filter_validate,
}


# Main function
def main(argv=None) -> int:
    r"""Main command-line interface to ``lfc-filter``

    The function works by reading the second word of ``sys.argv`` and
    dispatching a dedicated function for that purpose.

    :Call:
        >>> ierr = main(argv=None)
    :Inputs:
        *argv*: {``None``} | :class:`list`\ [:class:`str`]
            Command-line args, including program name; default from
            ``sys.argv``
    :Outputs:
        *ierr*: :class:`int`
            Return code
    """
    # Create parser
    parser = LFCFilterArgParser()
    # Parse args
    a, kw = parser.parse(argv)
    kw.pop("__replaced__", None)
    # Check for no commands
    if len(a) == 0:
        print(HELP_LFC_FILTER)
        return IERR_OK
    # Get command name
    cmdname = a[0]
    # Get function
    func = CMD_DICT.get(cmdname)
    # Check it
    if func is None:
        # Unrecognized function
        print("Unexpected command '%s'" % cmdname, file=sys.stderr)
        print(
            "Options are: " + " | ".join(list(CMD_DICT.keys())),
            file=sys.stderr)
        return IERR_CMD
    # Check for "help" option
    if kw.pop("help", False):
        # Get help message for this command; default to main help
        msg = HELP_DICT.get(cmdname, HELP_LFC_FILTER)
        print(msg)
        return IERR_OK
    # Run function
    try:
        ierr = func(*a[1:], **kw)
    except LFCError as err:
        print(f"{err.__class__.__name__}:", file=sys.stderr)
        print(f"  {err}", file=sys.stderr)
        return _genr8_ierr(err)
    # Convert None -> 0
    ierr = IERR_OK if ierr is None else ierr
    # Normal exit
    return ierr
