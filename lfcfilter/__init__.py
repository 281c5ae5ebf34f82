r"""
Large File Control filter (``lfcfilter``) is a Python package to keep
large files out of git history. It provides both an API (see
:class:`LFCStore`, :func:`lfc_clean`, and :func:`lfc_smudge`) and a
command-line interface (see :mod:`lfcfilter.cli`).

The package works as a git clean/smudge filter. When a large file is
added, the clean filter calculates the SHA-256 hash of its contents,
copies it into a store inside ``.git/``, and hands git a small pointer
record instead. On checkout, the smudge filter reads the pointer and
writes the contents back from the store.

"""

# Local imports
from .filters import lfc_clean, lfc_smudge
from .lfcpointer import LFCPointer, decode_pointer, encode_pointer
from .lfcstore import LFCStore
