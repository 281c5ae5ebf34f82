r"""
``lfcerror``: Errors for :mod:`lfcfilter` modules
===========================================================

This module provides a collection of error types relevant to the
:mod:`lfcfilter` package. They are essentially the same as standard
error types such as :class:`KeyError`, :class:`ValueError`, etc. but
with an extra parent of :class:`LFCError` to enable catching all errors
specifically raised by this package.

The three errors a filter invocation can end with are

    * :class:`LFCIOError`: the store or a stream could not be read or
      written
    * :class:`LFCPointerError`: the input is not a pointer record
      produced by this package
    * :class:`LFCNotFoundError`: the pointer is fine, but the local
      store has no entry for its hash

"""


# Basic error family
class LFCError(Exception):
    r"""Parent error class for :mod:`lfcfilter` errors

    Inherits from :class:`Exception`
    """
    pass


class LFCIOError(OSError, LFCError):
    r"""Error class for failed reads/writes of the store or streams

    Inherits from :class:`OSError` and :class:`LFCError`
    """
    pass


class LFCNotFoundError(FileNotFoundError, LFCError):
    r"""Error class for a well-formed pointer w/o a local store entry

    Usually means the local store was never synced with the one that
    cleaned the file.

    Inherits from :class:`FileNotFoundError` and :class:`LFCError`
    """
    pass


class LFCPointerError(ValueError, LFCError):
    r"""Error class for blobs that are not valid ``lfc`` pointers

    Usually means a filter is applied to a file that was committed
    without it (configuration mistake) or the pointer was corrupted.

    Inherits from :class:`ValueError` and :class:`LFCError`
    """
    pass


class LFCRepoError(SystemError, LFCError):
    r"""Error class for failing to locate the git repository"""
    pass


class LFCTypeError(TypeError, LFCError):
    r"""Exception for unexpected type of parameter in :mod:`lfcfilter`
    """
    pass


class LFCValueError(ValueError, LFCError):
    r"""Error class for wrong values in LFC"""
    pass


# Check argument types
def assert_isinstance(obj, cls_or_tuple, desc: str):
    r"""Raise an :class:`LFCTypeError` unless *obj* has an allowed type

    :Call:
        >>> assert_isinstance(obj, cls_or_tuple, desc)
    :Inputs:
        *obj*: :class:`object`
            Value passed by caller
        *cls_or_tuple*: :class:`type` | :class:`tuple`\ [:class:`type`]
            Allowed type(s)
        *desc*: :class:`str`
            What *obj* is, for example ``"store root"``
    :Raises:
        :class:`LFCTypeError`
    """
    if not isinstance(obj, cls_or_tuple):
        raise LFCTypeError(_genr8_type_error(obj, cls_or_tuple, desc))


def _genr8_type_error(obj, cls_or_tuple, desc: str) -> str:
    # Names of allowed types; None shows up as NoneType
    if not isinstance(cls_or_tuple, tuple):
        cls_or_tuple = (cls_or_tuple,)
    names = " | ".join(cls.__name__ for cls in cls_or_tuple)
    # Message like "Invalid store root: got int; expected str | PathLike"
    return f"Invalid {desc}: got {type(obj).__name__}; expected {names}"
