r"""
``lfcconfig``: Locate the store and read filter settings
==================================================================

The filters need to know one thing, where the store is. In order of
priority it is

    1.  the ``--store`` option (*store* keyword)
    2.  the ``core.store`` option in ``$GIT_DIR/lfc/config``
    3.  ``$GIT_DIR/lfc/store``

where ``$GIT_DIR`` is the private folder of the current repository
(usually ``.git/``), so the store is never versioned itself.

The config file is an INI file read with :mod:`configparser`:

    .. code-block:: ini

        [core]
        store = /data/lfc-store
        fsync = true
        verbose = false

A relative *store* is relative to ``$GIT_DIR``.
"""

# Standard library
import os
from configparser import ConfigParser
from subprocess import Popen, PIPE

# Local imports
from .lfcerror import LFCRepoError, LFCValueError


# Folder within $GIT_DIR for lfc files
LFC_DIR = "lfc"
# Default store folder within LFC_DIR
DEFAULT_STORE = "store"

# Default values for [core] options
DEFAULT_OPTS = {
    "fsync": True,
    "verbose": False,
}


def get_gitdir(where=None) -> str:
    r"""Get absolute path to the ``.git`` folder of a repository

    :Call:
        >>> gitdir = get_gitdir(where=None)
    :Inputs:
        *where*: {``None``} | :class:`str`
            Folder inside repo (default is CWD)
    :Outputs:
        *gitdir*: :class:`str`
            Absolute path to git-dir, e.g. ``/home/me/repo/.git``
    :Raises:
        :class:`LFCRepoError` if *where* is not in a git repo
    """
    # Default location
    cwd = os.getcwd() if where is None else os.fspath(where)
    # Ask git
    cmdlist = ["git", "rev-parse", "--git-dir"]
    try:
        proc = Popen(cmdlist, stdout=PIPE, stderr=PIPE, cwd=cwd)
    except OSError as err:
        raise LFCRepoError(
            f"Can't run git to find repository: {err}") from err
    # Wait for command
    stdout, stderr = proc.communicate()
    # Check status
    if proc.returncode:
        # Fixed portion of message
        msg = (
            f"No --store given and '{cwd}' is not in a git repo\n"
            f"Return code: {proc.returncode}")
        # Check for STDERR
        if stderr:
            msg += "\nSTDERR: %s" % stderr.decode("utf-8", "replace").strip()
        raise LFCRepoError(msg)
    # Absolute path (--absolute-git-dir not avail on older git)
    gitdir = stdout.decode("utf-8").strip()
    return os.path.realpath(os.path.join(cwd, gitdir))


def get_lfc_configfile(gitdir: str) -> str:
    r"""Get name of LFC configuration file

    :Call:
        >>> fcfg = get_lfc_configfile(gitdir)
    :Inputs:
        *gitdir*: :class:`str`
            Absolute path to git-dir
    :Outputs:
        *fcfg*: :class:`str`
            Absolute path to ``$GIT_DIR/lfc/config``
    """
    return os.path.join(gitdir, LFC_DIR, "config")


def read_lfc_config(gitdir=None) -> ConfigParser:
    r"""Read LFC config file; empty config if there is none

    :Call:
        >>> config = read_lfc_config(gitdir=None)
    :Inputs:
        *gitdir*: {``None``} | :class:`str`
            Absolute path to git-dir; ``None`` for empty config
    :Outputs:
        *config*: :class:`configparser.ConfigParser`
            Python interface to LFC configuration
    """
    # Initialize config interface
    config = ConfigParser()
    # Nothing to read w/o repo
    if gitdir is None:
        return config
    # Path to file
    fcfg = get_lfc_configfile(gitdir)
    # Read it if present
    if os.path.isfile(fcfg):
        config.read(fcfg)
    # Output
    return config


def lfc_config_get(config: ConfigParser, fullopt: str, vdef=None):
    r"""Get an option from the LFC config, converting to default's type

    :Call:
        >>> val = lfc_config_get(config, fullopt, vdef=None)
    :Inputs:
        *config*: :class:`configparser.ConfigParser`
            Python interface to LFC configuration
        *fullopt*: :class:`str`
            Full option name, ``"{sec}.{opt}"``
        *vdef*: {``None``} | :class:`bool` | :class:`str`
            Value if option is missing; if :class:`bool`, the raw value
            is parsed as a boolean
    :Outputs:
        *val*: :class:`object`
            Value of option or *vdef*
    """
    # Split into section
    section, opt = _split_fullopt(fullopt)
    # Check if present
    if not config.has_option(section, opt):
        return vdef
    # Convert booleans
    if isinstance(vdef, bool):
        try:
            return config.getboolean(section, opt)
        except ValueError:
            raise LFCValueError(
                f"LFC config option '{fullopt}' must be true or false; "
                f"got {config.get(section, opt)!r}") from None
    # Raw string
    return config.get(section, opt)


def read_settings(store=None, where=None) -> dict:
    r"""Resolve store location and filter options

    :Call:
        >>> opts = read_settings(store=None, where=None)
    :Inputs:
        *store*: {``None``} | :class:`str`
            Explicit store folder; skips repo lookup if given
        *where*: {``None``} | :class:`str`
            Folder inside repo (default is CWD)
    :Outputs:
        *opts*: :class:`dict`
            Keys ``"store"`` (absolute path), ``"fsync"``, ``"verbose"``
    :Raises:
        :class:`LFCRepoError` if *store* is ``None`` and *where* is not
        in a git repo
    """
    # Find repo
    try:
        gitdir = get_gitdir(where)
    except LFCRepoError:
        # Only needed if no explicit store
        if store is None:
            raise
        gitdir = None
    # Read config
    config = read_lfc_config(gitdir)
    # Initialize settings
    opts = {}
    for opt, vdef in DEFAULT_OPTS.items():
        opts[opt] = lfc_config_get(config, f"core.{opt}", vdef)
    # Store location
    if store is not None:
        fstore = os.path.abspath(os.fspath(store))
    else:
        fstore = lfc_config_get(config, "core.store")
        # Default location
        if not fstore:
            fstore = os.path.join(gitdir, LFC_DIR, DEFAULT_STORE)
        # Relative to git-dir
        fstore = os.path.join(gitdir, os.path.expanduser(fstore))
    opts["store"] = os.path.normpath(fstore)
    # Output
    return opts


def _split_fullopt(fullopt: str):
    r"""Split full option name into section and option"""
    # Check for a dot
    if "." not in fullopt:
        raise LFCValueError(
            "Option name '%s' must contain '.'" % fullopt)
    # Split into exactly two parts
    return fullopt.split(".", 1)
