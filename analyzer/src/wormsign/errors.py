"""Exceptions raised by worm-sign.

ScanError carries a human readable message naming the missing artifact; the
CLI matches on substrings of it to print hints, so keep the wording stable.
"""


class WormSignError(Exception):
    pass


class ScanError(WormSignError):
    """A scan cannot produce a result (missing package.json, lockfile, list)."""


class LockfileParseError(WormSignError):
    """A lockfile is structurally invalid for the handler that read it."""


class SourceFetchError(WormSignError):
    """A threat-intelligence feed could not be fetched or decoded."""


class UrlValidationError(SourceFetchError):
    """A feed URL was refused (non-HTTPS, unresolvable or private address)."""
