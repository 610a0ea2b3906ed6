# nay/modules/errors.py
"""Exception taxonomy shared by the nay modules."""

from __future__ import annotations


class NayError(Exception):
    """Base class for every failure nay reports."""


class InvalidPackageName(NayError, ValueError):
    pass


class RunnerError(NayError):
    """An external command could not be started at all."""


class OfficialInstallError(NayError):
    pass


class NotFoundError(NayError):
    """Package is in neither the official repositories nor the AUR."""


class LookupFailed(NayError):
    pass


class NetworkError(LookupFailed):
    pass


class ProtocolError(LookupFailed):
    pass


class FetchError(NayError):
    pass


class BuildError(NayError):
    pass


class WorkspaceError(NayError, OSError):
    pass
