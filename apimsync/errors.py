"""Exceptions raised by apimsync operations."""


class ApimSyncError(Exception):
    """Base class for every apimsync error"""


class ConfigurationError(ApimSyncError):
    """A required setting (project, region, subscription...) is missing"""


class StoreError(ApimSyncError):
    """The local store could not be read or written; aborts the run"""


class BundleError(StoreError):
    """An API bundle archive is corrupt or tries to escape its target directory"""


class RemoteError(ApimSyncError):
    """A vendor API call failed for a single resource"""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code
