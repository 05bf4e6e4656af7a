"""Google Drive access."""

from .client import DRIVE_SCOPES, DriveClient

__all__ = ["DRIVE_SCOPES", "DriveClient"]
