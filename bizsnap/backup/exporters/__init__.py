"""Export channels for rendered backups."""

from .channels import SHARE_DESTINATIONS, ExportChannel, FileChannel, ShareChannel

__all__ = ["ExportChannel", "FileChannel", "ShareChannel", "SHARE_DESTINATIONS"]
