__version__ = "0.3.0"
__author__ = "bizsnap contributors"
__url__ = "https://github.com/bizsnap/bizsnap"

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .backup.manager import BackupService
    from .config import BizSnapConfig


def __getattr__(name):
    """Lazy import of the service facade and configuration."""
    if name == "BackupService":
        from .backup.manager import BackupService
        return BackupService
    elif name == "BizSnapConfig":
        from .config import BizSnapConfig
        return BizSnapConfig
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = ["BackupService", "BizSnapConfig", "__version__"]
