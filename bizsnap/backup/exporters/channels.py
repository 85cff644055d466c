"""Export sinks that receive a rendered backup as ``(text, filename)``."""

import webbrowser
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import quote

from ...base import Clock, SystemClock
from ..._utils import logger

ShareSurface = Callable[[str, str, str, str], Awaitable[Any]]
Opener = Callable[[str], Any]

SHARE_DESTINATIONS: Dict[str, str] = {
    "whatsapp": "https://wa.me/?text={message}",
    "drive": "https://drive.google.com/",
    "dropbox": "https://www.dropbox.com/home",
    "onedrive": "https://onedrive.live.com/",
    "email": "mailto:?subject={title}&body={message}",
}


class ExportChannel(ABC):
    name: str = ""

    @abstractmethod
    async def send(self, text: str, filename: str) -> Optional[str]:
        """Deliver the payload; return where it went, if known."""
        ...


class FileChannel(ExportChannel):
    """Local save of the export into a directory."""

    name = "file"

    def __init__(self, output_dir: str = "./exports"):
        self.output_dir = Path(output_dir)

    async def send(self, text: str, filename: str) -> str:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / filename
        path.write_text(text, encoding="utf-8")
        logger.info(f"Exported backup to {path} ({len(text):,} chars)")
        return str(path)


class ShareChannel(ExportChannel):
    """Hand the payload to an external share surface (messaging, cloud drive).

    Without a share surface, or when it fails, the file is saved locally and the
    channel's destination is opened so the user can attach it by hand.
    """

    def __init__(
        self,
        name: str,
        fallback: FileChannel,
        share_surface: Optional[ShareSurface] = None,
        opener: Optional[Opener] = None,
        app_title: str = "Business management system",
        clock: Optional[Clock] = None,
    ):
        if name not in SHARE_DESTINATIONS:
            raise ValueError(f"Unknown share channel: {name}. Available: {sorted(SHARE_DESTINATIONS)}")
        self.name = name
        self.fallback = fallback
        self.share_surface = share_surface
        self.opener = opener or webbrowser.open_new_tab
        self.app_title = app_title
        self.clock = clock or SystemClock()

    @property
    def title(self) -> str:
        return f"Backup - {self.app_title}"

    def build_message(self, text: str, filename: str) -> str:
        return (
            f"Backup from {self.app_title}\n\n"
            f"Date: {self.clock.now().date().isoformat()}\n"
            f"File: {filename}\n"
            f"Size: {len(text.encode('utf-8')) / 1024:.2f} KB\n\n"
            f"Please keep this file in a safe place"
        )

    def destination_url(self, message: str) -> str:
        return SHARE_DESTINATIONS[self.name].format(title=quote(self.title), message=quote(message))

    async def send(self, text: str, filename: str) -> Optional[str]:
        message = self.build_message(text, filename)

        if self.share_surface is not None:
            try:
                await self.share_surface(self.title, message, text, filename)
                logger.info(f"Shared {filename} via {self.name}")
                return f"share:{self.name}"
            except Exception as e:
                logger.warning(f"Share via {self.name} failed, falling back to download: {e}")

        location = await self.fallback.send(text, filename)
        self.opener(self.destination_url(message))
        logger.info(f"Opened {self.name} destination; attach {filename} manually")
        return location
