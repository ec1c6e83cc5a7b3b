from __future__ import annotations

import gzip
import logging
import os
import shutil
import time
from logging.handlers import TimedRotatingFileHandler

from crudkit.core.config import Settings

LOG_FORMAT = "[%(levelname)s]-[%(asctime)s] %(name)s: %(message)s"
_HANDLER_TAG = "_crudkit_handler"


class DailyFileHandler(TimedRotatingFileHandler):
    """Writes ``log-YYYY-MM-DD.log`` and rotates at midnight (UTC).

    Rotated files older than ``retention_days`` are either deleted or, with
    ``archive=True``, gzipped into ``<log_dir>/archived``.
    """

    def __init__(self, log_dir: str, retention_days: int, archive: bool = True):
        self.log_dir = log_dir
        self.archive_dir = os.path.join(log_dir, "archived")
        self.archive = archive
        os.makedirs(self.archive_dir, exist_ok=True)
        super().__init__(
            os.path.join(log_dir, "current.log"),
            when="midnight",
            utc=True,
            backupCount=max(int(retention_days), 1),
            encoding="utf-8",
            delay=True,
        )
        self.namer = self._dated_name
        if archive:
            self.rotator = self._gzip_rotator

    def _dated_name(self, default_name: str) -> str:
        # default_name is "<base>.<YYYY-MM-DD>"
        stamp = default_name.rsplit(".", 1)[-1]
        return os.path.join(self.log_dir, f"log-{stamp}.log")

    def _gzip_rotator(self, source: str, dest: str) -> None:
        archived = os.path.join(self.archive_dir, os.path.basename(dest) + ".gz")
        with open(source, "rb") as src, gzip.open(archived, "wb") as out:
            shutil.copyfileobj(src, out)
        os.remove(source)

    def getFilesToDelete(self):
        if self.archive:
            directory = self.archive_dir
            suffix = ".log.gz"
        else:
            directory = self.log_dir
            suffix = ".log"
        names = sorted(
            name
            for name in os.listdir(directory)
            if name.startswith("log-") and name.endswith(suffix)
        )
        if len(names) <= self.backupCount:
            return []
        return [os.path.join(directory, name) for name in names[: len(names) - self.backupCount]]


def configure_logging(settings: Settings) -> logging.Logger:
    root = logging.getLogger("crudkit")
    root.setLevel(str(settings.LOG_LEVEL or "INFO").upper())
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    formatter.converter = time.gmtime

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    setattr(console, _HANDLER_TAG, True)
    root.addHandler(console)

    if settings.LOG_FILE_ENABLED:
        file_handler = DailyFileHandler(
            settings.LOG_DIR,
            settings.LOG_RETENTION_DAYS,
            archive=settings.LOG_ZIP_INSTEAD_OF_DELETE,
        )
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_TAG, True)
        root.addHandler(file_handler)

    root.propagate = False
    return root
