"""
Logger - one "preset_library" logger shared by store, sync, previews and codec

Usage:
    from src.utils.logger import logger

    logger.info("Snapshot written", component="sync")
    logger.warning("Render failed", component="preview", details=str(e))
    logger.store("add_preset ignored: blank name")

Component keys come from LOG_COMPONENTS and show up as a tag, e.g.
"[SYNC] Snapshot written". Every record is also emitted as a Qt signal so a
console widget can show it.
"""

import logging
import sys
from datetime import datetime
from typing import Optional
from PyQt5.QtCore import QObject, pyqtSignal

from src.config import LOG_COMPONENTS, LOG_LEVEL


class LogSignalEmitter(QObject):
    log_message = pyqtSignal(str, int, str)  # message, level, HH:MM:SS


class QtSignalHandler(logging.Handler):
    """Forwards formatted records to LogSignalEmitter.log_message."""

    def __init__(self, emitter: LogSignalEmitter):
        super().__init__(logging.DEBUG)
        self.emitter = emitter

    def emit(self, record: logging.LogRecord):
        try:
            self.emitter.log_message.emit(
                self.format(record),
                record.levelno,
                datetime.fromtimestamp(record.created).strftime("%H:%M:%S"),
            )
        except Exception:
            self.handleError(record)


class PresetLibraryLogger:
    """Thin wrapper adding component tags and details to stdlib logging."""

    def __init__(self, name: str = "preset_library", console_level: str = LOG_LEVEL):
        self._logger = logging.getLogger(name)
        self._logger.setLevel(logging.DEBUG)
        self._logger.propagate = False

        console = logging.StreamHandler(sys.stdout)
        console.setLevel(console_level)
        console.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S"
        ))
        self._logger.addHandler(console)

        self.signal_emitter = LogSignalEmitter()
        self._logger.addHandler(QtSignalHandler(self.signal_emitter))

    @staticmethod
    def tag(component: Optional[str]) -> Optional[str]:
        """Display tag for a component key; unknown keys are shown upper-cased."""
        if not component:
            return None
        return LOG_COMPONENTS.get(component, component.upper())

    def format_message(self, msg: str, component: Optional[str] = None,
                       details: Optional[str] = None) -> str:
        tag = self.tag(component)
        text = f"[{tag}] {msg}" if tag else msg
        return f"{text} - {details}" if details else text

    def log(self, level: int, msg: str, component: Optional[str] = None,
            details: Optional[str] = None):
        self._logger.log(level, self.format_message(msg, component, details))

    def debug(self, msg, component=None, details=None):
        self.log(logging.DEBUG, msg, component, details)

    def info(self, msg, component=None, details=None):
        self.log(logging.INFO, msg, component, details)

    def warning(self, msg, component=None, details=None):
        self.log(logging.WARNING, msg, component, details)

    def error(self, msg, component=None, details=None):
        self.log(logging.ERROR, msg, component, details)

    # Debug-level shortcuts for the chattiest components
    def store(self, msg: str, details: Optional[str] = None):
        self.debug(msg, "store", details)

    def preview(self, msg: str, details: Optional[str] = None):
        self.debug(msg, "preview", details)

    def sync(self, msg: str, details: Optional[str] = None):
        self.debug(msg, "sync", details)


logger = PresetLibraryLogger()
