import logging
from typing import Callable, List, Optional

from pydantic import BaseModel

log = logging.getLogger(__name__)

RESTART_NOTICE = "You must restart this device after saving for changes to take effect."


class Notice(BaseModel):
    level: str  # success, warning or error
    message: str


class Notifier:
    """Collects operator-facing notices and forwards them to an optional sink.

    Rendering is left to the caller; without a sink the notices are only logged
    and kept in ``notices``.
    """

    def __init__(self, sink: Optional[Callable[[Notice], None]] = None):
        self.sink = sink
        self.notices: List[Notice] = []

    def success(self, message: str):
        self._emit("success", message)

    def warning(self, message: str):
        self._emit("warning", message)

    def error(self, message: str):
        self._emit("error", message)

    def _emit(self, level: str, message: str):
        notice = Notice(level=level, message=message)
        self.notices.append(notice)
        if level == "error":
            log.error(message)
        elif level == "warning":
            log.warning(message)
        else:
            log.info(message)
        if self.sink:
            self.sink(notice)
