"""
Logging for optic_measure.

Modules take their logger from get_logger(__name__); all of them are children
of the 'optic_measure' logger. A host application that wants a log file calls
start_logging() once from its main process. Records are then queued to a
separate writer process that appends them to a rotating file and fsyncs after
each one, so nothing already logged is lost if the capture process dies.
Without start_logging() records propagate to whatever the host configured.
"""
from __future__ import annotations

import atexit
import logging
import multiprocessing as mp
import os
from dataclasses import dataclass
from datetime import datetime
from logging.handlers import QueueHandler, RotatingFileHandler
from pathlib import Path

LOGGER_NAME = "optic_measure"
LOG_DIR_ENV = "OPTIC_MEASURE_LOG_DIR"

FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s %(message)s"
MAX_LOG_BYTES = 5_000_000
LOG_BACKUPS = 5

_STOP = None  # QueueHandler never enqueues None


@dataclass
class _Writer:
    queue: mp.Queue
    process: mp.Process
    handler: QueueHandler
    log_path: Path


_writer: _Writer | None = None


def log_dir() -> Path:
    return Path(os.environ.get(LOG_DIR_ENV, Path.home() / "OpticMeasureLogs"))


class _DurableFileHandler(RotatingFileHandler):
    """Rotating file handler that flushes and fsyncs after every record."""

    def emit(self, record: logging.LogRecord) -> None:
        super().emit(record)
        self.flush()
        if self.stream is not None:
            os.fsync(self.stream.fileno())


def _drain(queue: mp.Queue, log_path: str, level: int) -> None:
    """Writer process: file every queued record until the stop sentinel."""
    handler = _DurableFileHandler(log_path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    handler.setLevel(level)
    try:
        for record in iter(queue.get, _STOP):
            handler.handle(record)
    finally:
        handler.close()


def start_logging(level: int = logging.INFO) -> Path | None:
    """
    Start the writer process and attach a QueueHandler to the app logger.
    Returns the log file path; repeated calls return the running writer's
    path. Child processes get None and leave logging alone.
    """
    global _writer

    if _writer is not None:
        return _writer.log_path
    if mp.current_process().name != "MainProcess":
        return None

    directory = log_dir()
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / f"optic_measure_{datetime.now():%Y%m%d_%H%M%S}.log"

    ctx = mp.get_context("spawn")
    queue = ctx.Queue()
    process = ctx.Process(target=_drain, args=(queue, str(log_path), level), name="OpticMeasureLogWriter")
    process.start()

    handler = QueueHandler(queue)
    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.setLevel(level)
    app_logger.addHandler(handler)

    _writer = _Writer(queue=queue, process=process, handler=handler, log_path=log_path)
    atexit.register(shutdown_logging)
    return log_path


def get_logger(name: str | None = None) -> logging.Logger:
    """The app logger, or a child of it. Accepts __name__ of package modules as is."""
    if not name or name == LOGGER_NAME:
        return logging.getLogger(LOGGER_NAME)
    if name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def shutdown_logging(timeout: float = 2.0) -> None:
    """Detach the queue handler and stop the writer. No-op when not started."""
    global _writer

    writer, _writer = _writer, None
    if writer is None:
        return
    atexit.unregister(shutdown_logging)

    logging.getLogger(LOGGER_NAME).removeHandler(writer.handler)
    writer.handler.close()

    writer.queue.put(_STOP)
    writer.process.join(timeout)
    if writer.process.is_alive():
        writer.process.terminate()
    writer.queue.close()
