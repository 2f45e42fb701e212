"""
Structured action log.

Entries are buffered in memory and appended to the live log file as one
JSON object per line. The buffer is flushed when it reaches capacity, on a
periodic timer, and on stop. Before each flush the live file is rotated if
it has reached the size threshold:

    app.log -> app.1.log -> app.2.log -> ... -> app.<max_log_files>.log

Failures to write or rotate are reported through :mod:`logging` and never
raised to the producer.
"""
import json
import logging
import os
import threading
from pathlib import Path
from typing import Optional

from .models import LOG_LEVELS, LogEntry

DEFAULT_MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MiB
DEFAULT_MAX_LOG_FILES = 5
DEFAULT_BUFFER_SIZE = 100
DEFAULT_FLUSH_INTERVAL = 5.0  # seconds

ACTION_WINDOW_CHANGE = "window_change"
ACTION_RULE_MATCH = "rule_match"
ACTION_SWITCH_SUCCESS = "switch_success"
ACTION_SWITCH_FAILED = "switch_failed"


class LogWriteError(OSError):
    """Writing buffered entries to the live log file failed."""


class RotationError(LogWriteError):
    """Rotating the log file generations failed."""


class ActionLog:
    """
    Append-only, size-rotated log of observed and attempted input switches.

    A single mutex guards the buffer and the open file; it is shared by
    ``record`` and the periodic flush thread. ``flush`` on an empty buffer
    is a no-op, so redundant triggers are harmless.
    """

    def __init__(
        self,
        log_path,
        max_log_size: int = DEFAULT_MAX_LOG_SIZE,
        max_log_files: int = DEFAULT_MAX_LOG_FILES,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL,
    ):
        """
        Initialize the action log.

        :param log_path: Path of the live log file
        :param max_log_size: Rotate once the live file reaches this many bytes
        :param max_log_files: Number of rotated generations to keep
        :param buffer_size: Flush synchronously once this many entries are buffered
        :param flush_interval: Seconds between periodic flushes
        """
        if max_log_files < 1:
            raise ValueError("max_log_files must be at least 1")
        if buffer_size < 1:
            raise ValueError("buffer_size must be at least 1")

        self.logger = logging.getLogger(__name__)
        self.log_path = Path(log_path)
        self.max_log_size = max_log_size
        self.max_log_files = max_log_files
        self.buffer_size = buffer_size
        self.flush_interval = flush_interval
        self.enabled = True

        self._buffer: list[LogEntry] = []
        self._lock = threading.Lock()
        self._file = None
        self._flush_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    # ========== lifecycle ==========

    def start(self):
        """
        Open (or create) the live log file and start the periodic flush.

        :raises OSError: If the log directory or file cannot be created
        """
        with self._lock:
            if self._file is None:
                self._open()

        if self._flush_thread is not None:
            return

        self._stop_event = threading.Event()
        self._flush_thread = threading.Thread(
            target=self._flush_loop, args=(self._stop_event,), name="action-log-flush", daemon=True
        )
        self._flush_thread.start()
        self.logger.debug(f"Action log started at {self.log_path}")

    def stop(self):
        """
        Stop the periodic flush, write out everything buffered, and close the file.
        """
        thread = self._flush_thread
        if thread is not None:
            self._stop_event.set()
            thread.join()
            self._flush_thread = None

        with self._lock:
            self._flush_locked()
            self._close()
        self.logger.debug("Action log stopped")

    def _flush_loop(self, stop_event: threading.Event):
        while not stop_event.wait(self.flush_interval):
            self.flush()

    def _open(self):
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.log_path, "a", encoding="utf-8")

    def _close(self):
        if self._file is not None:
            try:
                self._file.close()
            except OSError as e:
                self.logger.error(f"Failed to close log file: {e}")
            self._file = None

    # ========== producers ==========

    def set_enabled(self, enabled: bool):
        """When disabled, every ``record`` call is a no-op."""
        self.enabled = bool(enabled)

    @property
    def pending(self) -> int:
        """Number of buffered entries not yet written."""
        with self._lock:
            return len(self._buffer)

    def record(self, entry: LogEntry):
        """
        Buffer an entry, flushing synchronously if the buffer is full.

        :param entry: LogEntry to append
        """
        if not self.enabled:
            return

        with self._lock:
            self._buffer.append(entry)
            if len(self._buffer) >= self.buffer_size:
                self._flush_locked()

    def log(self, level: str, message: str, **fields):
        if level not in LOG_LEVELS:
            raise ValueError(f"invalid log level '{level}'")
        self.record(LogEntry(level=level, message=message, **fields))

    def debug(self, message: str):
        self.log("debug", message)

    def info(self, message: str):
        self.log("info", message)

    def warn(self, message: str):
        self.log("warn", message)

    def error(self, message: str):
        self.log("error", message)

    def window_change(self, app_name: str, window_name: str):
        self.log("info", f"Window changed: {app_name} ({window_name})",
                 app_name=app_name, action=ACTION_WINDOW_CHANGE)

    def rule_match(self, app_name: str, input_id: str):
        self.log("info", f"Rule matched: {app_name} -> {input_id}",
                 app_name=app_name, input=input_id, action=ACTION_RULE_MATCH)

    def input_switch(self, app_name: str, input_id: str, action: str, error=None):
        """Record the outcome of a switch attempt; failures are logged at error level."""
        message = f"Input switch: {app_name} -> {input_id}"
        error_msg = ""
        level = "info"
        if error is not None:
            error_msg = str(error)
            message += f" (failed: {error_msg})"
            level = "error"
        self.log(level, message, app_name=app_name, input=input_id, action=action, error=error_msg)

    # ========== flushing and rotation ==========

    def flush(self):
        """Write all buffered entries to the live file and sync it to disk."""
        with self._lock:
            self._flush_locked()

    def _flush_locked(self):
        if not self._buffer:
            return

        entries = self._buffer
        self._buffer = []

        try:
            if self._file is None:
                self._open()
        except OSError as e:
            self.logger.error(f"Failed to open log file {self.log_path}, dropping {len(entries)} entries: {e}")
            return

        try:
            self._rotate_if_needed()
        except RotationError as e:
            # Keep appending to the oversized file until a later rotation succeeds
            self.logger.error(f"Failed to rotate log: {e}")
            if self._file is None:
                return

        lines = []
        for entry in entries:
            try:
                lines.append(json.dumps(entry.to_dict(), ensure_ascii=False))
            except (TypeError, ValueError) as e:
                self.logger.error(f"Failed to serialize log entry, dropping it: {e}")

        try:
            self._write_lines(lines)
        except LogWriteError as e:
            self.logger.error(str(e))

    def _write_lines(self, lines):
        try:
            for line in lines:
                self._file.write(line + "\n")
            self._file.flush()
            os.fsync(self._file.fileno())
        except OSError as e:
            raise LogWriteError(f"Failed to write log entries to {self.log_path}: {e}") from e

    def _current_size(self) -> int:
        try:
            return os.fstat(self._file.fileno()).st_size
        except (OSError, ValueError):
            return 0

    def _rotate_if_needed(self):
        if self._current_size() >= self.max_log_size:
            self._rotate_locked()

    def generation_path(self, n: int) -> Path:
        """Path of rotated generation ``n``, e.g. ``app.3.log``."""
        return self.log_path.with_name(f"{self.log_path.stem}.{n}{self.log_path.suffix}")

    def rotate(self):
        """
        Shift rotated generations up by one and start a fresh live file.

        The oldest generation is deleted. Buffered entries are written to
        the current file first.

        :raises RotationError: If a rename or delete fails
        """
        with self._lock:
            self._flush_locked()
            self._rotate_locked()

    def _rotate_locked(self):
        self._close()
        try:
            oldest = self.generation_path(self.max_log_files)
            if oldest.exists():
                oldest.unlink()

            for k in range(self.max_log_files - 1, 0, -1):
                current = self.generation_path(k)
                if current.exists():
                    os.replace(current, self.generation_path(k + 1))

            if self.log_path.exists():
                os.replace(self.log_path, self.generation_path(1))
        except OSError as e:
            raise RotationError(f"Failed to rotate {self.log_path}: {e}") from e
        finally:
            try:
                self._open()
            except OSError as e:
                self.logger.error(f"Failed to reopen log file {self.log_path}: {e}")

        self.logger.info(f"Rotated log file {self.log_path}")

    # ========== readers ==========

    def _read_entries(self) -> list[LogEntry]:
        entries = []
        try:
            # Binary mode: a torn or corrupt line fails to decode on its own
            with open(self.log_path, "rb") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(LogEntry.from_dict(json.loads(line.decode("utf-8"))))
                    except (ValueError, KeyError, TypeError) as e:
                        self.logger.debug(f"Skipping unreadable log line: {e}")
        except FileNotFoundError:
            return []
        return entries

    def recent_entries(self, limit: int) -> list[LogEntry]:
        """
        Last ``limit`` entries of the live file in chronological order.

        Scans the whole live file; buffered entries that have not been
        flushed yet are not included.
        """
        if limit <= 0:
            return []
        return self._read_entries()[-limit:]

    def stats(self) -> dict:
        """Entry counts per level and the size of the live file in bytes."""
        stats = {
            "total_size": 0,
            "total_entries": 0,
            "debug_count": 0,
            "info_count": 0,
            "warn_count": 0,
            "error_count": 0,
        }
        try:
            stats["total_size"] = self.log_path.stat().st_size
        except FileNotFoundError:
            return stats

        for entry in self._read_entries():
            stats["total_entries"] += 1
            key = f"{entry.level}_count"
            if key in stats:
                stats[key] += 1
        return stats

    def clear(self):
        """
        Drop buffered entries and truncate the live file. Rotated
        generations are left untouched.
        """
        with self._lock:
            self._buffer = []
            self._close()
            try:
                self.log_path.unlink()
            except FileNotFoundError:
                pass
            self._open()
        self.logger.info(f"Cleared log file {self.log_path}")
