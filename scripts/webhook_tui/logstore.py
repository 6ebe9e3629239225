from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from pathlib import Path

CATEGORIES = {"system", "templates", "dispatch"}
REDACTED = "***"


@dataclass
class LogEntry:
    ts: float
    level: str
    category: str
    message: str
    ref: str = ""

    def format_line(self) -> str:
        stamp = time.strftime("%H:%M:%S", time.localtime(self.ts))
        return f"{stamp} [{self.level.upper():5}] [{self.category or 'system'}] [{self.ref or '-'}] {self.message}"


def _check_writable(directory: Path) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    marker = directory / ".write-test"
    with marker.open("w", encoding="utf-8") as fh:
        fh.write("ok\n")
    marker.unlink(missing_ok=True)


class LogStore:
    """Session log: a bounded in-memory tail plus a per-run file.

    Any string registered with ``add_secret`` is replaced before the entry is
    stored, so webhook tokens never reach the screen or the file.
    """

    def __init__(self, max_entries: int = 2000, log_dir: Path | None = None) -> None:
        self.entries: deque[LogEntry] = deque(maxlen=max_entries)
        self.secrets: list[str] = []
        self.log_dir, fallback_reason = self._pick_log_dir(log_dir)
        self.log_path = self.log_dir / time.strftime("ptwebhook-%Y%m%d-%H%M%S.log", time.localtime())
        note = f" (fallback: {fallback_reason})" if fallback_reason else ""
        self.append("info", "system", f"log_path={self.log_path}{note}")

    @staticmethod
    def _pick_log_dir(log_dir: Path | None) -> tuple[Path, str]:
        fallback = Path.home() / ".cache" / "ptwebhook" / "logs"
        if log_dir is None or log_dir == fallback:
            _check_writable(fallback)
            return fallback, ""
        try:
            _check_writable(log_dir)
            return log_dir, ""
        except PermissionError as exc:
            reason = f"permission denied for {log_dir}: {exc}"
        except OSError as exc:
            reason = f"cannot use {log_dir}: {exc}"
        _check_writable(fallback)
        return fallback, reason

    def add_secret(self, secret: str) -> None:
        if secret and secret not in self.secrets:
            self.secrets.append(secret)

    def redact(self, text: str) -> str:
        for secret in self.secrets:
            text = text.replace(secret, REDACTED)
        return text

    def append(
        self,
        level: str,
        category: str,
        message: str,
        ref: str = "",
        ts: float | None = None,
    ) -> LogEntry:
        entry = LogEntry(ts=ts or time.time(), level=level, category=category, message=self.redact(message), ref=ref)
        self.entries.append(entry)
        with self.log_path.open("a", encoding="utf-8") as fh:
            fh.write(entry.format_line() + "\n")
        return entry

    def filtered(self, levels: set[str], search: str = "", categories: set[str] | None = None) -> list[LogEntry]:
        needle = search.lower().strip()
        wanted = categories or CATEGORIES
        return [
            entry
            for entry in self.entries
            if entry.level in levels
            and entry.category in wanted
            and (not needle or needle in entry.format_line().lower())
        ]
