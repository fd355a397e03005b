import os
import datetime
import threading
import json

from rich.console import Console
from rich.markup import escape

from smartbuild.modules.config import config

# Shared so log lines from every module interleave in order
_console = Console(stderr=True, highlight=False)


class Logger:
    LEVELS = {
        "debug": 10,
        "info": 20,
        "success": 25,
        "warning": 30,
        "error": 40,
    }

    LOG_STYLES = {
        "DEBUG": "bright_black",
        "INFO": "blue",
        "SUCCESS": "green",
        "WARNING": "yellow",
        "ERROR": "bold red",
    }

    # Set by set_level(); overrides every instance's configured level
    forced_level = None

    def __init__(self, name="smartbuild", console=None):
        self.name = name
        self.console = console or _console
        self.log_file = config.get("logging", "log_file", fallback=".smartbuild/smartbuild.log")
        self.color_output = config.getboolean("logging", "color_output", fallback=True)
        self.log_to_file = config.getboolean("logging", "log_to_file", fallback=False)
        self.log_to_console = config.getboolean("logging", "log_to_console", fallback=True)
        self.use_utc = config.getboolean("logging", "timestamp_utc", fallback=False)
        self.log_format = config.get("logging", "log_format", fallback="text").lower()
        self.max_log_size_kb = config.getint("logging", "max_log_size_kb", fallback=0)

        level_str = config.get("logging", "level", fallback="info").lower()
        self.min_level = self.LEVELS.get(level_str, 20)

        if self.log_to_file:
            self._ensure_dir(self.log_file)

        self._lock = threading.Lock()

    def _ensure_dir(self, filepath):
        dirpath = os.path.dirname(filepath)
        if dirpath:
            os.makedirs(dirpath, exist_ok=True)

    def _get_timestamp(self):
        if self.use_utc:
            now = datetime.datetime.now(datetime.timezone.utc)
        else:
            now = datetime.datetime.now()
        return now.strftime("%Y-%m-%d %H:%M:%S")

    def _rotate_if_needed(self, filepath):
        if self.max_log_size_kb <= 0:
            return
        if os.path.exists(filepath) and os.path.getsize(filepath) > self.max_log_size_kb * 1024:
            rotated = filepath + ".1"
            if os.path.exists(rotated):
                os.remove(rotated)
            os.rename(filepath, rotated)

    def _write_file(self, message):
        if not self.log_to_file:
            return
        self._rotate_if_needed(self.log_file)
        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write(message + "\n")

    def _format_text(self, level, message):
        timestamp = self._get_timestamp()
        return f"[{timestamp}] [{self.name}] [{level}] {message}"

    def _format_json(self, level, message):
        return json.dumps({
            "timestamp": self._get_timestamp(),
            "logger": self.name,
            "level": level,
            "message": message
        })

    def _format_message(self, level, message):
        if self.log_format == "json":
            return self._format_json(level, message)
        return self._format_text(level, message)

    def _log_to_console(self, formatted, level):
        if not self.log_to_console:
            return
        if self.color_output and self.log_format == "text":
            style = self.LOG_STYLES.get(level, "")
            self.console.print(f"[{style}]{escape(formatted)}[/{style}]")
        else:
            self.console.print(formatted, markup=False)

    def _should_log(self, level):
        threshold = self.min_level if Logger.forced_level is None else Logger.forced_level
        return self.LEVELS.get(level.lower(), 0) >= threshold

    def log(self, level, message):
        level = level.upper()
        if not self._should_log(level):
            return

        formatted = self._format_message(level, message)
        with self._lock:
            self._log_to_console(formatted, level)
            self._write_file(formatted)

    def debug(self, message):
        self.log("DEBUG", message)

    def info(self, message):
        self.log("INFO", message)

    def success(self, message):
        self.log("SUCCESS", message)

    def warning(self, message):
        self.log("WARNING", message)

    def error(self, message):
        self.log("ERROR", message)


def set_level(level):
    """Force a minimum level on every logger, e.g. "debug" under --verbose."""
    Logger.forced_level = Logger.LEVELS.get(level.lower()) if level else None
