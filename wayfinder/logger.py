"""Logging module for Wayfinder."""

import json
import math
from datetime import datetime
from typing import Optional, Callable


def _json_default(value):
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


def _clean(value):
    """Replace non-finite floats so the payload stays valid JSON"""
    if isinstance(value, float) and not math.isfinite(value):
        return "inf" if value > 0 else "-inf" if value < 0 else "nan"
    if isinstance(value, dict):
        return {k: _clean(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_clean(v) for v in value]
    return value


class Logger:
    """Logs state to stdout and, optionally, a file"""

    def __init__(self, log_path: Optional[str] = None, callback: Optional[Callable] = None,
                 quiet: bool = False):
        self.log_path = log_path
        self.callback = callback
        self.quiet = quiet
        self.file = None
        if log_path:
            self.file = open(log_path, "a")
            self._write_header()

    def _write_header(self):
        if self.file:
            self.file.write(f"\n{'='*60}\n")
            self.file.write(f"Wayfinder Log - {datetime.now().isoformat()}\n")
            self.file.write(f"{'='*60}\n\n")
            self.file.flush()

    def log(self, message: str, data: Optional[dict] = None):
        """Log a message with optional structured data"""
        timestamp = datetime.now().isoformat()
        line = f"[{timestamp}] {message}"
        if data:
            line += f" | {json.dumps(_clean(data), default=_json_default)}"
        if not self.quiet:
            print(line)
        if self.file:
            self.file.write(line + "\n")
            self.file.flush()
        if self.callback:
            self.callback(message, data)

    def close(self):
        if self.file:
            self.file.close()
            self.file = None


# Shared stdout logger for components constructed without one
default_logger = Logger()
