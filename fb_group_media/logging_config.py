"""Dual logging system: human-friendly console + detailed debug file."""

import logging
import re
import sys
from datetime import datetime
from pathlib import Path

import structlog

# Project root - same as config.py
PROJECT_ROOT = Path(__file__).parent.parent

LOGS_DIR = PROJECT_ROOT / "data" / "logs"
DEBUG_LOG_PATH = LOGS_DIR / "debug.log"


class HumanConsoleHandler(logging.Handler):
    """
    Custom handler that prints human-friendly messages to console.
    Filters out debug-level noise and formats messages nicely.
    """

    # Messages to suppress (too noisy for humans)
    SUPPRESS_PATTERNS = [
        "Done enqueuing",
        "No route matched",
    ]

    def emit(self, record):
        try:
            msg = self.format(record)

            for pattern in self.SUPPRESS_PATTERNS:
                if pattern in msg:
                    return

            if record.levelno < self.level:
                return

            print(msg, file=sys.stdout, flush=True)

        except Exception:
            self.handleError(record)


class HumanFormatter(logging.Formatter):
    """Formats log messages in a human-friendly way."""

    COLORS = {
        'INFO': '\033[92m',      # Green
        'WARNING': '\033[93m',   # Yellow
        'ERROR': '\033[91m',     # Red
        'RESET': '\033[0m',
        'DIM': '\033[2m',
    }

    def format(self, record):
        event_dict = record.msg if isinstance(record.msg, dict) else {}
        msg = event_dict.get("event", record.getMessage()) if event_dict else record.getMessage()
        level = record.levelname

        human_msg = self._humanize(str(msg), event_dict, level)
        timestamp = datetime.now().strftime("%H:%M:%S")

        if level == 'ERROR':
            return f"{self.COLORS['ERROR']}[{timestamp}] Error: {human_msg}{self.COLORS['RESET']}"
        elif level == 'WARNING':
            return f"{self.COLORS['WARNING']}[{timestamp}] Warning: {human_msg}{self.COLORS['RESET']}"
        else:
            return f"{self.COLORS['DIM']}[{timestamp}]{self.COLORS['RESET']} {human_msg}"

    def _humanize(self, msg: str, event_dict: dict, level: str) -> str:
        """Convert structured log messages to human-friendly text."""

        if "Enqueuing" in msg and "new links" in msg:
            count = event_dict.get("count", "?")
            total = event_dict.get("total", "?")
            return f"  +{count} links (total {total})"

        if "Starting infinite scroll" in msg:
            where = event_dict.get("tab") or event_dict.get("album_id") or ""
            return f"Scrolling {where}..."

        if "Pushed record" in msg:
            entry_type = event_dict.get("type", "entry")
            return f"  Saved {entry_type}: {event_dict.get('url', '')}"

        if "Crawl complete" in msg:
            handled = event_dict.get("handled", 0)
            failed = event_dict.get("failed", 0)
            elapsed = event_dict.get("elapsed_seconds", 0)
            return f"\nCrawl complete: {handled} pages handled, {failed} failed ({elapsed:.0f}s)"

        if level == 'ERROR':
            error = event_dict.get('error', '')
            if "Request failed" in msg:
                url = event_dict.get('url', '')
                if "Timeout" in str(error):
                    return f"Timeout on {url} (Facebook may be slow)"
                return f"Failed {url}: {error}"
            return f"{msg}: {error}" if error else msg

        match = re.match(r"^(\d{3}): (.*)$", msg)
        if match:
            return match.group(2)

        return msg


def setup_logging(level: str = "INFO"):
    """Configure the dual logging system."""
    LOGS_DIR.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging.DEBUG)

    # === Console Handler (Human-Friendly) ===
    console_handler = HumanConsoleHandler()
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(HumanFormatter())
    root_logger.addHandler(console_handler)

    # === File Handler (Detailed Debug Log) ===
    file_handler = logging.FileHandler(DEBUG_LOG_PATH, mode='a', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
        ],
    ))
    root_logger.addHandler(file_handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            # Hands the event dict to the formatters above
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger()


def print_status(message: str):
    """Print a simple status message to console."""
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"\033[2m[{timestamp}]\033[0m {message}", flush=True)


def print_success(message: str):
    """Print a success message in green."""
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"\033[92m[{timestamp}] {message}\033[0m", flush=True)


def print_error(message: str):
    """Print an error message in red."""
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"\033[91m[{timestamp}] Error: {message}\033[0m", flush=True)
