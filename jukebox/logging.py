"""
Logging configuration for the jukebox server using eliot.

This module provides structured logging throughout the server using eliot,
which provides context-aware logging for scans, cache I/O and API requests.
"""

import eliot
import logging
import sys
from eliot import log_message, write_traceback
from eliot.stdlib import EliotHandler
from pathlib import Path


class HumanReadableDestination:
    """Destination that formats logs in a human-readable format."""

    def __init__(self, file):
        self.file = file

    def __call__(self, message):
        """Format and write log message."""
        msg_type = message.get("message_type", "")
        action_type = message.get("action_type", "")
        status = message.get("action_status", "")

        if action_type and not msg_type:
            # Only report how scan actions ended
            if status == "succeeded" and "track_count" in message:
                output = f"[{action_type}] finished with {message['track_count']} tracks"
            elif status == "failed":
                output = f"[{action_type}] failed: {message.get('exception', '')} {message.get('reason', '')}".rstrip()
            else:
                return
        elif msg_type == "api_request":
            output = f"[API] {message.get('action', '')}"
            if message.get("description"):
                output += f": {message['description']}"
        elif msg_type == "cache_operation":
            output = f"[CACHE] {message.get('operation', '')} {message.get('path', '')}"
            if message.get("error"):
                output += f" ({message['error']})"
        elif msg_type == "file_operation":
            output = f"[FILE] {message.get('operation', '')} {message.get('filepath', '')}"
            if message.get("error"):
                output += f" ({message['error']})"
        elif msg_type == "error_occurred":
            output = f"[ERROR] {message.get('error_type', '')}: {message.get('error_message', '')}"
        elif "message" in message:
            output = message["message"]
        else:
            return

        if output and output.strip():
            self.file.write(output + "\n")
            self.file.flush()


def setup_logging(log_level: str = "INFO", log_file: str | None = None) -> None:
    """
    Set up eliot logging for the server.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path to write raw JSON logs to (always logs to stdout as well)
    """
    eliot.add_destination(HumanReadableDestination(sys.stdout))

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        eliot.to_file(open(log_path, "a"))

    # Route stdlib logging (uvicorn, watchdog) through eliot
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    if not any(isinstance(handler, EliotHandler) for handler in logger.handlers):
        logger.addHandler(EliotHandler())

    log_message(
        message_type="logging_setup", log_level=log_level, log_file=log_file or "stdout", message="Eliot logging configured"
    )


def log_file_operation(operation: str, filepath: str | Path, **context):
    """
    Log file operations with context.

    Args:
        operation: File operation type (scan, delete, stat, etc.)
        filepath: Path to the file
        **context: Additional context data
    """
    log_message(message_type="file_operation", operation=operation, filepath=str(filepath), **context)


def log_cache_operation(operation: str, path: str | Path, **context):
    """
    Log track cache reads and writes.

    Args:
        operation: Cache operation (load, save, miss, etc.)
        path: Cache file path
        **context: Additional context data
    """
    log_message(message_type="cache_operation", operation=operation, path=str(path), **context)


def log_api_request(action: str, trigger_source: str = "api", **context):
    """
    Log API requests with context.

    Args:
        action: API action being performed
        trigger_source: Source of the request (default: "api")
        **context: Additional context data (request parameters, response, etc.)
    """
    log_message(message_type="api_request", action=action, trigger_source=trigger_source, **context)


def log_error(error: Exception, **context):
    """
    Log errors with full context and traceback.

    Must be called from inside an ``except`` block.

    Args:
        error: Exception that occurred
        **context: Additional context data
    """
    write_traceback(exc_info=sys.exc_info())
    log_message(message_type="error_occurred", error_message=str(error), error_type=type(error).__name__, **context)
