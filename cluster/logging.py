import logging
import os

from rich.logging import RichHandler

# --- CONFIGURATION & GLOBALS ---
LOG_FILE = "cluster_sync.log"
LOG_FORMAT = '%(asctime)s [%(levelname)s] - %(message)s'
VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def log_event(*args, level="INFO", **kwargs):
    """
    A print-like helper that routes a message to the standard logging module.

    The level may also be passed as the last positional argument, e.g.
    ``log_event("slot taken", "DEBUG")``.
    """
    if args and isinstance(args[-1], str) and args[-1].upper() in VALID_LEVELS:
        level = args[-1]
        args = args[:-1]

    message = " ".join(map(str, args))
    lvl = getattr(logging, level.upper(), logging.INFO)
    logging.log(lvl, message)


def setup_global_logging(version_name='unknown', verbose=False, log_file=LOG_FILE):
    """
    Configures logging.
    - Formatted records go to `log_file`.
    - The console gets the same records through rich, so workflow logs stay readable.

    Args:
        version_name: Version identifier for the startup line
        verbose: If True, sets log level to DEBUG. Can also be set via CLUSTER_VERBOSE env var.
        log_file: Path of the log file, or None to log to the console only
    """
    if os.getenv('CLUSTER_VERBOSE', '').lower() in ('1', 'true', 'yes'):
        verbose = True

    log_level = logging.DEBUG if verbose else logging.INFO

    handlers = [RichHandler(show_path=False, markup=False, rich_tracebacks=True)]
    if log_file:
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        format='%(message)s',
        handlers=handlers,
        force=True  # Override any existing handlers
    )

    # Client libraries are chatty at DEBUG.
    for noisy in ("urllib3", "google", "httpx", "hpack"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    log_level_name = "DEBUG" if verbose else "INFO"
    logging.info(f"--- cluster-sync '{version_name}' run started (Log Level: {log_level_name}) ---")


class ScopedDiagnosticLogger:
    """
    A context manager for logging the start, end, and exceptions of a code block.
    """
    def __init__(self, name, log_level=logging.DEBUG):
        self.name = name
        self.log_level_name = logging.getLevelName(log_level)

    def __enter__(self):
        log_event(f"Initiating: {self.name}", level=self.log_level_name)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            log_event(f"Completion: {self.name} - Failed with exception", level="ERROR")
            log_event(f"Exception in {self.name}: {exc_type.__name__}: {exc_val}", level="ERROR")
        else:
            log_event(f"Completion: {self.name} - Successful", level=self.log_level_name)

        # Return False to ensure any exception is re-raised.
        return False
