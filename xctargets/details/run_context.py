import datetime
import logging
from typing import Dict, List, Optional, Tuple


class CustomFormatter(logging.Formatter):
    """Logging formatter with optional color support."""

    class color:
        white = "\x1b[97;20m"
        grey = "\x1b[38;20m"
        green = "\x1b[32;20m"
        yellow = "\x1b[33;20m"
        red = "\x1b[31;20m"
        bold_red = "\x1b[31;1m"
        reset = "\x1b[0m"

    cfmt = (
        f"{color.white}%(delta)s{color.reset} - "
        f"{{}}%(levelname)s{color.reset} - "
        f"{color.white}%(name)s{color.reset} - "
        f"{color.grey}%(message)s{color.reset}"
    )

    FORMATS = {
        logging.DEBUG: cfmt.format(color.grey),
        logging.INFO: cfmt.format(color.green),
        logging.WARNING: cfmt.format(color.yellow),
        logging.ERROR: cfmt.format(color.red),
        logging.CRITICAL: cfmt.format(color.bold_red),
    }

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color
        self.fmt = "%(delta)s - %(levelname)s - %(name)s - %(message)s"

    def format(self, record: logging.LogRecord) -> str:
        log_fmt = self.FORMATS[record.levelno] if self.use_color else self.fmt
        duration = datetime.datetime.fromtimestamp(
            record.relativeCreated / 1000, datetime.timezone.utc
        )
        record.delta = duration.strftime("%H:%M:%S")
        return logging.Formatter(log_fmt).format(record)


class SparseFormatter(logging.Formatter):
    """Bare message output for the non-debug mode."""

    def format(self, record: logging.LogRecord) -> str:
        return record.getMessage()


def setup_logging(debug: bool = False, use_color: bool = True) -> None:
    """Configure logging for the application.

    Args:
        debug: Verbose output with timestamps and logger names
        use_color: Whether to use colored output in debug mode
    """
    stream_handler = logging.StreamHandler()
    if debug:
        stream_handler.setFormatter(CustomFormatter(use_color))
    else:
        stream_handler.setFormatter(SparseFormatter())
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        handlers=[stream_handler],
        force=True,
    )


class RunContext:
    """State scoped to a single pipeline run.

    Carries the verbosity mode, the "already reported" bookkeeping that keeps
    sparse output from repeating itself, and the per-target failures that
    decide the process exit status.
    """

    GREEN = "\x1b[32m"
    RESET = "\x1b[0m"

    def __init__(self, debug: bool = False, use_color: bool = True):
        self.debug = debug
        self.use_color = use_color
        self.log = logging.getLogger("xctargets")
        self.failures: List[Tuple[str, Exception]] = []
        self.warnings: List[str] = []
        self._reported: Dict[str, bool] = {}

    def verbose(self, message: str, *args) -> None:
        self.log.debug(message, *args)

    def report_once(self, key: str) -> bool:
        if self._reported.get(key):
            return False
        self._reported[key] = True
        return True

    def log_sparse(self, success: bool, message: str, detail: Optional[str] = None) -> None:
        if self.debug:
            suffix = f" - {detail}" if detail else ""
            self.log.debug("%s%s", message, suffix)
            return
        if message.startswith("Found") and "target(s)" in message:
            if not self.report_once("target-count"):
                return
        if success:
            symbol = f"{self.GREEN}✔{self.RESET}" if self.use_color else "✔"
        else:
            symbol = "✖"
        suffix = f" | {detail}" if detail else ""
        self.log.info("%s %s%s", symbol, message, suffix)

    def warn(self, message: str, *args) -> None:
        self.warnings.append(message % args if args else message)
        if self.debug:
            self.log.warning(message, *args)
        else:
            self.log.warning("⚠ " + message, *args)

    def error(self, message: str, *args) -> None:
        self.log.error(message, *args)

    def fail(self, target_name: str, exc: Exception) -> None:
        self.failures.append((target_name, exc))
        self.error("%s: %s", target_name, exc)
        self.log_sparse(False, "Failed to configure target", target_name)

    @property
    def failed_targets(self) -> List[str]:
        return [name for name, _ in self.failures]

    @property
    def exit_code(self) -> int:
        return 1 if self.failures else 0
