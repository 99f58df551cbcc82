"""
Structured logging for the watcher, built on structlog.

Everything goes through the standard library root logger so that uvicorn,
httpx and APScheduler records end up in the same stream and file as ours.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import structlog
from structlog.stdlib import LoggerFactory

# Libraries that log every request or job execution at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "apscheduler.scheduler", "apscheduler.executors")


def _processors(log_format: str, debug: bool) -> List[Any]:
    chain: List[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if debug:
        chain.append(structlog.processors.CallsiteParameterAdder(
            [structlog.processors.CallsiteParameter.MODULE,
             structlog.processors.CallsiteParameter.LINENO]
        ))

    if log_format == "json":
        chain.append(structlog.processors.JSONRenderer())
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return chain


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[Union[str, Path]] = None,
    debug: bool = False
) -> None:
    """
    Configure structlog and the root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_format: "json" or "console"
        log_file: Also append every entry to this file
        debug: Add module and line number to every entry, and stop
            silencing third-party request logs
    """
    level = logging.getLevelName(log_level.upper())

    root = logging.getLogger()
    root.setLevel(level)
    if not root.handlers:
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(stream_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(file_handler)

    if not debug:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=_processors(log_format, debug),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    structlog.get_logger(__name__).debug(
        "Logging configured",
        level=log_level,
        format=log_format,
        file=str(log_file) if log_file else None
    )


class RefreshLogger:
    """
    Logger for refresh cycles.

    Context bound here (typically the cycle id) is attached to every entry
    until cleared, so all lines of one cycle can be correlated.
    """

    def __init__(self, name: str = "refresh"):
        self.logger = structlog.get_logger(name)
        self.context: Dict[str, Any] = {}

    def bind_context(self, **kwargs) -> 'RefreshLogger':
        self.context.update(kwargs)
        return self

    def clear_context(self) -> 'RefreshLogger':
        self.context.clear()
        return self

    def log_cycle_start(self, resource_count: int) -> None:
        self.logger.info("Refresh cycle started", resource_count=resource_count, **self.context)

    def log_cycle_complete(
        self,
        resource_count: int,
        changed: int,
        failed: int,
        duration_seconds: float
    ) -> None:
        self.logger.info(
            "Refresh cycle completed",
            resource_count=resource_count,
            changed=changed,
            failed=failed,
            duration_seconds=round(duration_seconds, 3),
            **self.context
        )

    def log_resource_checked(self, url: str, outcome: str) -> None:
        """Changes are logged at INFO, everything else at DEBUG."""
        log = self.logger.info if outcome == "changed" else self.logger.debug
        log("Resource checked", url=url, outcome=outcome, **self.context)

    def log_fetch_failed(self, url: str, error: str) -> None:
        self.logger.warning(
            "Fetch failed, keeping previous snapshot",
            url=url,
            error=error,
            **self.context
        )

    def log_retry(self, url: str, attempt: int, max_attempts: int, delay: float) -> None:
        self.logger.warning(
            "Retrying fetch",
            url=url,
            attempt=attempt,
            max_attempts=max_attempts,
            delay_seconds=delay,
            **self.context
        )

    def log_error(self, error: str, url: Optional[str] = None) -> None:
        self.logger.error("Refresh error", error=error, url=url, **self.context)
