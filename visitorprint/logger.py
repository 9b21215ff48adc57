"""
Structured logging for visitorprint.

Provides centralized logging with console and optional file output, plus
metrics tracking for monitoring how often each network provider is usable.
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks provider attempts, acceptances and rejections by reason.
    """

    def __init__(
        self,
        name: str = "visitorprint",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = False,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers.clear()

        self.metrics = {
            "provider_attempts": 0,
            "provider_accepted": 0,
            "provider_rejected": 0,
            "local_fallbacks": 0,
            "rejections_by_reason": {},
            "provider_success_rate": {},
        }

        if enable_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"visitorprint_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_provider_attempt(self, source: str):
        """Record a resolution attempt against a provider."""
        self.metrics["provider_attempts"] += 1
        stats = self.metrics["provider_success_rate"].setdefault(
            source, {"attempts": 0, "successes": 0}
        )
        stats["attempts"] += 1

    def record_provider_accepted(self, source: str):
        """Record a provider response that was accepted."""
        self.metrics["provider_accepted"] += 1
        if source in self.metrics["provider_success_rate"]:
            self.metrics["provider_success_rate"][source]["successes"] += 1

    def record_provider_rejected(self, source: str, reason: str):
        """Record a provider response that was skipped, keyed by reason."""
        self.metrics["provider_rejected"] += 1
        by_reason = self.metrics["rejections_by_reason"]
        by_reason[reason] = by_reason.get(reason, 0) + 1

    def record_local_fallback(self):
        self.metrics["local_fallbacks"] += 1

    def get_metrics(self) -> dict:
        """Return current metrics."""
        metrics_copy = self.metrics.copy()
        for source, stats in metrics_copy["provider_success_rate"].items():
            if stats["attempts"] > 0:
                stats["success_rate"] = round(
                    stats["successes"] / stats["attempts"], 3
                )

        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        attempts = metrics["provider_attempts"]
        accepted = metrics["provider_accepted"]
        overall_rate = 0
        if attempts > 0:
            overall_rate = round(accepted / attempts * 100, 1)

        self.info("=== Network Resolution Metrics ===")
        self.info(f"Providers: {accepted}/{attempts} accepted ({overall_rate}%)")
        self.info(f"Local fallbacks: {metrics['local_fallbacks']}")

        if metrics["provider_success_rate"]:
            self.info("Provider Success Rates:")
            for source, stats in metrics["provider_success_rate"].items():
                rate = stats.get("success_rate", 0) * 100
                self.info(f"  {source}: {stats['successes']}/{stats['attempts']} ({rate:.1f}%)")

        if metrics["rejections_by_reason"]:
            self.info("Rejections:")
            for reason, count in metrics["rejections_by_reason"].items():
                self.info(f"  {reason}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "visitorprint",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
