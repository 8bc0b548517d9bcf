"""Timing and slow-sync reporting for repository syncs."""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional


@dataclass
class PerformanceMetrics:
    """Timing of one timed operation."""
    operation: str
    duration: float
    start_time: float
    end_time: float
    context: Optional[Dict[str, Any]] = None
    success: bool = True


class PerformanceLogger:
    """
    Collects timings of repository syncs and flags slow ones.

    Safe to share between the scheduler's worker threads.
    """

    def __init__(self, logger_name: str = 'reposync.git_sync.performance', slow_threshold: float = 60.0):
        """
        Initialize performance logger.

        Args:
            logger_name: Name for the logger instance
            slow_threshold: Seconds after which a sync is reported as slow
        """
        self.logger = logging.getLogger(logger_name)
        self.slow_threshold = slow_threshold
        self._metrics: List[PerformanceMetrics] = []
        self._lock = threading.Lock()

    @contextmanager
    def time_operation(
        self,
        operation: str,
        context: Optional[Dict[str, Any]] = None,
        log_level: int = logging.DEBUG
    ) -> Generator[None, None, None]:
        """
        Context manager for timing operations.

        Args:
            operation: Name of the operation being timed
            context: Additional context information
            log_level: Logging level for start and completion messages
        """
        start_time = time.time()
        self.logger.log(log_level, f"⏱️ Starting {operation}")

        success = True
        try:
            yield
        except Exception:
            success = False
            raise
        finally:
            end_time = time.time()
            duration = end_time - start_time
            with self._lock:
                self._metrics.append(PerformanceMetrics(
                    operation=operation,
                    duration=duration,
                    start_time=start_time,
                    end_time=end_time,
                    context=context,
                    success=success
                ))

            if success:
                self.logger.log(log_level, f"✅ {operation} completed in {duration:.3f}s")
            else:
                self.logger.log(log_level, f"❌ {operation} failed after {duration:.3f}s")
            if duration > self.slow_threshold:
                self.logger.warning(f"🐌 Slow sync detected: {operation} took {duration:.1f}s")

    def log_sync_performance(self, path: Path, duration: float, did_work: bool) -> None:
        """Log the outcome of one sync."""
        outcome = "updated" if did_work else "already up to date"
        self.logger.info(f"🏠 {path} {outcome} in {duration:.3f}s")

    def get_performance_summary(self) -> Dict[str, Any]:
        """
        Get a summary of performance metrics.

        Returns:
            Dictionary containing performance summary
        """
        with self._lock:
            metrics = list(self._metrics)

        if not metrics:
            return {"total_operations": 0, "average_duration": 0.0}

        total_operations = len(metrics)
        total_duration = sum(m.duration for m in metrics)
        successful_ops = sum(1 for m in metrics if m.success)
        slowest_op = max(metrics, key=lambda m: m.duration)

        return {
            "total_operations": total_operations,
            "total_duration": total_duration,
            "average_duration": total_duration / total_operations,
            "success_rate": successful_ops / total_operations,
            "slowest_operation": {
                "name": slowest_op.operation,
                "duration": slowest_op.duration
            }
        }

    def log_performance_summary(self) -> None:
        """Log a summary of all performance metrics."""
        summary = self.get_performance_summary()

        if summary["total_operations"] == 0:
            self.logger.info("📊 No syncs were run")
            return

        self.logger.info(
            f"📊 Performance Summary: {summary['total_operations']} syncs, "
            f"avg {summary['average_duration']:.3f}s, "
            f"{summary['success_rate']:.1%} success rate"
        )

        slowest = summary["slowest_operation"]
        self.logger.info(f"🐌 Slowest sync: {slowest['name']} ({slowest['duration']:.3f}s)")
