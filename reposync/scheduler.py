"""Parallel execution of many repository syncs."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, Optional

from .config import Config
from .errors import SyncError, SyncErrorKind
from .git_sync import RepoTarget, SyncResult, TaskStatus, TaskSummary, sync
from .git_sync.performance_logger import PerformanceLogger


def run_tasks(
    targets: Iterable[RepoTarget],
    config: Optional[Config] = None,
    sync_func: Callable[..., SyncResult] = sync,
) -> TaskSummary:
    """
    Sync every target on a pool of worker threads.

    Each target is synced independently; one failure does not stop the
    others. Targets must not share a path.

    Args:
        targets: Repositories to sync
        config: Worker count, slow-sync threshold and engine settings
        sync_func: Sync implementation, ``sync`` unless testing

    Returns:
        TaskSummary with one result per successful sync and every error
    """
    config = config or Config()
    logger = logging.getLogger('reposync.scheduler')
    performance = PerformanceLogger(slow_threshold=config.slow_sync_threshold)
    targets = list(targets)

    def run_one(target: RepoTarget) -> SyncResult:
        with performance.time_operation(f"sync {target.path}", context={"path": str(target.path)}):
            return sync_func(target, config)

    results = []
    errors = []
    logger.info(f"Syncing {len(targets)} repositories with {config.worker_count} workers")
    with ThreadPoolExecutor(max_workers=config.worker_count) as executor:
        futures = {executor.submit(run_one, target): target for target in targets}
        for future in as_completed(futures):
            target = futures[future]
            try:
                result = future.result()
            except SyncError as e:
                if e.path is None:
                    e.path = target.path
                logger.error(f"❌ {e}", extra={'operation': 'sync'})
                errors.append(e)
                continue
            except Exception as e:
                logger.exception(f"❌ Unexpected error syncing {target.path}", extra={'operation': 'sync'})
                error = SyncError(
                    SyncErrorKind.GIT_COMMAND_FAILED,
                    f"Unexpected error: {type(e).__name__}: {e}",
                    path=target.path,
                )
                error.__cause__ = e
                errors.append(error)
                continue
            results.append(result)
            if result.duration is not None:
                performance.log_sync_performance(target.path, result.duration, result.did_work)

    performance.log_performance_summary()

    if errors:
        status = TaskStatus.FAILED
    elif not any(result.did_work for result in results):
        status = TaskStatus.SKIPPED
    else:
        status = TaskStatus.PASSED

    summary = TaskSummary(status=status, results=results, errors=errors)
    logger.info(
        f"Finished: {summary.passed} updated, {summary.skipped} unchanged, {summary.failed} failed"
    )
    return summary
