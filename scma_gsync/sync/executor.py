"""Apply a changeset to a remote collection."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Optional, Sequence, TypeVar

from scma_gsync.errors import RemoteWriteError

logger = logging.getLogger(__name__)

INSERT = "insert"
UPDATE = "update"
UPSERT = "upsert"
DELETE = "delete"
ACTIONS = (INSERT, UPDATE, UPSERT, DELETE)

T = TypeVar("T")


@dataclass
class WriteOp:
    """
    One unit of work: a fully built remote write.

    call performs the blocking API request. body is what will be sent and is
    only used for logging. count is the number of records a batch op covers.
    resolve maps the response of an upsert to the action the remote side
    actually took (INSERT or UPDATE).
    """

    action: str
    key: str
    call: Callable[[], Any]
    body: Optional[Any] = None
    count: int = 1
    resolve: Optional[Callable[[Any], str]] = None


def _zero_counts() -> dict[str, int]:
    return {action: 0 for action in ACTIONS}


@dataclass
class SyncReport:
    """Attempted and succeeded counts per action, plus collected failures."""

    name: str
    attempted: dict[str, int] = field(default_factory=_zero_counts)
    succeeded: dict[str, int] = field(default_factory=_zero_counts)
    errors: list[RemoteWriteError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def fail(self, action: str, key: str, cause: Exception) -> RemoteWriteError:
        """Record an op that failed before it could be submitted."""
        error = RemoteWriteError(action, key, cause)
        logger.error(str(error))
        self.attempted[action] += 1
        self.errors.append(error)
        return error

    def summary(self) -> str:
        # Upserts only show up for collections that use them
        actions = [a for a in ACTIONS if a != UPSERT or self.attempted[UPSERT]]
        counts = ", ".join(
            f"{action}s {self.succeeded[action]}/{self.attempted[action]}"
            for action in actions
        )
        return f"{self.name}: {counts}"


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Split items into consecutive chunks of at most size items."""
    for start in range(0, len(items), size):
        yield items[start:start + size]


async def apply_ops(
    ops: Iterable[WriteOp],
    report: SyncReport,
    concurrency: int,
    dry_run: bool = False,
) -> SyncReport:
    """
    Run write ops on a bounded pool of worker threads.

    A failed op is recorded in the report and does not stop the others; all
    ops run to completion before this returns. With dry_run, each op is
    logged and counted as succeeded without calling the API.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _run(op: WriteOp) -> None:
        async with semaphore:
            report.attempted[op.action] += op.count
            logger.info(f"{op.action.capitalize()} {op.key}")
            if op.body is not None:
                logger.debug(f"{op.action} {op.key}: {op.body}")

            if dry_run:
                logger.info(f"Dry run, skipping {op.action} {op.key}")
                report.succeeded[op.action] += op.count
                return

            try:
                result = await asyncio.to_thread(op.call)
            except Exception as e:
                error = RemoteWriteError(op.action, op.key, e)
                logger.error(str(error))
                report.errors.append(error)
                return

            report.succeeded[op.action] += op.count
            if op.resolve is not None:
                resolved = op.resolve(result)
                report.attempted[resolved] += op.count
                report.succeeded[resolved] += op.count
            logger.debug(f"{op.action} {op.key} response: {result}")

    await asyncio.gather(*(_run(op) for op in ops))
    return report
