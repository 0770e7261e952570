"""
Error handling policies for PolyTreeLib batch operations.

This module provides a flexible error handling system through the Policy
pattern, allowing users to define what a multi-entity save or a
multi-candidate query does when one of its items fails.

Items in a batch share no causal relationship, so every item always runs
to completion; the policy only decides whether the failure is recorded
alongside the successes or aborts the batch once all items have settled.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Sequence, Tuple

from .errors import BatchAborted

logger = logging.getLogger(__name__)


@dataclass
class ItemError:
    """A failed item of a batch.

    Attributes:
        index: Position of the item in the batch input
        item: The input item (entity being saved, or query candidate)
        error: The exception raised while processing it
    """
    index: int
    item: Any
    error: Exception

    @property
    def error_type(self) -> str:
        return type(self.error).__name__


@dataclass
class BatchResult:
    """Partial-success outcome of a batch operation.

    ``items`` keeps the input order of the successful items.
    """
    items: List[Any] = field(default_factory=list)
    errors: List[ItemError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_first(self) -> None:
        """Re-raise the error of the earliest failed item, if any."""
        if self.errors:
            raise self.errors[0].error

    def __iter__(self) -> Iterator[Any]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> Any:
        return self.items[index]


class ErrorPolicy(ABC):
    """
    Base class for batch error policies.

    Subclasses implement different strategies for handling an item that
    failed inside a batch operation.
    """

    @abstractmethod
    async def handle(self, error: Exception, operation: str, item: Any, index: int) -> None:
        """
        Handle the failure of one batch item.

        Args:
            error: The exception raised for the item
            operation: Name of the batch operation (e.g., 'save', 'find_children')
            item: The input item that failed
            index: Position of the item in the batch input

        Returns:
            None to record the failure and keep the batch's other results,
            or re-raises to abort the batch.
        """
        pass


class FailFastPolicy(ErrorPolicy):
    """
    Policy that re-raises the first failure, discarding partial results.

    All-or-nothing from the caller's point of view. Sibling items are not
    cancelled; they have already settled when the policy runs.
    """

    async def handle(self, error: Exception, operation: str, item: Any, index: int) -> None:
        """Re-raise the error immediately."""
        raise error


class CollectErrorsPolicy(ErrorPolicy):
    """
    Policy that collects all errors without logging.

    The default: per-item isolation, so a batch returns its successes and
    the list of failed items.
    """

    def __init__(self):
        """Initialize the policy."""
        self.errors: List[Dict[str, Any]] = []

    async def handle(self, error: Exception, operation: str, item: Any, index: int) -> None:
        """Silently collect the error."""
        self._record(error, operation, index)

    def _record(self, error: Exception, operation: str, index: int) -> None:
        self.errors.append({
            'index': index,
            'operation': operation,
            'error': error,
            'error_type': type(error).__name__,
            'error_message': str(error),
        })

    def get_statistics(self) -> dict:
        """
        Get statistics about errors encountered.

        Returns:
            Dictionary with error counts per type and full details
        """
        by_type: Dict[str, int] = {}
        for record in self.errors:
            by_type[record['error_type']] = by_type.get(record['error_type'], 0) + 1
        return {
            'total_errors': len(self.errors),
            'by_type': by_type,
            'errors': self.errors,
        }


class ContinueOnErrorsPolicy(CollectErrorsPolicy):
    """
    Policy that logs errors and continues.

    Same isolation as CollectErrorsPolicy, with a warning per failed item.
    """

    def __init__(self, verbose: bool = True):
        """
        Initialize the policy.

        Args:
            verbose: If True, log a warning when an item fails
        """
        super().__init__()
        self.verbose = verbose

    async def handle(self, error: Exception, operation: str, item: Any, index: int) -> None:
        self._record(error, operation, index)
        if self.verbose:
            logger.warning("Item %d failed in %s: %s: %s",
                           index, operation, type(error).__name__, error)


class ThresholdPolicy(ErrorPolicy):
    """
    Policy that tolerates errors up to a threshold, then aborts.

    Useful when a few failures are expected but many indicate a systemic
    problem (e.g. a node store that is down).
    """

    def __init__(self, max_errors: int = 10, verbose: bool = True):
        """
        Initialize threshold policy.

        Args:
            max_errors: Maximum errors to tolerate before aborting
            verbose: If True, log a warning for tolerated errors
        """
        self.max_errors = max_errors
        self.error_count = 0
        self.verbose = verbose
        self.errors: List[Exception] = []

    async def handle(self, error: Exception, operation: str, item: Any, index: int) -> None:
        """Record the error if under threshold, otherwise abort the batch."""
        self.error_count += 1
        self.errors.append(error)

        if self.error_count > self.max_errors:
            raise BatchAborted(operation, self.error_count, self.max_errors) from error

        if self.verbose:
            logger.warning("[%d/%d] Item %d failed in %s: %s",
                           self.error_count, self.max_errors, index, operation, error)


class BatchCollector:
    """Accumulates per-item outcomes of one batch under a policy.

    Outcomes may arrive out of order (several phases, concurrent
    branches); result() restores input order.
    """

    def __init__(self, policy: ErrorPolicy, operation: str):
        self.policy = policy
        self.operation = operation
        self._successes: List[Tuple[int, Any]] = []
        self._failures: List[ItemError] = []

    def succeed(self, index: int, value: Any) -> None:
        self._successes.append((index, value))

    def fail(self, index: int, item: Any, error: Exception) -> None:
        self._failures.append(ItemError(index, item, error))

    async def apply_policy(self) -> None:
        """Hand failures to the policy, earliest item first."""
        for failure in sorted(self._failures, key=lambda f: f.index):
            await self.policy.handle(failure.error, self.operation, failure.item, failure.index)

    async def result(self) -> BatchResult:
        await self.apply_policy()
        return BatchResult(
            items=[value for _, value in sorted(self._successes, key=lambda s: s[0])],
            errors=sorted(self._failures, key=lambda f: f.index),
        )


async def gather_settled(
    items: Sequence[Any],
    worker: Callable[[Any], Awaitable[Any]],
    max_concurrent: int = 100,
) -> List[Any]:
    """Run ``worker`` over ``items`` concurrently and wait for all of them.

    A failing item never cancels the others. Returns one outcome per item,
    in input order: the worker's result or the exception it raised.
    """
    semaphore = asyncio.Semaphore(max_concurrent)

    async def bounded(item: Any) -> Any:
        async with semaphore:
            return await worker(item)

    outcomes = await asyncio.gather(*(bounded(item) for item in items), return_exceptions=True)
    for outcome in outcomes:
        # Cancellation and interpreter exits are not item failures
        if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
            raise outcome
    return outcomes


async def run_batch(
    items: Sequence[Any],
    worker: Callable[[Any], Awaitable[Any]],
    policy: ErrorPolicy,
    operation: str,
    max_concurrent: int = 100,
) -> BatchResult:
    """Process independent items concurrently and settle them under ``policy``."""
    collector = BatchCollector(policy, operation)
    outcomes = await gather_settled(items, worker, max_concurrent)
    for index, (item, outcome) in enumerate(zip(items, outcomes)):
        if isinstance(outcome, Exception):
            collector.fail(index, item, outcome)
        else:
            collector.succeed(index, outcome)
    return await collector.result()
