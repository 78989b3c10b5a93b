"""Evaluation of lazy graphs.

The ``Evaluator`` walks a node's DAG depth-first, dispatching each node to its
registered op and memoising results by fingerprint, so shared sub-graphs are
computed once per evaluator. Terminal calls run on a thread pool and accept a
timeout; a timed-out or cancelled evaluation stops at the next node boundary
and leaves nothing behind except memoised intermediate results.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Optional, Sequence

from rastersmith.objects.node import Node
from rastersmith.primitives.ops import get_op
from rastersmith.utils.errors import EvaluationCancelledError, EvaluationTimeoutError

logger = logging.getLogger(__name__)


def as_node(target: Any) -> Node:
    """Node behind a lazy handle (or the node itself)."""
    if isinstance(target, Node):
        return target
    node = getattr(target, "node", None)
    if not isinstance(node, Node):
        raise TypeError(f"Cannot evaluate object of type {type(target).__name__}")
    return node


class EvaluationFuture:
    """Cancellable handle on a submitted evaluation.

    Cancelling sets a token checked before every node, so a running
    evaluation stops at the next op boundary.
    """

    def __init__(self, future: Future, token: threading.Event, label: str):
        self._future = future
        self._token = token
        self.label = label

    def result(self, timeout: Optional[float] = None) -> Any:
        """Wait for the value.

        Raises:
            EvaluationTimeoutError: If ``timeout`` seconds pass first; the
                evaluation is cancelled.
        """
        try:
            return self._future.result(timeout=timeout)
        except FutureTimeoutError:
            self.cancel()
            raise EvaluationTimeoutError(
                f"Evaluation of {self.label} exceeded {timeout}s",
                suggestion="Raise the timeout, use a coarser scale, or enable best-effort",
                details={"timeout": timeout},
            ) from None

    def cancel(self) -> bool:
        self._token.set()
        self._future.cancel()
        return True

    def cancelled(self) -> bool:
        return self._token.is_set()

    def done(self) -> bool:
        return self._future.done()

    def __repr__(self) -> str:
        """String representation."""
        state = "done" if self.done() else ("cancelled" if self.cancelled() else "running")
        return f"EvaluationFuture({self.label}, {state})"


class Evaluator:
    """Memoising, concurrent evaluator of lazy graphs.

    Args:
        catalog: Source catalog resolving ``collection.source`` nodes.
        max_workers: Thread pool size for terminal evaluations.
        timeout: Default timeout in seconds (None = wait forever).

    Example:
        >>> evaluator = Evaluator(load_demo_catalog(seed=0), timeout=60)
        >>> rmse = evaluator.evaluate(report.get("rmse"))
    """

    def __init__(self, catalog=None, max_workers: int = 4, timeout: Optional[float] = None):
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.catalog = catalog
        self.max_workers = max_workers
        self.timeout = timeout
        self.logger = logging.getLogger(self.__class__.__name__)

        self._cache: dict[str, Any] = {}
        self._inflight: dict[str, Future] = {}
        self._tokens: set[threading.Event] = set()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="rastersmith")

    @classmethod
    def from_config(cls, config, catalog=None) -> "Evaluator":
        """Build from the ``execution`` section of a ConfigManager."""
        return cls(
            catalog=catalog,
            max_workers=int(config.get("execution.max_workers", 4)),
            timeout=config.get("execution.timeout_s"),
        )

    # -- terminal operations ---------------------------------------------

    def evaluate(self, target: Any, timeout: Optional[float] = None) -> Any:
        """Evaluate one lazy handle or node.

        Raises:
            EvaluationTimeoutError: If the evaluation outlives the timeout.
        """
        future = self.submit(target)
        start = time.perf_counter()
        value = future.result(timeout=self._timeout(timeout))
        self.logger.info(f"Evaluated {future.label} in {time.perf_counter() - start:.3f}s")
        return value

    def evaluate_many(self, targets: Sequence[Any], timeout: Optional[float] = None) -> list[Any]:
        """Evaluate several handles concurrently; results keep input order.

        The timeout bounds the whole batch. On timeout every pending
        evaluation is cancelled.
        """
        futures = [self.submit(t) for t in targets]
        limit = self._timeout(timeout)
        deadline = None if limit is None else time.monotonic() + limit
        results = []
        try:
            for future in futures:
                remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                results.append(future.result(timeout=remaining))
        except BaseException:
            for future in futures:
                future.cancel()
            raise
        self.logger.info(f"Evaluated {len(futures)} targets")
        return results

    def submit(self, target: Any) -> EvaluationFuture:
        """Start evaluating in the background and return a cancellable future."""
        node = as_node(target)
        token = threading.Event()
        with self._lock:
            self._tokens.add(token)
        future = self._pool.submit(self._resolve, node, token)
        future.add_done_callback(lambda _: self._release(token))
        return EvaluationFuture(future, token, label=repr(node))

    def _release(self, token: threading.Event) -> None:
        with self._lock:
            self._tokens.discard(token)

    # -- cache -------------------------------------------------------------

    def cache_info(self) -> dict[str, int]:
        with self._lock:
            return {"hits": self._hits, "misses": self._misses, "size": len(self._cache)}

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0

    def is_cached(self, target: Any) -> bool:
        with self._lock:
            return as_node(target).fingerprint in self._cache

    # -- lifecycle ---------------------------------------------------------

    def close(self, wait: bool = True) -> None:
        """Cancel every outstanding evaluation and shut the pool down.

        Running evaluations stop at their next node boundary and raise
        EvaluationCancelledError. With ``wait`` the call returns once the
        workers have let go.
        """
        with self._lock:
            outstanding = list(self._tokens)
            self._tokens.clear()
        for token in outstanding:
            token.set()
        if outstanding:
            self.logger.info(f"Cancelled {len(outstanding)} outstanding evaluations on close")
        self._pool.shutdown(wait=wait, cancel_futures=True)

    def __enter__(self) -> "Evaluator":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # -- graph walk ----------------------------------------------------------

    def _timeout(self, timeout: Optional[float]) -> Optional[float]:
        return self.timeout if timeout is None else timeout

    def _resolve(self, node: Node, token: threading.Event) -> Any:
        key = node.fingerprint
        while True:
            if token.is_set():
                raise EvaluationCancelledError(f"Evaluation of {node} was cancelled")
            with self._lock:
                if key in self._cache:
                    self._hits += 1
                    logger.debug(f"Cache hit {node}")
                    return self._cache[key]
                pending = self._inflight.get(key)
                if pending is None:
                    pending = Future()
                    self._inflight[key] = pending
                    self._misses += 1
                    owner = True
                else:
                    owner = False

            if owner:
                break
            try:
                return pending.result()
            except EvaluationCancelledError:
                # the owning evaluation was abandoned; compute it ourselves
                continue

        try:
            value = self._compute(node, token)
        except BaseException as exc:
            with self._lock:
                self._inflight.pop(key, None)
            pending.set_exception(exc)
            raise
        with self._lock:
            self._cache[key] = value
            self._inflight.pop(key, None)
        pending.set_result(value)
        return value

    def _compute(self, node: Node, token: threading.Event) -> Any:
        spec = get_op(node.op)
        kwargs = node.kwargs
        if spec.lazy:
            return spec.func(lambda child: self._resolve(child, token), *node.inputs, **kwargs)

        values = [self._resolve(child, token) for child in node.inputs]
        if token.is_set():
            raise EvaluationCancelledError(f"Evaluation of {node} was cancelled")
        if spec.needs_catalog:
            kwargs["catalog"] = self.catalog
        logger.debug(f"Dispatch {node.op}")
        return spec.func(*values, **kwargs)

    def __repr__(self) -> str:
        """String representation."""
        info = self.cache_info()
        return (
            f"Evaluator(max_workers={self.max_workers}, timeout={self.timeout}, "
            f"cached={info['size']})"
        )
