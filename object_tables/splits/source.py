"""Asynchronous, batched delivery of splits."""

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Iterator, List, Optional

from ..exceptions import IllegalArgumentError
from ..handles import Split

logger = logging.getLogger(__name__)

_END = object()


class StreamingSplitSource:
    """Hands out splits from a lazy iterator in batches, on a worker pool.

    Each batch pulls at most ``max_size`` splits plus one look-ahead used to
    answer ``is_finished()``; nothing further is read ahead. Batches run one
    at a time. ``close()`` stops an in-flight batch at the next split, closes
    the underlying iterator (and with it any open listings) and is idempotent.
    """

    def __init__(self, splits: Iterator[Split], executor: Optional[Executor] = None):
        """Initialize split source.

        Args:
            splits: Lazy split iterator; closed on ``close()`` if it is a generator
            executor: Pool that runs batches; a private single thread pool if None
        """
        self._splits = splits
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="split-source"
        )
        self._lock = threading.Lock()
        self._lookahead = None
        self._finished = False
        self._closed = False
        self._produced = 0

    def get_next_batch(self, max_size: int) -> "Future[List[Split]]":
        """Request up to ``max_size`` splits.

        Returns:
            Future resolving to the next batch; an empty batch once finished or
            closed. Listing errors are raised from the future.
        """
        if max_size < 1:
            raise IllegalArgumentError("max_size must be positive", max_size=max_size)
        if self._closed:
            future: Future = Future()
            future.set_result([])
            return future
        return self._executor.submit(self._next_batch, max_size)

    def is_finished(self) -> bool:
        return self._finished or self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        with self._lock:
            close = getattr(self._splits, "close", None)
            if close is not None:
                close()
            self._lookahead = None
        if self._owns_executor:
            self._executor.shutdown(wait=False)
        logger.debug(f"Split source closed after {self._produced} splits")

    def __enter__(self) -> "StreamingSplitSource":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _next_batch(self, max_size: int) -> List[Split]:
        with self._lock:
            batch: List[Split] = []
            if self._closed or self._finished:
                return batch
            while len(batch) < max_size and not self._closed:
                split = self._pull()
                if split is _END:
                    self._finished = True
                    break
                batch.append(split)
            if not self._finished and not self._closed:
                self._lookahead = self._pull()
                if self._lookahead is _END:
                    self._lookahead = None
                    self._finished = True
            self._produced += len(batch)
            return batch

    def _pull(self):
        if self._lookahead is not None:
            split, self._lookahead = self._lookahead, None
            return split
        return next(self._splits, _END)
