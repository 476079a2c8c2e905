"""
Parallel rasterization of geometry features.

A producer thread fans features out to a thread pool (one task per feature)
and forwards each completion through a queue. The caller of
``rasterize_features`` is the single consumer: it buffers out-of-order
results and yields them strictly by feature index, so everything downstream
(label assignment, insertion order, overlap resolution) is independent of
worker scheduling.
"""
from __future__ import annotations

import logging
import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterator, Optional, Sequence

from tqdm import tqdm

from .config import DEFAULT_RESOLUTION, DEFAULT_WORKERS
from .errors import PipelineError
from .sources import FeatureCells, rasterize_feature

LOGGER = logging.getLogger(__name__)

_DONE = object()


class _Failure:
    __slots__ = ("index", "exc")

    def __init__(self, index: Optional[int], exc: BaseException):
        self.index = index
        self.exc = exc


class _Producer(threading.Thread):
    def __init__(self, features: Sequence[dict], resolution: int, workers: int, out: queue.Queue):
        super().__init__(name="regiontree-rasterize", daemon=True)
        self.features = features
        self.resolution = resolution
        self.workers = workers
        self.out = out
        self.stop = threading.Event()

    def run(self) -> None:
        try:
            self._run()
        except BaseException as exc:  # surfaced to the consumer, never dropped
            self.out.put(_Failure(None, exc))
        finally:
            self.out.put(_DONE)

    def _run(self) -> None:
        LOGGER.debug(
            "launching thread pool with max_workers=%d pending_tasks=%d",
            self.workers, len(self.features),
        )
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="rasterize") as ex:
            futures: Dict = {}
            for index, feature in enumerate(self.features):
                fut = ex.submit(rasterize_feature, index, feature, self.resolution)
                futures[fut] = (index, time.perf_counter())
            for fut in as_completed(futures):
                index, start = futures[fut]
                if self.stop.is_set():
                    break
                try:
                    result = fut.result()
                except Exception as exc:
                    self.out.put(_Failure(index, exc))
                    break
                LOGGER.debug(
                    "feature %d: %d cells in %.2fs",
                    index, len(result.cells), time.perf_counter() - start,
                )
                self.out.put(result)
            for fut in futures:
                fut.cancel()


def rasterize_features(
    features: Sequence[dict],
    resolution: int = DEFAULT_RESOLUTION,
    workers: int = DEFAULT_WORKERS,
    progress: bool = False,
) -> Iterator[FeatureCells]:
    """
    Rasterize and normalize every feature in parallel, yielding in index order.

    Args:
        features: GeoJSON features
        resolution: H3 resolution to rasterize at
        workers: thread pool size
        progress: show a tqdm progress bar

    Yields:
        One FeatureCells per feature, ordered by ``index``

    Raises:
        PipelineError: a worker failed (chained to its exception), the producer
            thread crashed, or a result went missing
    """
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")
    total = len(features)
    if not total:
        return

    channel: queue.Queue = queue.Queue()
    producer = _Producer(features, resolution, min(workers, total), channel)
    producer.start()

    pending: Dict[int, FeatureCells] = {}
    next_index = 0
    failure: Optional[_Failure] = None
    try:
        with tqdm(total=total, desc="[rasterize]", unit="feature", disable=not progress) as pbar:
            while True:
                item = channel.get()
                if item is _DONE:
                    break
                if isinstance(item, _Failure):
                    failure = failure or item
                    producer.stop.set()
                    continue
                if failure is not None:
                    continue
                pending[item.index] = item
                pbar.update(1)
                while next_index in pending:
                    yield pending.pop(next_index)
                    next_index += 1
    finally:
        producer.stop.set()
        producer.join()

    if failure is not None:
        if failure.index is None:
            raise PipelineError(f"rasterization producer failed: {failure.exc}") from failure.exc
        raise PipelineError(f"feature {failure.index} failed: {failure.exc}") from failure.exc
    if next_index != total:
        raise PipelineError(f"rasterization delivered {next_index} of {total} features")
