"""Background batch worker that analyzes several photographs on a thread pool."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, List, Optional

from core.skin_analyzer import SkinAnalyzer
from core.utils import AnalysisError, CancelCheck, SkinAnalysisResult

logger = logging.getLogger(__name__)

BatchProgress = Callable[[int, int, str], None]  # (done, total, path)


@dataclass
class BatchItem:
    """Outcome of analyzing one file in a batch."""
    input_path: str
    success: bool
    result: Optional[SkinAnalysisResult] = None
    error_message: str = ""


class AnalysisWorker:
    """Runs a shared SkinAnalyzer over many files.

    All files share one analyzer, so the classifier loads once even when
    several workers hit the first image at the same time. A file that fails
    is reported in its BatchItem and does not stop the batch.
    """

    def __init__(self, analyzer: SkinAnalyzer, max_workers: int = 2):
        self._analyzer = analyzer
        self._max_workers = max_workers
        self._cancelled = threading.Event()

    def cancel(self):
        """Request cancellation; files not yet started are skipped."""
        self._cancelled.set()

    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def run(
        self,
        paths: List[str],
        on_progress: Optional[BatchProgress] = None,
        is_cancelled: Optional[CancelCheck] = None,
    ) -> List[BatchItem]:
        """Analyze ``paths`` and return one BatchItem per path, in input order."""

        def cancelled():
            return self.is_cancelled() or bool(is_cancelled and is_cancelled())

        items: List[Optional[BatchItem]] = [None] * len(paths)
        done = 0

        with ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="batch") as pool:
            futures = {
                pool.submit(self._analyze_one, path, cancelled): index
                for index, path in enumerate(paths)
            }
            for future in as_completed(futures):
                index = futures[future]
                items[index] = future.result()
                done += 1
                if on_progress:
                    on_progress(done, len(paths), paths[index])

        return items

    def _analyze_one(self, path: str, cancelled: Callable[[], bool]) -> BatchItem:
        if cancelled():
            return BatchItem(input_path=path, success=False, error_message="Analysis cancelled.")
        try:
            result = self._analyzer.analyze_file(path)
        except AnalysisError as e:
            logger.warning("Analysis of %s failed: %s", path, e)
            return BatchItem(input_path=path, success=False, error_message=str(e))
        return BatchItem(input_path=path, success=True, result=result)
