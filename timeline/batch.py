"""
Immersion Timeline - Batch Re-analysis

Re-runs region inference over many media items, one at a time with a short
pause between resolver calls. Runs can be cancelled between items, resumed,
reviewed, and then selectively applied to the media store.
"""

import time
import uuid
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional, List, Dict, Any, Iterable, Callable

from config import BATCH_DELAY_SECONDS
from region_models import InferenceResult

logger = logging.getLogger(__name__)


class ItemStatus(Enum):
    PENDING = "pending"
    LOADING = "loading"
    DONE = "done"
    ERROR = "error"


class RunStatus(Enum):
    IDLE = "idle"
    RUNNING = "running"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


TERMINAL_STATUSES = (ItemStatus.DONE, ItemStatus.ERROR)


def _parse_year(value) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass
class BatchItem:
    """One media item's progress through a batch run"""

    media_id: str
    period: str
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    title: str = ""
    status: ItemStatus = ItemStatus.PENDING
    result: Optional[InferenceResult] = None
    error: Optional[str] = None
    selected: bool = True

    @classmethod
    def from_media(cls, media: Dict[str, Any]) -> "BatchItem":
        """Build from a media record ({mediaId, timePeriod, startYear, endYear, title})"""
        media_id = media.get("mediaId") or media.get("id")
        if not media_id:
            raise ValueError("Media item is missing mediaId")
        return cls(
            media_id=str(media_id),
            period=(media.get("timePeriod") or "").strip(),
            start_year=_parse_year(media.get("startYear")),
            end_year=_parse_year(media.get("endYear")),
            title=media.get("title") or "",
        )

    @property
    def terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def resolved(self) -> bool:
        return self.result is not None and self.result.resolved

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mediaId": self.media_id,
            "timePeriod": self.period,
            "startYear": self.start_year,
            "endYear": self.end_year,
            "title": self.title,
            "status": self.status.value,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
            "selected": self.selected,
        }


class BatchRun:
    """
    Sequential inference over a list of media items.

    Cancellation is cooperative: the flag is checked before each item, an
    in-flight inference is allowed to finish, and finished items keep their
    results. A cancel() issued before run() starts is honoured; resume() or
    start() clears it and continues with the remaining pending items.
    """

    def __init__(self, engine, items: Iterable[Dict[str, Any]],
                 delay_seconds: float = BATCH_DELAY_SECONDS,
                 sleep: Callable[[float], None] = time.sleep):
        self.id = str(uuid.uuid4())
        self.engine = engine
        self.items: List[BatchItem] = [BatchItem.from_media(m) for m in items]
        self.delay_seconds = delay_seconds
        self.sleep = sleep
        self.status = RunStatus.IDLE
        self.created_at = time.time()

        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ==================== Running ====================

    def run(self, cancel_event: threading.Event = None):
        """Process pending items in order. Blocks until done or cancelled."""
        self.status = RunStatus.RUNNING
        logger.info(f"Batch {self.id}: starting, {len(self.pending_items())} pending items")

        for item in self.items:
            if self._cancel.is_set() or (cancel_event is not None and cancel_event.is_set()):
                self.status = RunStatus.CANCELLED
                logger.info(f"Batch {self.id}: cancelled, {len(self.pending_items())} items left")
                return
            if item.terminal:
                continue

            self._process(item)
            self.sleep(self.delay_seconds)

        self.status = RunStatus.COMPLETED
        logger.info(f"Batch {self.id}: completed ({self.summary()})")

    def _process(self, item: BatchItem):
        item.status = ItemStatus.LOADING
        try:
            result = self.engine.infer(item.period, item.start_year, item.end_year, title=item.title)
        except Exception as e:
            logger.error(f"Batch {self.id}: inference failed for {item.media_id}: {e}")
            item.status = ItemStatus.ERROR
            item.error = str(e)
            return

        item.result = result
        if result.resolved:
            item.status = ItemStatus.DONE
            item.error = None
        else:
            item.status = ItemStatus.ERROR
            item.error = result.reasoning or "No countries found"

    def resume(self, cancel_event: threading.Event = None):
        """Clear a previous cancel and process the remaining items"""
        self._cancel.clear()
        self.run(cancel_event)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> threading.Thread:
        """
        Run (or resume) in a background daemon thread.
        Raises RuntimeError if this run already has a live worker.
        """
        if self.is_running:
            raise RuntimeError(f"Batch {self.id} is already running")
        self._cancel.clear()
        self._thread = threading.Thread(target=self.run, daemon=True)
        self._thread.start()
        return self._thread

    def cancel(self):
        self._cancel.set()

    def join(self, timeout: float = None):
        if self._thread:
            self._thread.join(timeout)

    # ==================== Review & apply ====================

    def pending_items(self) -> List[BatchItem]:
        return [i for i in self.items if not i.terminal]

    def resolved_items(self) -> List[BatchItem]:
        return [i for i in self.items if i.resolved]

    def get_item(self, media_id: str) -> Optional[BatchItem]:
        for item in self.items:
            if item.media_id == media_id:
                return item
        return None

    def select(self, media_ids: Iterable[str]):
        """Replace the selection with exactly these media ids"""
        chosen = set(media_ids)
        for item in self.items:
            item.selected = item.media_id in chosen

    def apply(self, media_client) -> Dict[str, List[str]]:
        """
        Write selected, resolved items to the media store.
        Returns {"applied": [...], "failed": [...]} media ids.
        """
        applied, failed = [], []
        for item in self.resolved_items():
            if not item.selected:
                continue
            payload = {
                "countryCodes": list(item.result.countries),
                "inferenceSource": item.result.source.value,
                "inferenceConfidence": item.result.confidence.value,
                "inferredAt": item.result.inferred_at,
            }
            if media_client.update_media(item.media_id, payload):
                applied.append(item.media_id)
            else:
                failed.append(item.media_id)

        logger.info(f"Batch {self.id}: applied {len(applied)}, failed {len(failed)}")
        return {"applied": applied, "failed": failed}

    def summary(self) -> Dict[str, int]:
        counts = {s.value: 0 for s in ItemStatus}
        for item in self.items:
            counts[item.status.value] += 1
        counts["total"] = len(self.items)
        counts["resolved"] = len(self.resolved_items())
        counts["selected"] = sum(1 for i in self.resolved_items() if i.selected)
        return counts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.value,
            "createdAt": self.created_at,
            "summary": self.summary(),
            "items": [i.to_dict() for i in self.items],
        }


class BatchRegistry:
    """In-process lookup of batch runs by id"""

    def __init__(self):
        self._runs: Dict[str, BatchRun] = {}
        self._lock = threading.Lock()

    def add(self, run: BatchRun) -> BatchRun:
        with self._lock:
            self._runs[run.id] = run
        return run

    def get(self, run_id: str) -> Optional[BatchRun]:
        with self._lock:
            return self._runs.get(run_id)

    def remove(self, run_id: str):
        with self._lock:
            self._runs.pop(run_id, None)

    def list(self) -> List[BatchRun]:
        with self._lock:
            return list(self._runs.values())
