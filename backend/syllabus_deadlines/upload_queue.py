"""Client-side upload queue with a bounded pool of in-flight extractions.

All mutations happen on the event loop thread; the only concurrency is across
awaiting extraction calls, so no locking is needed. The slot counter belongs
to the queue instance: it goes up on dispatch, down on settle, and every
settle re-runs dispatch so the pool stays full while work is pending.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set

from .config import MAX_CONCURRENT, MAX_QUEUE_ITEMS
from .errors import DeadlineParserError, InternalError, InvalidTransition
from .models import DeadlineEvent, FileQueueItem, ItemStatus, ParseResponse, Submission

logger = logging.getLogger(__name__)

ExtractFn = Callable[[Submission], Awaitable[ParseResponse]]

DISPATCH = "dispatch"
SUCCEED = "succeed"
FAIL = "fail"
RETRY = "retry"

_TRANSITIONS = {
    (ItemStatus.PENDING, DISPATCH): ItemStatus.PROCESSING,
    (ItemStatus.PROCESSING, SUCCEED): ItemStatus.DONE,
    (ItemStatus.PROCESSING, FAIL): ItemStatus.ERROR,
    (ItemStatus.ERROR, RETRY): ItemStatus.PENDING,
}


def transition(status: ItemStatus, event: str) -> ItemStatus:
    try:
        return _TRANSITIONS[(status, event)]
    except KeyError:
        raise InvalidTransition(f"cannot {event} an item that is {status.value}") from None


class UploadQueue:
    def __init__(
        self,
        extract: ExtractFn,
        max_concurrent: int = MAX_CONCURRENT,
        max_items: int = MAX_QUEUE_ITEMS,
    ):
        self._extract = extract
        self.max_concurrent = max_concurrent
        self.max_items = max_items
        self._items: Dict[str, FileQueueItem] = {}
        self._in_flight = 0
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------
    # inspection
    # ------------------------------------------------------------
    @property
    def items(self) -> List[FileQueueItem]:
        return list(self._items.values())

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def get(self, item_id: str) -> Optional[FileQueueItem]:
        return self._items.get(item_id)

    def count(self, status: ItemStatus) -> int:
        return sum(1 for item in self._items.values() if item.status == status)

    @property
    def can_proceed(self) -> bool:
        return self.count(ItemStatus.DONE) > 0

    # ------------------------------------------------------------
    # admission
    # ------------------------------------------------------------
    def add_files(self, submissions: Iterable[Submission]) -> List[FileQueueItem]:
        """Queue submissions as pending items; anything past the cap is dropped.

        Must be called from inside the running event loop.
        """
        incoming = list(submissions)
        room = max(self.max_items - len(self._items), 0)
        if len(incoming) > room:
            logger.info("Queue full: dropping %d of %d submission(s)", len(incoming) - room, len(incoming))

        added = []
        for submission in incoming[:room]:
            item = FileQueueItem(submission=submission)
            self._items[item.id] = item
            added.append(item)

        self._pump()
        return added

    def add_text(self, text: str) -> Optional[FileQueueItem]:
        added = self.add_files([Submission.from_text(text)])
        return added[0] if added else None

    # ------------------------------------------------------------
    # user actions
    # ------------------------------------------------------------
    def retry(self, item_id: str) -> FileQueueItem:
        item = self._items[item_id]
        self._items[item_id] = item.model_copy(
            update={"status": transition(item.status, RETRY), "error": None, "events": [], "detected_course": ""}
        )
        self._pump()
        return self._items[item_id]

    def remove(self, item_id: str) -> None:
        # an in-flight call keeps its slot until it settles; its result is then discarded
        self._items.pop(item_id, None)

    def reset(self) -> None:
        self._items.clear()

    def set_course_name(self, item_id: str, course_name: str) -> FileQueueItem:
        item = self._items[item_id]
        self._items[item_id] = item.model_copy(update={"course_name": course_name})
        return self._items[item_id]

    def proceed(self) -> List[DeadlineEvent]:
        """Events of every finished item, in queue order.

        A course name set by the user overrides each event's own course.
        """
        events: List[DeadlineEvent] = []
        for item in self._items.values():
            if item.status != ItemStatus.DONE:
                continue
            course = item.course_name.strip()
            for ev in item.events:
                events.append(ev.model_copy(update={"course": course}) if course else ev.model_copy())
        return events

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------
    # scheduling
    # ------------------------------------------------------------
    def _next_pending(self) -> Optional[FileQueueItem]:
        for item in self._items.values():
            if item.status == ItemStatus.PENDING:
                return item
        return None

    def _pump(self) -> None:
        while self._in_flight < self.max_concurrent:
            item = self._next_pending()
            if item is None:
                return
            self._items[item.id] = item.model_copy(update={"status": transition(item.status, DISPATCH)})
            self._in_flight += 1
            logger.debug("Dispatching %s (%d in flight)", item.id, self._in_flight)

            task = asyncio.get_running_loop().create_task(self._run(item.id, item.submission))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run(self, item_id: str, submission: Submission) -> None:
        try:
            result = await self._extract(submission)
        except DeadlineParserError as e:
            self._settle(item_id, FAIL, error=e.message)
        except Exception:
            logger.exception("Extraction for queue item %s failed unexpectedly", item_id)
            self._settle(item_id, FAIL, error=InternalError.default_message)
        else:
            self._settle(item_id, SUCCEED, result=result)
        finally:
            self._in_flight -= 1
            self._pump()

    def _settle(
        self,
        item_id: str,
        event: str,
        result: Optional[ParseResponse] = None,
        error: Optional[str] = None,
    ) -> None:
        item = self._items.get(item_id)
        if item is None:
            logger.debug("Discarding result for removed item %s", item_id)
            return

        update = {"status": transition(item.status, event)}
        if result is not None:
            update["events"] = list(result.events)
            update["error"] = None
            update["detected_course"] = result.course_name
        else:
            update["error"] = error
        self._items[item_id] = item.model_copy(update=update)
        logger.info("Queue item %s settled as %s", item_id, update["status"].value)
