"""Timeline editing for per-section event schedules.

A section's blocks are kept sorted by start time.  Editing one boundary
pulls the neighbouring block's boundary along so the timeline stays
contiguous; reordering re-times every block back-to-back from the event
start while keeping each block's duration.
"""

import enum
import logging
import re
import uuid
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime, timedelta
from typing import TypeAlias

from django.utils import timezone

from django_storefront.api.models import ScheduleBlock
from django_storefront.settings import get_config

logger = logging.getLogger(__name__)

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")

ChangeCallback: TypeAlias = Callable[[list[ScheduleBlock]], None]


class TimeField(enum.StrEnum):
    """Which boundary of a block is being edited."""

    START = "start"
    END = "end"


def merge_time_of_day(value: datetime, time_text: str) -> datetime:
    """Replace the hour and minute of *value* with ``HH:MM`` from *time_text*.

    The date is kept and seconds are zeroed. The time is interpreted in the
    current Django timezone, the one the admin edits in.

    Args:
        value: The existing aware timestamp.
        time_text: A ``"HH:MM"`` string from a time input.

    Returns:
        The adjusted timestamp, or *value* unchanged when *time_text* is not
        a valid time of day.
    """
    match = _TIME_RE.match(time_text)
    if match is None:
        return value
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return value
    local = timezone.localtime(value)
    return local.replace(hour=hours, minute=minutes, second=0, microsecond=0)


def new_block_id() -> str:
    return str(uuid.uuid4())


class SectionScheduleEditor:
    """Edits the blocks of one venue section.

    Every mutation hands the new block list to *on_change*. Whenever the
    list ends up empty and the event has both a start and an end, a single
    block spanning the whole event is created, so deleting the last block
    immediately brings the default block back.

    Args:
        section_id: The venue area being edited.
        event_start: Event start; the anchor for reordering.
        event_end: Event end.
        blocks: The section's current blocks.
        on_change: Receives the full, sorted block list after each change.
    """

    def __init__(
        self,
        section_id: str,
        *,
        event_start: datetime | None,
        event_end: datetime | None,
        blocks: Iterable[ScheduleBlock] = (),
        on_change: ChangeCallback | None = None,
    ) -> None:
        self.section_id = section_id
        self.event_start = event_start
        self.event_end = event_end
        self.on_change = on_change
        self.blocks: list[ScheduleBlock] = sorted(blocks, key=lambda b: b.start)
        self._drag_from: int | None = None
        self._drag_to: int | None = None
        if not self.blocks and self._seed():
            self._notify()

    def _seed(self) -> bool:
        if self.blocks or self.event_start is None or self.event_end is None:
            return False
        self.blocks = [
            ScheduleBlock(
                id=new_block_id(),
                area_id=self.section_id,
                title=get_config().schedule.default_block_title,
                start=self.event_start,
                end=self.event_end,
            )
        ]
        logger.debug("Seeded default block for section %s", self.section_id)
        return True

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(list(self.blocks))

    def _commit(self, blocks: list[ScheduleBlock]) -> None:
        self.blocks = sorted(blocks, key=lambda b: b.start)
        self._seed()
        self._notify()

    def retitle_block(self, index: int, title: str) -> None:
        blocks = list(self.blocks)
        blocks[index] = replace(blocks[index], title=title)
        self._commit(blocks)

    def retime_block(self, index: int, field: TimeField | str, time_text: str) -> None:
        """Change one boundary of a block to a new time of day.

        A new start moves the previous block's end with it; a new end moves
        the next block's start. A start after its own end is accepted.

        Args:
            index: Position of the block in :attr:`blocks`.
            field: ``"start"`` or ``"end"``.
            time_text: ``"HH:MM"`` merged onto the existing date.

        Raises:
            IndexError: If *index* is out of range.
            ValueError: If *field* is not a :class:`TimeField` value.
        """
        field = TimeField(field)
        blocks = list(self.blocks)
        original = blocks[index]
        if field == TimeField.START:
            updated = replace(original, start=merge_time_of_day(original.start, time_text))
        else:
            updated = replace(original, end=merge_time_of_day(original.end, time_text))
        blocks[index] = updated

        if updated.start != original.start and index > 0:
            blocks[index - 1] = replace(blocks[index - 1], end=updated.start)
        if updated.end != original.end and index + 1 < len(blocks):
            blocks[index + 1] = replace(blocks[index + 1], start=updated.end)
        self._commit(blocks)

    def split_block(self, index: int) -> bool:
        """Split a block into two halves with the same title.

        Returns:
            ``False`` when the block has no positive duration and nothing
            changed.
        """
        block = self.blocks[index]
        midpoint = block.start + (block.end - block.start) / 2
        if midpoint <= block.start:
            return False
        first = replace(block, end=midpoint)
        second = ScheduleBlock(
            id=new_block_id(),
            area_id=self.section_id,
            title=block.title,
            start=midpoint,
            end=block.end,
        )
        blocks = list(self.blocks)
        blocks[index : index + 1] = [first, second]
        self._commit(blocks)
        return True

    def delete_block(self, block_id: str) -> None:
        """Remove a block. Neighbouring blocks keep their times."""
        self._commit([block for block in self.blocks if block.id != block_id])

    def reorder_blocks(self, from_index: int, to_index: int) -> bool:
        """Move a block and lay every block out back-to-back from the event start.

        Each block keeps its duration, a negative one counting as zero. Any
        previously edited absolute times are discarded.

        Returns:
            ``False`` when nothing moved.
        """
        if from_index == to_index or self.event_start is None:
            return False
        blocks = list(self.blocks)
        moved = blocks.pop(from_index)
        blocks.insert(to_index, moved)

        retimed: list[ScheduleBlock] = []
        cursor = self.event_start
        for block in blocks:
            end = cursor + max(block.duration, timedelta(0))
            retimed.append(replace(block, start=cursor, end=end))
            cursor = end
        self._commit(retimed)
        return True

    def begin_drag(self, index: int) -> None:
        self._drag_from = index
        self._drag_to = None

    def update_drag_target(self, index: int) -> None:
        self._drag_to = index

    def commit_drag(self) -> bool:
        """Finish a drag started with :meth:`begin_drag`.

        Returns:
            ``True`` when the blocks were reordered. Dropping a block onto
            itself, or committing without a start and a target, is a no-op.
        """
        from_index, to_index = self._drag_from, self._drag_to
        self._drag_from = None
        self._drag_to = None
        if from_index is None or to_index is None:
            return False
        return self.reorder_blocks(from_index, to_index)
