"""The full event schedule split into per-section editors."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from django_storefront.api.client import StorefrontAPIClient, StorefrontAPIError
from django_storefront.api.models import Event, ScheduleBlock, VenueArea
from django_storefront.schedule.services.editor import SectionScheduleEditor
from django_storefront.settings import get_config

logger = logging.getLogger(__name__)

SAVE_FAILED_MESSAGE = "Failed to save changes."


def _by_start(blocks: Iterable[ScheduleBlock]) -> list[ScheduleBlock]:
    return sorted(blocks, key=lambda b: b.start)


@dataclass(frozen=True, slots=True)
class SaveResult:
    """Outcome of :meth:`ScheduleBoard.save`."""

    ok: bool
    error: str = ""
    event: Event | None = None


class ScheduleBoard:
    """Holds the whole schedule of one event and hands out section editors.

    Changes made through an editor from :meth:`editor` are merged back into
    :attr:`schedule`, replacing that section's blocks and keeping the rest.

    Args:
        event: The event whose schedule is being edited.
    """

    def __init__(self, event: Event) -> None:
        self.event = event
        self.schedule: list[ScheduleBlock] = _by_start(event.schedule)

    @property
    def can_edit(self) -> bool:
        return self.event.start is not None and self.event.end is not None

    @property
    def sections(self) -> list[VenueArea]:
        """The event's venue areas, or a single default area when it has none."""
        if self.event.venue_areas:
            return list(self.event.venue_areas)
        config = get_config().schedule
        return [VenueArea(id=config.default_section_id, name=config.default_section_name)]

    def section_items(self, section_id: str) -> list[ScheduleBlock]:
        return [block for block in self.schedule if block.area_id == section_id]

    def replace_section(self, section_id: str, blocks: Iterable[ScheduleBlock]) -> None:
        others = [block for block in self.schedule if block.area_id != section_id]
        self.schedule = _by_start([*others, *blocks])

    def replace_schedule(self, blocks: Iterable[ScheduleBlock]) -> None:
        self.schedule = _by_start(blocks)

    def editor(self, section_id: str) -> SectionScheduleEditor:
        """Create an editor for one section wired back into this board.

        A section with no blocks is seeded with a block spanning the event
        as soon as the editor is created.
        """
        return SectionScheduleEditor(
            section_id,
            event_start=self.event.start,
            event_end=self.event.end,
            blocks=self.section_items(section_id),
            on_change=lambda blocks: self.replace_section(section_id, blocks),
        )

    def save(self, client: StorefrontAPIClient, user_id: str) -> SaveResult:
        """Persist the schedule.

        On failure the local schedule is kept so the admin can retry.

        Args:
            client: API client used for the update.
            user_id: The acting admin.

        Returns:
            A :class:`SaveResult` carrying the updated event on success, or
            the user-facing error message on failure.
        """
        try:
            updated = client.update_event(user_id, self.event.id, {"schedule": self.schedule})
        except StorefrontAPIError as exc:
            logger.warning("Failed to save schedule for event %s: %s", self.event.id, exc)
            return SaveResult(ok=False, error=SAVE_FAILED_MESSAGE)
        logger.info("Saved %d schedule blocks for event %s", len(self.schedule), self.event.id)
        return SaveResult(ok=True, event=updated)
