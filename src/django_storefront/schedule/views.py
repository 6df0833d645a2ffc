"""JSON views for the admin schedule editor.

Edits made through :class:`ScheduleEditView` are kept as a working copy in
the session until the schedule is saved with a ``POST`` to
:class:`EventScheduleView`.
"""

import json
import logging
from collections.abc import Callable
from typing import Any

from django.contrib.auth.mixins import LoginRequiredMixin
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views import View

from django_storefront.api.client import StorefrontAPIClient, StorefrontAPIError
from django_storefront.api.models import ScheduleBlock
from django_storefront.schedule.services.board import ScheduleBoard
from django_storefront.schedule.services.editor import SectionScheduleEditor

logger = logging.getLogger(__name__)

_DRAFT_KEY_PREFIX = "schedule:"

LOAD_FAILED_MESSAGE = "Failed to load event details."


class _InvalidAction(ValueError):
    pass


def _json_body(body: bytes) -> dict[str, Any] | None:
    try:
        data = json.loads(body or b"{}")
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _parse_blocks(items: object) -> list[ScheduleBlock] | None:
    """Decode a wire block list; ``None`` when any part is malformed."""
    if not isinstance(items, list):
        return None
    blocks = []
    for item in items:
        if not isinstance(item, dict):
            return None
        block = ScheduleBlock.from_api(item)
        if block is None or not block.id:
            return None
        blocks.append(block)
    return blocks


def _error(message: str, status: int = 400) -> JsonResponse:
    return JsonResponse({"error": message}, status=status)


class ScheduleBoardMixin(LoginRequiredMixin):
    """Loads the event's :class:`ScheduleBoard`, applying the session working copy.

    Anonymous requests are rejected with 403.
    """

    raise_exception = True

    def get_client(self) -> StorefrontAPIClient:
        return StorefrontAPIClient.from_settings()

    @staticmethod
    def draft_key(event_id: str) -> str:
        return f"{_DRAFT_KEY_PREFIX}{event_id}"

    def load_board(self, request: HttpRequest, client: StorefrontAPIClient, event_id: str) -> ScheduleBoard | None:
        try:
            board = ScheduleBoard(client.fetch_event(event_id))
        except StorefrontAPIError as exc:
            logger.warning("Failed to load event %s: %s", event_id, exc)
            return None
        draft = _parse_blocks(request.session.get(self.draft_key(event_id)))
        if draft is not None:
            board.replace_schedule(draft)
        return board

    def save_draft(self, request: HttpRequest, board: ScheduleBoard) -> None:
        request.session[self.draft_key(board.event.id)] = [block.to_api() for block in board.schedule]

    def board_json(self, board: ScheduleBoard) -> dict[str, Any]:
        """Section lists for the editor page, built through section editors so empty sections are seeded."""
        sections = []
        for section in board.sections:
            editor = board.editor(section.id)
            sections.append(
                {"id": section.id, "name": section.name, "items": [block.to_api() for block in editor.blocks]}
            )
        return {"eventId": board.event.id, "canEdit": board.can_edit, "sections": sections}


class EventScheduleView(ScheduleBoardMixin, View):
    """Read (``GET``) or save (``POST``) an event's schedule.

    ``POST`` with ``{"schedule": [...]}`` replaces the whole schedule;
    without a ``schedule`` key the session working copy is saved.
    """

    def get(self, request: HttpRequest, event_id: str) -> HttpResponse:
        board = self.load_board(request, self.get_client(), event_id)
        if board is None:
            return _error(LOAD_FAILED_MESSAGE, status=502)
        before = list(board.schedule)
        data = self.board_json(board)
        if board.schedule != before:
            # Seeded blocks need stable ids for follow-up edits.
            self.save_draft(request, board)
        return JsonResponse(data)

    def post(self, request: HttpRequest, event_id: str) -> HttpResponse:
        data = _json_body(request.body)
        if data is None or not set(data) <= {"schedule"}:
            return _error("Request body must be {'schedule': [...]} or {}.")
        blocks = None
        if "schedule" in data:
            blocks = _parse_blocks(data["schedule"])
            if blocks is None:
                return _error("Request body must be {'schedule': [...]} or {}.")

        client = self.get_client()
        board = self.load_board(request, client, event_id)
        if board is None:
            return _error(LOAD_FAILED_MESSAGE, status=502)

        if blocks is not None:
            board.replace_schedule(blocks)
        result = board.save(client, str(request.user.pk))
        if not result.ok:
            return _error(result.error, status=502)
        request.session.pop(self.draft_key(event_id), None)
        return JsonResponse({"eventId": event_id, "schedule": [block.to_api() for block in board.schedule]})


def _index(data: dict[str, Any], name: str, editor: SectionScheduleEditor) -> int:
    value = data.get(name)
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < len(editor.blocks):
        raise _InvalidAction(f"'{name}' must be a block position in the section.")
    return value


def _text(data: dict[str, Any], name: str) -> str:
    value = data.get(name)
    if not isinstance(value, str):
        raise _InvalidAction(f"'{name}' must be a string.")
    return value


def _retitle(editor: SectionScheduleEditor, data: dict[str, Any]) -> bool:
    editor.retitle_block(_index(data, "index", editor), _text(data, "title"))
    return True


def _retime(editor: SectionScheduleEditor, data: dict[str, Any]) -> bool:
    index, field, time_text = _index(data, "index", editor), _text(data, "field"), _text(data, "time")
    try:
        editor.retime_block(index, field, time_text)
    except ValueError as exc:
        raise _InvalidAction("'field' must be 'start' or 'end'.") from exc
    return True


def _split(editor: SectionScheduleEditor, data: dict[str, Any]) -> bool:
    return editor.split_block(_index(data, "index", editor))


def _delete(editor: SectionScheduleEditor, data: dict[str, Any]) -> bool:
    block_id = _text(data, "blockId")
    if not any(block.id == block_id for block in editor.blocks):
        return False
    editor.delete_block(block_id)
    return True


def _reorder(editor: SectionScheduleEditor, data: dict[str, Any]) -> bool:
    editor.begin_drag(_index(data, "fromIndex", editor))
    editor.update_drag_target(_index(data, "toIndex", editor))
    return editor.commit_drag()


_ACTIONS: dict[str, Callable[[SectionScheduleEditor, dict[str, Any]], bool]] = {
    "retitle": _retitle,
    "retime": _retime,
    "split": _split,
    "delete": _delete,
    "reorder": _reorder,
}


class ScheduleEditView(ScheduleBoardMixin, View):
    """Apply one section editor operation to the session working copy.

    Body: ``{"sectionId", "action", ...}`` where ``action`` is one of
    ``retitle`` (``index``, ``title``), ``retime`` (``index``, ``field``,
    ``time``), ``split`` (``index``), ``delete`` (``blockId``) or
    ``reorder`` (``fromIndex``, ``toIndex``).  Answers with the section
    lists and whether anything changed.
    """

    def post(self, request: HttpRequest, event_id: str) -> HttpResponse:
        data = _json_body(request.body)
        if data is None:
            return _error("Request body must be a JSON object.")
        name = data.get("action")
        action = _ACTIONS.get(name) if isinstance(name, str) else None
        if action is None:
            return _error(f"'action' must be one of: {', '.join(_ACTIONS)}.")

        board = self.load_board(request, self.get_client(), event_id)
        if board is None:
            return _error(LOAD_FAILED_MESSAGE, status=502)
        if not board.can_edit:
            return _error("The event needs a start and end time before its schedule can be edited.")
        section_id = data.get("sectionId")
        if not isinstance(section_id, str) or section_id not in {section.id for section in board.sections}:
            return _error("'sectionId' must name one of the event's sections.")

        try:
            changed = action(board.editor(section_id), data)
        except _InvalidAction as exc:
            return _error(str(exc))
        logger.debug("Schedule %s action on event %s section %s", name, event_id, section_id)
        payload = self.board_json(board)
        self.save_draft(request, board)
        return JsonResponse({**payload, "changed": changed})
