"""Tests for django_storefront.schedule.services.editor -- SectionScheduleEditor."""

from datetime import UTC, datetime, timedelta
from unittest.mock import Mock

import pytest
from django.test import override_settings

from django_storefront.api.models import ScheduleBlock
from django_storefront.schedule.services.editor import SectionScheduleEditor, merge_time_of_day

EVENT_START = datetime(2026, 7, 1, 18, 0, tzinfo=UTC)
EVENT_END = datetime(2026, 7, 1, 23, 0, tzinfo=UTC)


def _block(block_id, start_minutes, duration_minutes, title=None):
    start = EVENT_START + timedelta(minutes=start_minutes)
    return ScheduleBlock(
        id=block_id,
        area_id="stage",
        title=title or block_id,
        start=start,
        end=start + timedelta(minutes=duration_minutes),
    )


def _editor(*blocks, on_change=None):
    return SectionScheduleEditor(
        "stage",
        event_start=EVENT_START,
        event_end=EVENT_END,
        blocks=blocks,
        on_change=on_change,
    )


# ---------------------------------------------------------------------------
# merge_time_of_day()
# ---------------------------------------------------------------------------


class TestMergeTimeOfDay:
    @pytest.mark.unit
    def test_replaces_hour_and_minute(self):
        value = datetime(2026, 7, 1, 18, 0, 45, tzinfo=UTC)
        assert merge_time_of_day(value, "20:15") == datetime(2026, 7, 1, 20, 15, tzinfo=UTC)

    @pytest.mark.unit
    @pytest.mark.parametrize("text", ["", "8pm", "25:00", "12:60", "12-30"])
    def test_unparsable_leaves_value(self, text):
        assert merge_time_of_day(EVENT_START, text) is EVENT_START


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------


class TestSeeding:
    @pytest.mark.unit
    def test_empty_section_seeded_on_creation(self):
        on_change = Mock()
        editor = _editor(on_change=on_change)

        assert len(editor.blocks) == 1
        seeded = editor.blocks[0]
        assert seeded.title == "Event Duration"
        assert seeded.area_id == "stage"
        assert (seeded.start, seeded.end) == (EVENT_START, EVENT_END)
        on_change.assert_called_once_with(editor.blocks)

    @pytest.mark.unit
    def test_seed_title_from_settings(self):
        with override_settings(DJANGO_STOREFRONT={"schedule": {"default_block_title": "Doors"}}):
            editor = _editor()
        assert editor.blocks[0].title == "Doors"

    @pytest.mark.unit
    def test_no_seed_without_event_times(self):
        on_change = Mock()
        editor = SectionScheduleEditor("stage", event_start=EVENT_START, event_end=None, on_change=on_change)

        assert editor.blocks == []
        on_change.assert_not_called()

    @pytest.mark.unit
    def test_existing_blocks_not_seeded(self):
        on_change = Mock()
        editor = _editor(_block("a", 0, 60), on_change=on_change)

        assert [b.id for b in editor.blocks] == ["a"]
        on_change.assert_not_called()

    @pytest.mark.unit
    def test_blocks_sorted_by_start(self):
        editor = _editor(_block("late", 120, 30), _block("early", 0, 30))
        assert [b.id for b in editor.blocks] == ["early", "late"]


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------


class TestRetitle:
    @pytest.mark.unit
    def test_retitle_emits(self):
        on_change = Mock()
        editor = _editor(_block("a", 0, 60), on_change=on_change)
        editor.retitle_block(0, "Headliner")

        assert editor.blocks[0].title == "Headliner"
        on_change.assert_called_once()


class TestRetime:
    @pytest.mark.unit
    def test_start_pulls_previous_end(self):
        editor = _editor(_block("a", 0, 60), _block("b", 60, 60))
        editor.retime_block(1, "start", "19:30")

        a, b = editor.blocks
        assert b.start == datetime(2026, 7, 1, 19, 30, tzinfo=UTC)
        assert a.end == b.start

    @pytest.mark.unit
    def test_end_pushes_next_start(self):
        editor = _editor(_block("a", 0, 60), _block("b", 60, 60))
        editor.retime_block(0, "end", "18:45")

        a, b = editor.blocks
        assert a.end == datetime(2026, 7, 1, 18, 45, tzinfo=UTC)
        assert b.start == a.end
        assert b.end == EVENT_START + timedelta(minutes=120)

    @pytest.mark.unit
    def test_first_block_start_has_no_neighbour(self):
        editor = _editor(_block("a", 0, 60), _block("b", 60, 60))
        editor.retime_block(0, "start", "18:15")

        a, b = editor.blocks
        assert a.start == datetime(2026, 7, 1, 18, 15, tzinfo=UTC)
        assert b.start == EVENT_START + timedelta(minutes=60)

    @pytest.mark.unit
    def test_unparsable_time_changes_nothing(self):
        editor = _editor(_block("a", 0, 60), _block("b", 60, 60))
        before = list(editor.blocks)
        editor.retime_block(1, "start", "soon")
        assert editor.blocks == before

    @pytest.mark.unit
    def test_start_after_end_accepted(self):
        editor = _editor(_block("a", 0, 60))
        editor.retime_block(0, "start", "22:00")
        assert editor.blocks[0].start > editor.blocks[0].end

    @pytest.mark.unit
    def test_unknown_field_rejected(self):
        editor = _editor(_block("a", 0, 60))
        with pytest.raises(ValueError):
            editor.retime_block(0, "middle", "19:00")


class TestSplit:
    @pytest.mark.unit
    def test_splits_at_midpoint(self):
        on_change = Mock()
        editor = _editor(_block("a", 0, 60, title="Set"), on_change=on_change)

        assert editor.split_block(0) is True

        first, second = editor.blocks
        assert first.id == "a"
        assert first.end == EVENT_START + timedelta(minutes=30)
        assert second.start == first.end
        assert second.end == EVENT_START + timedelta(minutes=60)
        assert second.title == "Set"
        assert second.id not in {"", "a"}
        assert second.area_id == "stage"
        on_change.assert_called_once()

    @pytest.mark.unit
    def test_zero_duration_is_noop(self):
        on_change = Mock()
        editor = _editor(_block("a", 0, 0), on_change=on_change)

        assert editor.split_block(0) is False
        assert len(editor.blocks) == 1
        on_change.assert_not_called()


class TestDelete:
    @pytest.mark.unit
    def test_neighbours_keep_their_times(self):
        editor = _editor(_block("a", 0, 60), _block("b", 60, 60), _block("c", 120, 60))
        editor.delete_block("b")

        a, c = editor.blocks
        assert a.end == EVENT_START + timedelta(minutes=60)
        assert c.start == EVENT_START + timedelta(minutes=120)

    @pytest.mark.unit
    def test_deleting_last_block_reseeds(self):
        on_change = Mock()
        editor = _editor(_block("a", 30, 60), on_change=on_change)
        editor.delete_block("a")

        assert len(editor.blocks) == 1
        assert editor.blocks[0].id != "a"
        assert editor.blocks[0].title == "Event Duration"
        assert (editor.blocks[0].start, editor.blocks[0].end) == (EVENT_START, EVENT_END)
        on_change.assert_called_once_with(editor.blocks)


# ---------------------------------------------------------------------------
# Reordering
# ---------------------------------------------------------------------------


class TestReorder:
    @pytest.mark.unit
    def test_blocks_laid_out_back_to_back(self):
        editor = _editor(_block("a", 0, 60), _block("b", 90, 30), _block("c", 200, 90))

        assert editor.reorder_blocks(0, 2) is True

        assert [b.id for b in editor.blocks] == ["b", "c", "a"]
        assert editor.blocks[0].start == EVENT_START
        for previous, current in zip(editor.blocks, editor.blocks[1:], strict=False):
            assert current.start == previous.end
        assert [b.duration for b in editor.blocks] == [
            timedelta(minutes=30),
            timedelta(minutes=90),
            timedelta(minutes=60),
        ]

    @pytest.mark.unit
    def test_same_index_is_noop(self):
        on_change = Mock()
        editor = _editor(_block("a", 0, 60), _block("b", 60, 60), on_change=on_change)

        assert editor.reorder_blocks(1, 1) is False
        on_change.assert_not_called()

    @pytest.mark.unit
    def test_inverted_block_keeps_dragged_order(self):
        inverted = _block("b", 60, -30)
        editor = _editor(_block("a", 0, 60), inverted, _block("c", 120, 60))

        assert editor.reorder_blocks(0, 2) is True

        assert [b.id for b in editor.blocks] == ["b", "c", "a"]
        assert editor.blocks[0].start == editor.blocks[0].end == EVENT_START
        for previous, current in zip(editor.blocks, editor.blocks[1:], strict=False):
            assert current.start == previous.end


class TestDrag:
    @pytest.mark.unit
    def test_drag_reorders(self):
        editor = _editor(_block("a", 0, 60), _block("b", 60, 60), _block("c", 120, 60))
        editor.begin_drag(2)
        editor.update_drag_target(1)
        editor.update_drag_target(0)

        assert editor.commit_drag() is True
        assert [b.id for b in editor.blocks] == ["c", "a", "b"]

    @pytest.mark.unit
    def test_drop_on_self_is_noop(self):
        editor = _editor(_block("a", 0, 60), _block("b", 60, 60))
        editor.begin_drag(1)
        editor.update_drag_target(1)
        assert editor.commit_drag() is False

    @pytest.mark.unit
    def test_commit_without_target_is_noop(self):
        editor = _editor(_block("a", 0, 60), _block("b", 60, 60))
        editor.begin_drag(0)
        assert editor.commit_drag() is False

    @pytest.mark.unit
    def test_drag_state_reset_after_commit(self):
        editor = _editor(_block("a", 0, 60), _block("b", 60, 60))
        editor.begin_drag(0)
        editor.update_drag_target(1)
        editor.commit_drag()

        assert editor.commit_drag() is False
