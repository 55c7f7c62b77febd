"""Tests for the dead-letter CLI."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from scripts.dead_letters import cmd_list, cmd_redrive, format_dead_letter


@pytest.fixture
def parked_job() -> dict:
    return {
        "job_id": "550e8400-e29b-41d4-a716-446655440000",
        "enqueued_at": "2024-01-01T10:00:00.000Z",
        "record": {"site_id": "s1", "event_type": "page_view", "timestamp": "nope"},
        "failure": {
            "reason": "Unparsable event timestamp: 'nope'",
            "attempts": 1,
            "dead_lettered_at": "2024-01-01T10:00:02.000Z",
        },
    }


class TestFormatDeadLetter:
    """Tests for format_dead_letter."""

    def test_row_contains_job_and_reason(self, parked_job) -> None:
        row = format_dead_letter(parked_job)

        assert row.startswith("550e8400-e29b-41d4-a716-446655440000")
        assert "s1" in row
        assert "Unparsable event timestamp" in row

    def test_long_reason_is_truncated(self, parked_job) -> None:
        parked_job["failure"]["reason"] = "persistence: " + "x" * 200

        row = format_dead_letter(parked_job)

        assert row.endswith("...")
        assert "x" * 60 not in row

    def test_undecodable_payload(self) -> None:
        row = format_dead_letter(
            {"raw_body": "garbage", "failure": {"reason": "undecodable job envelope"}}
        )

        assert row.startswith("<undecodable>")
        assert "undecodable job envelope" in row


class TestCmdList:
    """Tests for cmd_list command."""

    @pytest.mark.asyncio
    async def test_list_prints_rows(self, parked_job) -> None:
        queue = MagicMock()
        queue.list_dead_letters = AsyncMock(return_value=[parked_job])

        with patch("builtins.print") as mock_print:
            await cmd_list(queue, limit=5)

        queue.list_dead_letters.assert_awaited_once_with(max_jobs=5)
        printed = "\n".join(str(call.args[0]) for call in mock_print.call_args_list)
        assert parked_job["job_id"] in printed
        assert "Shown: 1 dead-lettered events" in printed

    @pytest.mark.asyncio
    async def test_list_empty(self) -> None:
        queue = MagicMock()
        queue.list_dead_letters = AsyncMock(return_value=[])

        with patch("builtins.print") as mock_print:
            await cmd_list(queue, limit=10)

        mock_print.assert_called_once_with("No dead-lettered events.")


class TestCmdRedrive:
    """Tests for cmd_redrive command."""

    @pytest.mark.asyncio
    async def test_redrive_reports_count(self) -> None:
        queue = MagicMock()
        queue.queue_name = "analytics-events"
        queue.redrive_dead_letters = AsyncMock(return_value=3)

        with patch("builtins.print") as mock_print:
            await cmd_redrive(queue, limit=10)

        queue.redrive_dead_letters.assert_awaited_once_with(max_jobs=10)
        mock_print.assert_called_once_with("✓ Redrove 3 events to analytics-events")
