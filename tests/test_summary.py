"""Tests for src.core.summary — amount formatting and views."""

import pytest

from src.core.state import ChatMode
from src.core.summary import (
    TipOutcome,
    classify,
    format_amount,
    format_difference,
    main_menu_keyboard,
    render_main_view,
    render_summary,
)
from src.data.models import ChatAccount, TipHistoryRecord


class TestFormatAmount:
    def test_whole_numbers_drop_fraction(self):
        assert format_amount(200.0) == "200"
        assert format_amount(-3.0) == "-3"

    def test_fraction_kept_unrounded(self):
        assert format_amount(250.5) == "250.5"
        assert format_amount(0.1 + 0.2) == "0.30000000000000004"

    def test_negative_zero(self):
        assert format_amount(-0.0) == "0"


class TestFormatDifference:
    @pytest.mark.parametrize("expected, received, text", [
        (200, 250.5, "+50.5"),
        (100, 100, "0"),
        (0, 0, "0"),
        (250, 200, "-50"),
        (-10, 5, "+15"),
        (10.5, 10, "-0.5"),
    ])
    def test_sign_rendering(self, expected, received, text):
        assert format_difference(expected, received) == text

    @pytest.mark.parametrize("expected, received", [
        (0, 1e-9), (1e6, 1e6 + 0.25), (-5, -4.75), (3.3, 3.30001),
        (1e-9, 0), (1e6 + 0.25, 1e6), (-4.75, -5), (7, 7), (0.1 + 0.2, 0.3),
    ])
    def test_plus_iff_received_greater(self, expected, received):
        text = format_difference(expected, received)
        assert text.startswith("+") == (received > expected)
        assert text.startswith("-") == (received < expected)
        assert (text == "0") == (received == expected)


class TestClassify:
    def test_outcomes(self):
        assert classify(0.01) is TipOutcome.POSITIVE
        assert classify(0) is TipOutcome.ZERO
        assert classify(-2) is TipOutcome.NEGATIVE


class TestViews:
    def test_main_view_shows_sums_and_difference(self):
        account = ChatAccount(chat_id=1, expected_sum=200, received_sum=250.5)
        text = render_main_view(account, "2025-06-02")
        assert "2025-06-02" in text
        assert "Expected: 200" in text
        assert "Received: 250.5" in text
        assert "Difference: +50.5" in text

    def test_main_view_mode_hint(self):
        text = render_main_view(ChatAccount(chat_id=1), "2025-06-02", ChatMode.AWAITING_RECEIVED)
        assert "received amount" in text

    def test_summary_with_history(self):
        account = ChatAccount(chat_id=1, expected_sum=100, received_sum=90)
        history = [
            TipHistoryRecord(1, "2025-06-02", 100, 90, -10, "2025-06-02T10:00:00+00:00"),
            TipHistoryRecord(1, "2025-06-01", 100, 130, 30, "2025-06-01T10:00:00+00:00"),
        ]
        text = render_summary(account, "2025-06-02", history, 7)
        assert "Shortfall: -10" in text
        assert "Last 7 days: 2 shift(s), total +20" in text

    def test_summary_zero(self):
        text = render_summary(ChatAccount(chat_id=1), "2025-06-02")
        assert "Exact match: 0" in text
        assert "Last" not in text

    def test_main_menu_covers_callback_vocabulary(self):
        data = {cb for row in main_menu_keyboard() for _, cb in row}
        assert data == {
            "input_expected", "input_received", "show_summary",
            "reset_sum", "reset_last", "help",
        }
