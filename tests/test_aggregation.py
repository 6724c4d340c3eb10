"""
Tests — status aggregation for quality checks and safety items.

Covers:
    - derive_quality_status: pending / in_progress / passed / failed
    - n/a criteria ignored, empty and all-n/a input leave status unchanged
    - half-up score rounding (12.5 → 13, 87.5 → 88)
    - score_badge thresholds
    - derive_safety_status: open / in_progress / resolved
    - safety_meeting mapping (resolved → completed, open → scheduled)
"""

import pytest

from constructx.models.quality import derive_quality_status, round_half_up, score_badge
from constructx.models.safety import derive_safety_status


class TestQualityReducer:
    def test_all_pending(self):
        assert derive_quality_status(["pending", "pending"]) == ("pending", None)

    def test_pending_with_failure_is_in_progress(self):
        assert derive_quality_status(["failed", "pending", "passed"]) == ("in_progress", None)

    def test_pending_with_only_passes_stays_pending(self):
        assert derive_quality_status(["passed", "pending"]) == ("pending", None)

    def test_all_passed(self):
        assert derive_quality_status(["passed", "passed", "passed"]) == ("passed", 100)

    def test_any_failure_fails(self):
        status, score = derive_quality_status(["passed", "passed", "failed"])
        assert status == "failed"
        assert score == 67

    def test_na_rows_are_ignored(self):
        assert derive_quality_status(["passed", "n/a", "n/a"]) == ("passed", 100)

    def test_empty_returns_none(self):
        assert derive_quality_status([]) == (None, None)

    def test_all_na_returns_none(self):
        assert derive_quality_status(["n/a", "n/a"]) == (None, None)

    def test_score_rounds_half_up(self):
        # 7 of 8 → 87.5, 1 of 8 → 12.5
        assert derive_quality_status(["passed"] * 7 + ["failed"]) == ("failed", 88)
        assert derive_quality_status(["passed"] + ["failed"] * 7) == ("failed", 13)

    def test_round_half_up_helper(self):
        assert round_half_up(82.5) == 83
        assert round_half_up(82.4) == 82
        assert round_half_up(0.5) == 1

    @pytest.mark.parametrize("score,badge", [
        (None, None), (100, "green"), (90, "green"), (89, "yellow"), (70, "yellow"), (69, "red"),
    ])
    def test_score_badge(self, score, badge):
        assert score_badge(score) == badge


class TestSafetyReducer:
    def test_no_actions(self):
        assert derive_safety_status("hazard", []) is None

    def test_all_pending_is_open(self):
        assert derive_safety_status("hazard", ["pending", "pending"]) == "open"

    def test_any_in_progress(self):
        assert derive_safety_status("incident", ["pending", "in_progress"]) == "in_progress"

    def test_partial_completion_is_in_progress(self):
        assert derive_safety_status("hazard", ["completed", "pending"]) == "in_progress"

    def test_all_completed_is_resolved(self):
        assert derive_safety_status("near_miss", ["completed", "completed"]) == "resolved"

    def test_meeting_resolved_maps_to_completed(self):
        assert derive_safety_status("safety_meeting", ["completed"]) == "completed"

    def test_meeting_open_maps_to_scheduled(self):
        assert derive_safety_status("safety_meeting", ["pending"]) == "scheduled"

    def test_meeting_in_progress_unchanged(self):
        assert derive_safety_status("safety_meeting", ["in_progress"]) == "in_progress"
