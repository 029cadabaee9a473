"""Tests for the loading stage tracker."""

import unittest

from aurora.services.progress import STAGE_DETAILS, LoadingStage, ProgressTracker


class TestProgressTracker(unittest.TestCase):

    def setUp(self):
        self.changes = []
        self.tracker = ProgressTracker(
            on_change=lambda t: self.changes.append((t.stage, t.percent))
        )

    def test_starts_idle(self):
        self.assertEqual(self.tracker.stage, LoadingStage.IDLE)
        self.assertEqual(self.tracker.percent, 0)
        self.assertEqual(self.tracker.detail.label, "Ready to analyze")

    def test_forward_sequence(self):
        self.tracker.advance(LoadingStage.FETCHING)
        self.tracker.advance(LoadingStage.ANALYZING)
        self.tracker.advance(LoadingStage.PRESENTING)
        self.tracker.complete()
        self.tracker.reset()

        self.assertEqual(self.changes, [
            (LoadingStage.FETCHING, 30),
            (LoadingStage.ANALYZING, 65),
            (LoadingStage.PRESENTING, 90),
            (LoadingStage.PRESENTING, 100),
            (LoadingStage.IDLE, 0),
        ])

    def test_backward_move_rejected(self):
        self.tracker.advance(LoadingStage.ANALYZING)
        with self.assertRaises(ValueError):
            self.tracker.advance(LoadingStage.FETCHING)

    def test_same_stage_rejected(self):
        self.tracker.advance(LoadingStage.FETCHING)
        with self.assertRaises(ValueError):
            self.tracker.advance(LoadingStage.FETCHING)

    def test_reset_allows_new_cycle(self):
        self.tracker.advance(LoadingStage.PRESENTING)
        self.tracker.reset()
        self.tracker.advance(LoadingStage.FETCHING)
        self.assertEqual(self.tracker.percent, 30)

    def test_step_index(self):
        self.assertEqual(self.tracker.step_index, 0)
        self.tracker.advance(LoadingStage.ANALYZING)
        self.assertEqual(self.tracker.step_index, 1)

    def test_estimated_seconds_remaining(self):
        self.assertEqual(self.tracker.estimated_seconds_remaining, 8)
        self.tracker.advance(LoadingStage.PRESENTING)
        self.assertEqual(self.tracker.estimated_seconds_remaining, 2)

    def test_stage_percentages(self):
        self.assertEqual(
            {stage: detail.progress for stage, detail in STAGE_DETAILS.items()},
            {
                LoadingStage.IDLE: 0,
                LoadingStage.FETCHING: 30,
                LoadingStage.ANALYZING: 65,
                LoadingStage.PRESENTING: 90,
            },
        )


if __name__ == "__main__":
    unittest.main()
