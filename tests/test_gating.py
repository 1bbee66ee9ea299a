from __future__ import annotations

import unittest

from analysis.gating import DEFAULT_GATING_POLICY, GatingPolicy, Stage


class GatingPolicyTests(unittest.TestCase):
    def test_default_thresholds(self) -> None:
        policy = DEFAULT_GATING_POLICY
        self.assertEqual(policy.minimum_reviews_needed, 3)
        self.assertEqual(policy.enabled_stages(0), frozenset())
        self.assertEqual(policy.enabled_stages(2), frozenset())
        self.assertEqual(policy.enabled_stages(3), frozenset({Stage.BASELINE}))
        self.assertEqual(policy.enabled_stages(7), frozenset({Stage.BASELINE}))
        self.assertEqual(policy.enabled_stages(8), frozenset({Stage.BASELINE, Stage.SEGMENTS}))
        self.assertEqual(policy.enabled_stages(12), frozenset(Stage))

    def test_stages_only_accumulate(self) -> None:
        previous: frozenset[Stage] = frozenset()
        for count in range(30):
            current = DEFAULT_GATING_POLICY.enabled_stages(count)
            self.assertTrue(previous <= current, count)
            previous = current

    def test_custom_policy(self) -> None:
        policy = GatingPolicy(baseline_min_reviews=1, segments_min_reviews=2, trends_min_reviews=4)
        self.assertEqual(policy.minimum_reviews_needed, 1)
        self.assertEqual(policy.enabled_stages(2), frozenset({Stage.BASELINE, Stage.SEGMENTS}))
        self.assertIn(Stage.TRENDS, policy.enabled_stages(4))


if __name__ == "__main__":
    unittest.main()
