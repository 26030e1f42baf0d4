import unittest

from tests.fakes import FakeClock
from warmer import RateLimiter


class TestRateLimiter(unittest.TestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.limiter = RateLimiter(0.25, clock=self.clock, sleep=self.clock.sleep)

    def test_first_call_does_not_sleep(self):
        self.assertEqual(self.limiter.wait(), 0.0)
        self.assertEqual(self.clock.sleeps, [])

    def test_back_to_back_calls_are_spaced_by_interval(self):
        self.limiter.wait()
        self.limiter.wait()
        self.limiter.wait()
        self.assertEqual(len(self.clock.sleeps), 2)
        for slept in self.clock.sleeps:
            self.assertAlmostEqual(slept, 0.25)

    def test_only_the_remaining_interval_is_slept(self):
        self.limiter.wait()
        self.clock.advance(0.1)
        self.assertAlmostEqual(self.limiter.wait(), 0.15)

    def test_no_sleep_after_interval_has_elapsed(self):
        self.limiter.wait()
        self.clock.advance(1.0)
        self.assertEqual(self.limiter.wait(), 0.0)
        self.assertEqual(self.clock.sleeps, [])

    def test_negative_interval_rejected(self):
        with self.assertRaises(ValueError):
            RateLimiter(-1)


if __name__ == "__main__":
    unittest.main()
