import unittest
from anisocial.schemas import FollowerRating, FollowerSummary, ListStatus
from anisocial.services.social_stats import build_bundle, compute_average, compute_median, empty_bundle


def rating(follower_id, score, status=ListStatus.COMPLETED):
    return FollowerRating(follower=FollowerSummary(id=follower_id, name=f"user{follower_id}"), rating=score, status=status)


class TestSocialStats(unittest.TestCase):
    def test_median(self):
        self.assertEqual(compute_median([7]), 7)
        self.assertEqual(compute_median([5, 9]), 7)
        self.assertEqual(compute_median([10, 4, 6]), 6)
        self.assertEqual(compute_median([5, 8]), 6.5)

    def test_average_one_decimal(self):
        self.assertEqual(compute_average([7, 8, 10]), 8.3)
        self.assertEqual(compute_average([9, 10]), 9.5)
        # ties round up like the UI expects, not to even
        self.assertEqual(compute_average([8, 9, 8, 8]), 8.3)

    def test_zero_ratings_excluded_from_average_and_median(self):
        self.assertEqual(compute_average([0, 0, 6]), 6.0)
        self.assertEqual(compute_median([0, 2, 4, 0]), 3)
        self.assertEqual(compute_average([0, 0]), 0.0)
        self.assertEqual(compute_median([]), 0.0)

    def test_bundle_counts_tracking_only_followers(self):
        bundle = build_bundle([rating(1, 0, ListStatus.PLANNING), rating(2, 8)])
        self.assertEqual(bundle.count, 2)
        self.assertEqual(bundle.average, 8.0)
        self.assertEqual(bundle.median, 8)
        self.assertEqual([r.follower.id for r in bundle.ratings], [1, 2])

    def test_empty_bundle(self):
        bundle = empty_bundle()
        self.assertEqual((bundle.average, bundle.median, bundle.count, bundle.ratings), (0, 0, 0, []))

if __name__ == "__main__":
    unittest.main()
