import unittest
from anisocial.schemas import RatedEntry
from anisocial.services.detail_cache import DetailCache
from anisocial.services.score_index import FollowerScoreIndex, build_score_map
from anisocial.services.social_stats import empty_bundle
from anisocial.services.weights import WEIGHT_BOOSTED, WEIGHT_NORMAL, WeightTable


class TestWeightTable(unittest.TestCase):
    def test_default_and_toggle(self):
        weights = WeightTable()
        self.assertEqual(weights.get(5), WEIGHT_NORMAL)
        self.assertEqual(weights.toggle(5), WEIGHT_BOOSTED)
        self.assertEqual(weights.get(5), WEIGHT_BOOSTED)
        self.assertEqual(weights.toggle(5), WEIGHT_NORMAL)
        self.assertEqual(weights.version, 2)


class TestFollowerScoreIndex(unittest.TestCase):
    def test_install_replaces_whole_map(self):
        index = FollowerScoreIndex()
        index.install(1, {10: 8, 11: 0})
        index.install(1, {12: 5})
        self.assertEqual(dict(index.get(1)), {12: 5})
        self.assertEqual(index.version, 2)

    def test_ratings_for_item(self):
        index = FollowerScoreIndex()
        index.install(1, {10: 8})
        index.install(2, {10: 0, 11: 7})
        index.install(3, {11: 6})
        self.assertEqual(sorted(index.ratings_for_item(10)), [(1, 8), (2, 0)])

    def test_clear_bumps_version(self):
        index = FollowerScoreIndex()
        index.install(1, {10: 8})
        index.clear()
        self.assertNotIn(1, index)
        self.assertEqual(index.version, 2)

    def test_build_score_map_last_entry_wins(self):
        entries = [RatedEntry(item_id=1, rating=3), RatedEntry(item_id=1, rating=9), RatedEntry(item_id=2)]
        self.assertEqual(build_score_map(entries), {1: 9, 2: 0})


class TestDetailCache(unittest.TestCase):
    def test_store_get_clear(self):
        cache = DetailCache()
        self.assertIsNone(cache.get(1))
        cache.store(1, empty_bundle())
        self.assertIn(1, cache)
        cache.clear()
        self.assertEqual(len(cache), 0)

if __name__ == "__main__":
    unittest.main()
