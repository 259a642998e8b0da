import unittest

from fastapi.testclient import TestClient

from fake_media_service import FakeMediaService
from anisocial.main import create_app


class TestSocialAPI(unittest.TestCase):
    def setUp(self):
        self.service = FakeMediaService()
        self.service.add_root("root", 100, [1, 2])
        self.service.add_list("user1", [(42, 8, "COMPLETED")])
        self.service.add_list("user2", [(42, 0, "PLANNING"), (9, 7, "CURRENT")])
        self.client = TestClient(create_app(self.service))

    def load_root(self):
        resp = self.client.post("/api/social/root", json={"user_name": "root", "media_type": "ANIME"})
        self.assertEqual(resp.status_code, 200)
        return resp.json()

    def test_load_root_user(self):
        data = self.load_root()
        self.assertEqual(data["root"]["id"], 100)
        self.assertEqual([f["id"] for f in data["followers"]], [1, 2])
        self.assertEqual(data["followers"][0]["load_state"], "not_loaded")
        self.assertEqual(data["followers"][0]["weight"], 1)

    def test_unknown_root_user(self):
        resp = self.client.post("/api/social/root", json={"user_name": "nobody"})
        self.assertEqual(resp.status_code, 404)

    def test_ratings_weight_and_popularity(self):
        self.load_root()
        resp = self.client.post("/api/social/followers/1/ratings")
        self.assertEqual(resp.json()["load_state"], "loaded")
        self.client.post("/api/social/followers/2/ratings")
        resp = self.client.post("/api/social/followers/1/weight")
        self.assertEqual(resp.json()["weight"], 2)

        data = self.client.get("/api/social/popularity", params={"limit": 1}).json()
        self.assertEqual(data["scores"], {"42": 3, "9": 1})
        self.assertEqual(data["top"], [[42, 3]])

    def test_unknown_follower(self):
        self.load_root()
        self.assertEqual(self.client.post("/api/social/followers/99/ratings").status_code, 404)
        self.assertEqual(self.client.post("/api/social/followers/99/weight").status_code, 404)

    def test_failed_follower_fetch(self):
        self.load_root()
        self.service.fail("list_rated_items:user1")
        self.assertEqual(self.client.post("/api/social/followers/1/ratings").status_code, 502)
        follower = self.client.get("/api/social/followers").json()["followers"][0]
        self.assertEqual(follower["load_state"], "not_loaded")

    def test_item_stats(self):
        self.load_root()
        data = self.client.get("/api/social/items/42/stats").json()
        self.assertEqual((data["count"], data["average"], data["median"]), (2, 8.0, 8.0))
        self.assertEqual(data["ratings"][1]["status"], "PLANNING")
        self.client.get("/api/social/items/42/stats")
        self.assertEqual(self.service.calls["batch_single_item_ratings"], 1)

    def test_item_stats_batch_failure(self):
        self.load_root()
        self.service.fail("batch_single_item_ratings")
        self.assertEqual(self.client.get("/api/social/items/42/stats").status_code, 502)

    def test_loaded_stats_use_no_network(self):
        self.load_root()
        self.client.post("/api/social/followers/1/ratings")
        data = self.client.get("/api/social/items/42/loaded-stats").json()
        self.assertEqual(data["count"], 1)
        self.assertEqual(self.service.calls["batch_single_item_ratings"], 0)

    def test_metrics_snapshot_disabled(self):
        self.assertEqual(self.client.get("/api/metrics/snapshot").json(), {"counters": {}, "latency": {}})

if __name__ == "__main__":
    unittest.main()
