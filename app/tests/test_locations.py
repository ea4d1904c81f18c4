import json

import pytest

from app.services.locations import LocationIndex, LRUCache


@pytest.mark.locations
class TestLRUCache:

    def test_evicts_least_recently_used(self):
        cache = LRUCache(max_size=2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.get("a")
        cache.put("c", 3)

        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.get("c") == 3
        assert len(cache) == 2

    def test_put_existing_key_refreshes(self):
        cache = LRUCache(max_size=2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.put("a", 10)
        cache.put("c", 3)

        assert cache.get("a") == 10
        assert cache.get("b") is None

    def test_clear(self):
        cache = LRUCache()
        cache.put("a", 1)
        cache.clear()
        assert len(cache) == 0


@pytest.mark.locations
class TestLocationIndex:

    def test_short_query_returns_nothing(self, location_index):
        assert location_index.search("m") == []
        assert location_index.search("") == []

    def test_city_match(self, location_index):
        results = location_index.search("miami")
        assert [r["value"] for r in results] == ["Miami, FL", "Miami Beach, FL"]

    def test_zip_match(self, location_index):
        results = location_index.search("0210")
        assert [r["value"] for r in results] == ["Boston, MA"]

    def test_zip_lists_are_trimmed(self, location_index):
        [miami] = location_index.search("33101")
        assert len(miami["zips"]) == 5
        assert "population" not in miami

    def test_limit(self, location_index):
        assert len(location_index.search("fl", limit=1)) == 1

    def test_results_are_cached(self, location_index):
        first = location_index.search("Boston")
        location_index.options.clear()

        assert location_index.search("boston") == first
        assert len(location_index.cache) == 1

    def test_popular_sorted_by_population(self, location_index):
        popular = location_index.popular_locations(2)
        assert [p["city"] for p in popular] == ["Los Angeles", "Boston"]
        assert popular[0]["population"] == 3898747

    def test_from_file(self, tmp_path):
        path = tmp_path / "cities.json"
        path.write_text(json.dumps([
            {"value": "Tampa, FL", "city": "Tampa", "state": "FL", "zips": ["33602"], "population": 384959},
        ]))
        index = LocationIndex.from_file(str(path))

        assert index.search("tam")[0]["value"] == "Tampa, FL"

    def test_from_missing_file_is_empty(self, tmp_path, caplog):
        index = LocationIndex.from_file(str(tmp_path / "missing.json"))

        assert index.search("tampa") == []
        assert index.popular_locations() == []
        assert "Failed to load location data" in caplog.text
