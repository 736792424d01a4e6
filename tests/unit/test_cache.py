"""Tests for steam_pricer.pricing.cache."""

from datetime import timedelta

from steam_pricer.pricing.cache import PriceCache


class TestPriceCache:
    def test_miss_returns_none(self, clock):
        cache = PriceCache(timedelta(minutes=10), clock)
        assert cache.get_fresh("AK-47 | Redline (Field-Tested)") is None
        assert cache.peek("AK-47 | Redline (Field-Tested)") is None

    def test_fresh_hit(self, clock):
        cache = PriceCache(timedelta(minutes=10), clock)
        cache.put("Glove Case", 3.15)
        clock.advance(minutes=9)
        entry = cache.get_fresh("Glove Case")
        assert entry is not None
        assert entry.value == 3.15

    def test_expires_at_ttl(self, clock):
        cache = PriceCache(timedelta(minutes=10), clock)
        cache.put("Glove Case", 3.15)
        clock.advance(minutes=10)
        assert cache.get_fresh("Glove Case") is None

    def test_peek_ignores_age(self, clock):
        cache = PriceCache(timedelta(minutes=10), clock)
        stored = cache.put("Glove Case", 3.15)
        clock.advance(hours=24)
        entry = cache.peek("Glove Case")
        assert entry == stored

    def test_negative_result_is_a_hit(self, clock):
        cache = PriceCache(timedelta(minutes=10), clock)
        cache.put("Unlisted Sticker", None)
        entry = cache.get_fresh("Unlisted Sticker")
        assert entry is not None
        assert entry.value is None

    def test_put_overwrites_and_restamps(self, clock):
        cache = PriceCache(timedelta(minutes=10), clock)
        cache.put("Glove Case", 3.15)
        clock.advance(minutes=30)
        cache.put("Glove Case", 3.40)
        assert cache.get_fresh("Glove Case").value == 3.40
        assert len(cache) == 1

    def test_separate_instances_do_not_share(self, clock):
        overview = PriceCache(timedelta(minutes=10), clock, name="overview")
        listing = PriceCache(timedelta(hours=1), clock, name="listing")
        overview.put("Glove Case", 3.15)
        assert "Glove Case" in overview
        assert "Glove Case" not in listing

    def test_clear(self, clock):
        cache = PriceCache(timedelta(minutes=10), clock)
        cache.put("a", 1.0)
        cache.clear()
        assert len(cache) == 0
