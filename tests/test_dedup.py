from insightmint.dedup import DedupCache, handle_key, process_key


def test_key_is_new_only_once(clock):
    cache = DedupCache(max_age=300, clock=clock)

    assert cache.add_if_new("7-chrome")
    assert not cache.add_if_new("7-chrome")
    assert "7-chrome" in cache
    assert len(cache) == 1


def test_purge_drops_only_entries_past_max_age(clock):
    cache = DedupCache(max_age=300, clock=clock)
    cache.add_if_new("old")
    clock.advance(200)
    cache.add_if_new("young")

    clock.advance(100)
    assert cache.purge() == 0  # "old" is exactly max_age

    clock.advance(1)
    assert cache.purge() == 1
    assert "old" not in cache
    assert "young" in cache
    assert cache.add_if_new("old")


def test_clear(clock):
    cache = DedupCache(clock=clock)
    cache.add_if_new("a")
    cache.clear()
    assert len(cache) == 0


def test_key_shapes():
    assert process_key(12, "WINWORD") == "12-WINWORD"
    assert handle_key(12) == "handle-12"
