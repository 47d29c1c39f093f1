import pytest

from errors import NotFound
from result_cache import ArtifactBundle, ResultCache


def test_put_then_get_returns_bundle():
    cache = ResultCache()
    bundle = ArtifactBundle(source_text="text", final_artifact="summary", metadata={"title": "t"})

    cache.put("abc123", bundle)

    assert cache.get("abc123") is bundle
    assert "abc123" in cache


def test_get_unknown_id_raises_not_found():
    with pytest.raises(NotFound) as exc_info:
        ResultCache().get("missing")
    assert exc_info.value.status_code == 404


def test_last_writer_wins():
    cache = ResultCache()
    cache.put("abc123", ArtifactBundle("first", "one"))
    cache.put("abc123", ArtifactBundle("second", "two"))

    assert cache.get("abc123").source_text == "second"
    assert len(cache) == 1


def test_size_bound_evicts_oldest_entry():
    cache = ResultCache(maxsize=2, ttl=3600)
    for video_id in ("a", "b", "c"):
        cache.put(video_id, ArtifactBundle(video_id, video_id))

    assert "a" not in cache
    assert cache.get("c").source_text == "c"
    assert len(cache) == 2
