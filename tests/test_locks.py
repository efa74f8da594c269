from django.core.cache import cache

from transcoding.locks import lock_key, video_lock


def test_second_holder_is_refused_until_release():
    cache.clear()
    with video_lock("v1") as first:
        assert first is True
        with video_lock("v1") as second:
            assert second is False
        with video_lock("v2") as other:
            assert other is True
    assert cache.get(lock_key("v1")) is None


def test_does_not_release_a_lock_it_did_not_take():
    cache.clear()
    cache.set(lock_key("v1"), "someone-else", 60)
    with video_lock("v1") as acquired:
        assert acquired is False
    assert cache.get(lock_key("v1")) == "someone-else"


def test_same_token_reclaims_its_own_stale_lock():
    cache.clear()
    # Left behind by a worker that died mid-job
    cache.set(lock_key("v1"), "task-1", 3600)

    with video_lock("v1", token="task-1") as acquired:
        assert acquired is True
        with video_lock("v1", token="task-2") as other:
            assert other is False
    assert cache.get(lock_key("v1")) is None
