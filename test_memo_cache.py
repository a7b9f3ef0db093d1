# test_memo_cache.py
import asyncio

from larder.services.memo import MemoizedFetch


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class CountingFetch:
    def __init__(self, delay=0.0, fail=False):
        self.calls = 0
        self.delay = delay
        self.fail = fail

    async def __call__(self):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("backend down")
        return self.calls


def _memo(clock, **kw):
    kw.setdefault("ttl", 30)
    kw.setdefault("min_interval", 3)
    kw.setdefault("timeout", 1)
    return MemoizedFetch(clock=clock, **kw)


def test_concurrent_callers_share_one_fetch():
    memo, fetch = _memo(FakeClock()), CountingFetch(delay=0.01)

    async def run():
        return await asyncio.gather(*(memo.get("k", fetch) for _ in range(5)))

    assert asyncio.run(run()) == [1] * 5
    assert fetch.calls == 1


def test_throttle_wins_over_force_and_invalidate():
    clock = FakeClock()
    memo, fetch = _memo(clock), CountingFetch()

    async def run():
        await memo.get("k", fetch)
        clock.now = 1
        memo.invalidate("k")
        return await memo.get("k", fetch, force=True)

    assert asyncio.run(run()) == 1
    assert fetch.calls == 1


def test_ttl_hit_then_expiry():
    clock = FakeClock()
    memo, fetch = _memo(clock), CountingFetch()

    async def run():
        await memo.get("k", fetch)
        clock.now = 10
        hit = await memo.get("k", fetch)
        clock.now = 31
        miss = await memo.get("k", fetch)
        return hit, miss

    assert asyncio.run(run()) == (1, 2)


def test_force_or_invalidate_refetches_after_throttle():
    clock = FakeClock()
    memo, fetch = _memo(clock), CountingFetch()

    async def run():
        await memo.get("p1:a", fetch)
        clock.now = 5
        forced = await memo.get("p1:a", fetch, force=True)
        clock.now = 10
        assert memo.invalidate("p1:") == 1
        assert memo.invalidate("p2:") == 0
        invalidated = await memo.get("p1:a", fetch)
        return forced, invalidated

    assert asyncio.run(run()) == (2, 3)


def test_failure_without_history_returns_default():
    memo = _memo(FakeClock())
    assert asyncio.run(memo.get("k", CountingFetch(fail=True), default=0.0)) == 0.0
    assert asyncio.run(memo.get("k2", CountingFetch(fail=True), default=list)) == []


def test_failure_returns_last_good_value():
    clock = FakeClock()
    memo = _memo(clock)

    async def run():
        await memo.get("k", CountingFetch())
        clock.now = 40
        return await memo.get("k", CountingFetch(fail=True), default=-1)

    assert asyncio.run(run()) == 1
    assert memo.peek("k") == 1


def test_timeout_falls_back_and_clears_pending():
    clock = FakeClock()
    memo = _memo(clock, timeout=0.01)
    slow = CountingFetch(delay=0.5)

    async def run():
        first = await memo.get("k", slow, default="empty")
        clock.now = 5
        second = await memo.get("k", CountingFetch(), default="empty")
        return first, second

    assert asyncio.run(run()) == ("empty", 1)


def test_keys_are_independent():
    memo, fetch = _memo(FakeClock()), CountingFetch()

    async def run():
        return [await memo.get(k, fetch) for k in ("a", "b", "a")]

    assert asyncio.run(run()) == [1, 2, 1]


def test_old_entries_are_evicted_on_write():
    clock = FakeClock()
    memo, fetch = _memo(clock, max_age=60), CountingFetch()

    async def run():
        await memo.get("p1:a", fetch)
        await memo.get("p2:a", fetch)
        clock.now = 61
        await memo.get("p3:a", fetch)

    asyncio.run(run())
    assert memo.peek("p1:a") is None and memo.peek("p2:a") is None
    assert memo.peek("p3:a") == 3
    assert len(memo._entries) == 1


def test_default_max_age_is_ten_ttls():
    assert MemoizedFetch(ttl=30).max_age == 300
