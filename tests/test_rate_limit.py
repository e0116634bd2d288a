from adjourn.rate_limit import FixedWindowRateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_counts_down_then_blocks():
    limiter = FixedWindowRateLimiter(3, 3600, clock=FakeClock())

    results = [limiter.check("user") for _ in range(4)]

    assert [result.allowed for result in results] == [True, True, True, False]
    assert [result.remaining for result in results] == [2, 1, 0, 0]


def test_window_resets_after_it_elapses():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(1, 3600, clock=clock)
    assert limiter.check("user").allowed
    assert not limiter.check("user").allowed

    clock.now += 3599
    assert not limiter.check("user").allowed

    clock.now += 1
    assert limiter.check("user").allowed


def test_keys_are_independent():
    limiter = FixedWindowRateLimiter(1, 60, clock=FakeClock())
    assert limiter.check("a").allowed
    assert limiter.check("b").allowed
    assert not limiter.check("a").allowed

    limiter.reset("a")
    assert limiter.check("a").allowed
