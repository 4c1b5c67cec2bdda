from concurrent.futures import ThreadPoolExecutor

from richy.exchange.nonce import NonceGenerator


def test_nonce_bumps_when_clock_does_not_advance() -> None:
    gen = NonceGenerator(clock=lambda: 1_000)
    assert [gen.next() for _ in range(4)] == [1_000, 1_001, 1_002, 1_003]


def test_nonce_never_goes_backwards_with_clock() -> None:
    ticks = iter([5_000, 4_000, 6_000, 6_000])
    gen = NonceGenerator(clock=lambda: next(ticks))
    assert [gen.next() for _ in range(4)] == [5_000, 5_001, 6_000, 6_001]


def test_nonce_follows_clock_when_it_advances() -> None:
    ticks = iter([10, 20, 30])
    gen = NonceGenerator(clock=lambda: next(ticks))
    assert [gen.next() for _ in range(3)] == [10, 20, 30]


def test_default_nonce_is_microseconds_since_epoch() -> None:
    first = NonceGenerator().next()
    # 2020-01-01 in microseconds; a millisecond clock would be three digits shorter.
    assert first > 1_577_836_800_000_000
    assert len(str(first)) == 16


def test_nonce_is_unique_and_increasing_under_concurrency() -> None:
    gen = NonceGenerator(clock=lambda: 1)
    per_worker = 500
    workers = 8

    def draw(_: int) -> list[int]:
        return [gen.next() for _ in range(per_worker)]

    with ThreadPoolExecutor(max_workers=workers) as pool:
        batches = list(pool.map(draw, range(workers)))

    everything = [n for batch in batches for n in batch]
    assert len(set(everything)) == per_worker * workers
    for batch in batches:
        assert all(a < b for a, b in zip(batch, batch[1:]))
    assert max(everything) == per_worker * workers
