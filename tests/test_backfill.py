import pytest

from nodewatch.api.client import ApiError
from nodewatch.api.models import HistoricalPoint, SnapshotListing
from nodewatch.pipeline.backfill import HistoricalBackfill, SpacingSampler, sample_by_spacing
from nodewatch.utils.config import BackfillConfig

from conftest import BASE_TS, DAY, WEEK, FakeApiClient, make_snapshot, paged_listing, summary


def make_backfill(client, cache, sleep, **overrides):
    return HistoricalBackfill(client, cache, BackfillConfig(**overrides), marker="Knots", sleep=sleep)


def test_daily_listing_is_thinned_to_weekly():
    summaries = [summary(BASE_TS - i * DAY) for i in range(10)]

    kept = sample_by_spacing(summaries, WEEK)

    assert [s.timestamp for s in kept] == [BASE_TS, BASE_TS - 7 * DAY]
    for newer, older in zip(kept, kept[1:]):
        assert newer.timestamp - older.timestamp >= WEEK


def test_sampler_flags_out_of_order_listing():
    sampler = SpacingSampler(WEEK)

    kept = [sampler.accept(summary(ts)) for ts in (BASE_TS, BASE_TS - 8 * DAY, BASE_TS + DAY)]

    # spacing is judged against the last kept entry, not the listing order
    assert kept == [True, True, True]
    assert sampler.ordering_violations == 1


async def test_walks_pages_and_returns_ascending_series(cache, sleep):
    timestamps = [BASE_TS - i * 3 * DAY for i in range(12)]
    pages = paged_listing(timestamps, per_page=4)
    knots_heavy = make_snapshot({"/Knots:20240801/": 7, "/Satoshi:27.0.0/": 1})
    client = FakeApiClient(pages=pages, snapshots={summary(BASE_TS).url: knots_heavy})

    points = await make_backfill(client, cache, sleep).run()

    # kept: 0, -9, -18, -27 days; the filter state crosses page boundaries
    assert [p.timestamp for p in points] == [BASE_TS - d * DAY for d in (27, 18, 9, 0)]
    assert points[-1].marker_count == 7
    assert all(p.marker_count == 1 for p in points[:-1])
    assert len(client.listing_calls) == 3
    assert len(client.snapshot_calls) == 4


async def test_delay_only_between_listing_pages(cache, sleep):
    pages = paged_listing([BASE_TS - i * WEEK for i in range(9)], per_page=3)
    client = FakeApiClient(pages=pages)

    await make_backfill(client, cache, sleep).run()

    assert len(client.snapshot_calls) == 9
    assert sleep.calls == [1.0, 1.0]


async def test_stops_after_page_cap(cache, sleep):
    class EndlessListing(dict):
        def __missing__(self, url):
            page = int(url.rsplit("=", 1)[1]) if url else 1
            return SnapshotListing(
                results=[summary(BASE_TS - page * WEEK)],
                next=f"https://api.test/snapshots/?page={page + 1}"
            )

    client = FakeApiClient(pages=EndlessListing())
    backfill = make_backfill(client, cache, sleep)

    points = await backfill.run()

    assert len(client.listing_calls) == 12
    assert len(points) == 12
    assert backfill.stats['pages_fetched'] == 12
    assert len(sleep.calls) == 11


async def test_second_run_inside_ttl_hits_cache(cache, clock, sleep):
    pages = paged_listing([BASE_TS - i * WEEK for i in range(3)], per_page=10)
    client = FakeApiClient(pages=pages)
    backfill = make_backfill(client, cache, sleep)

    first = await backfill.run()
    calls = len(client.calls)

    clock.now += 24 * 60 * 60 * 1000 - 1
    second = await backfill.run()

    assert second == first
    assert len(client.calls) == calls

    clock.now += 1
    await backfill.run()
    assert len(client.calls) == 2 * calls


async def test_failure_discards_partial_results(cache, backend, sleep):
    timestamps = [BASE_TS - i * WEEK for i in range(6)]
    pages = paged_listing(timestamps, per_page=3)
    client = FakeApiClient(pages=pages, failing={summary(timestamps[4]).url})

    with pytest.raises(ApiError):
        await make_backfill(client, cache, sleep).run()

    assert backend.data == {}


async def test_empty_listing_is_not_cached(cache, backend, sleep):
    client = FakeApiClient(pages={None: SnapshotListing(results=[], count=0)})
    backfill = make_backfill(client, cache, sleep)

    assert await backfill.run() == []
    assert backend.data == {}

    # the next run goes back to the listing instead of serving an empty series
    assert await backfill.run() == []
    assert client.listing_calls == ["listing:None", "listing:None"]


async def test_cached_series_is_decoded(cache, sleep):
    await cache.write("historical-series", [{"timestamp": 5, "marker_count": 9}])
    client = FakeApiClient()

    points = await make_backfill(client, cache, sleep).run()

    assert points == [HistoricalPoint(timestamp=5, marker_count=9)]
    assert client.calls == []
