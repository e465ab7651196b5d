import asyncio

from nodewatch.pipeline.scheduler import DashboardScheduler
from nodewatch.pipeline.status import PipelineStatus
from nodewatch.utils.monitoring import initialize_monitoring

from conftest import BASE_TS, WEEK, FakeApiClient, make_snapshot, paged_listing, summary


def make_scheduler(config, client, cache, sleep):
    updates = []
    scheduler = DashboardScheduler(config, client, cache, on_update=updates.append, sleep=sleep)
    return scheduler, updates


def healthy_client(**kwargs):
    return FakeApiClient(
        latest=make_snapshot({"/Satoshi:27.0.0/": 3, "/Knots:20240801/": 1}),
        pages=paged_listing([BASE_TS - i * WEEK for i in range(3)], per_page=10),
        **kwargs
    )


async def test_both_pipelines_become_ready(config, cache, sleep):
    scheduler, updates = make_scheduler(config, healthy_client(), cache, sleep)

    state = await scheduler.run_once()

    assert state.snapshot.status is PipelineStatus.READY
    assert state.snapshot.data.marker_count == 1
    assert state.history.status is PipelineStatus.READY
    assert len(state.history.data) == 3

    # one update for the loading screen, then one per finished pipeline
    assert len(updates) == 3
    assert updates[0].snapshot.status is PipelineStatus.LOADING
    assert updates[0].history.status is PipelineStatus.LOADING


async def test_history_failure_does_not_affect_snapshot(config, cache, sleep):
    client = healthy_client(failing={summary(BASE_TS).url})
    scheduler, _ = make_scheduler(config, client, cache, sleep)

    state = await scheduler.run_once()

    assert state.snapshot.status is PipelineStatus.READY
    assert state.history.status is PipelineStatus.FAILED
    assert "ApiError" in state.history.error
    assert state.history.shows_spinner


async def test_snapshot_failure_does_not_affect_history(config, cache, sleep):
    client = healthy_client(failing={'latest'})
    scheduler, _ = make_scheduler(config, client, cache, sleep)

    state = await scheduler.run_once()

    assert state.snapshot.status is PipelineStatus.FAILED
    assert state.history.status is PipelineStatus.READY


async def test_history_can_be_disabled(config, cache, sleep):
    config.backfill.enabled = False
    client = healthy_client()
    scheduler, _ = make_scheduler(config, client, cache, sleep)

    state = await scheduler.run_once()

    assert state.history.status is PipelineStatus.IDLE
    assert client.listing_calls == []


async def test_refresh_failure_keeps_previous_data(config, cache, clock, sleep):
    client = healthy_client()
    scheduler, _ = make_scheduler(config, client, cache, sleep)
    first = await scheduler.run_once()

    clock.now += 22 * 60 * 1000
    client.failing.add('latest')
    second = await scheduler.run_once()

    assert second.snapshot.status is PipelineStatus.READY
    assert second.snapshot.data == first.snapshot.data


async def test_closed_scheduler_drops_late_results(config, cache, sleep):
    started = asyncio.Event()
    release = asyncio.Event()

    class SlowClient(FakeApiClient):
        async def latest_snapshot(self):
            started.set()
            await release.wait()
            return await super().latest_snapshot()

    config.backfill.enabled = False
    client = SlowClient(latest=make_snapshot({"/Knots:1/": 1}))
    scheduler, updates = make_scheduler(config, client, cache, sleep)

    run = asyncio.create_task(scheduler.run_once())
    await started.wait()
    scheduler.close()
    release.set()
    state = await run

    assert state.snapshot.status is PipelineStatus.LOADING
    assert len(updates) == 1


async def test_watch_stops_on_shutdown(config, cache, sleep):
    scheduler, _ = make_scheduler(config, healthy_client(), cache, sleep)
    shutdown = asyncio.Event()
    shutdown.set()

    await scheduler.watch(interval=0.01, shutdown_event=shutdown)
    assert scheduler.runs == 0

    shutdown.clear()
    task = asyncio.create_task(scheduler.watch(interval=0.01, shutdown_event=shutdown))
    while scheduler.runs < 2:
        await asyncio.sleep(0.01)
    shutdown.set()
    await asyncio.wait_for(task, timeout=1)


async def test_runs_are_recorded(config, cache, sleep):
    monitor = initialize_monitoring()
    scheduler, _ = make_scheduler(config, healthy_client(failing={'latest'}), cache, sleep)

    await scheduler.run_once()

    values = monitor.get_summary()['metrics']
    assert values["pipeline_runs_total{outcome=error,pipeline=snapshot}"] == 1
    assert values["pipeline_runs_total{outcome=success,pipeline=history}"] == 1
    assert values["historical_points"] == 3
    assert scheduler.get_stats()['backfill']['pages_fetched'] == 1
