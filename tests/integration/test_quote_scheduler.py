import pytest

from stockdash.infrastructure.db.repositories.quote_repository import QuoteRepository
from stockdash.scheduler.main import QuoteRefreshScheduler

from conftest import make_quote


class RecordingBroadcaster:
    def __init__(self):
        self.payloads = []

    async def broadcast(self, data):
        self.payloads.append(data)
        return 1


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def scheduler(session_factory, aggregator, config_engine, broadcaster):
    return QuoteRefreshScheduler(
        session_factory=session_factory,
        aggregator=aggregator,
        config_engine=config_engine,
        broadcaster=broadcaster,
        interval_seconds=30,
        seed_count=5,
    )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_seed_job_stores_first_popular_symbols(scheduler, session_factory):
    stored = await scheduler.seed_job()

    assert stored == 5
    async with session_factory() as session:
        symbols = await QuoteRepository(session).list_symbols()
    assert symbols == ["AAPL", "AMZN", "GOOGL", "MSFT", "TSLA"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_seed_job_skips_populated_table(scheduler, session_factory, fake_providers):
    async with session_factory() as session:
        await QuoteRepository(session).upsert(make_quote("AAPL", "170"))
        await session.commit()

    assert await scheduler.seed_job() == 0
    assert fake_providers[0].calls == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_refresh_tick_updates_and_broadcasts(scheduler, session_factory, broadcaster):
    async with session_factory() as session:
        await QuoteRepository(session).upsert(make_quote("AAPL", "170"))
        await session.commit()

    delivered = await scheduler.refresh_tick()

    assert delivered == 1
    payload = broadcaster.payloads[0]
    assert payload["type"] == "stock_update"
    assert payload["data"][0]["symbol"] == "AAPL"
    assert payload["data"][0]["price"] == 175.5
    assert payload["data"][0]["is_positive"] is True


@pytest.mark.asyncio
@pytest.mark.integration
async def test_refresh_tick_on_empty_table_is_quiet(scheduler, broadcaster):
    assert await scheduler.refresh_tick() == 0
    assert broadcaster.payloads == []


def test_start_registers_jobs(scheduler):
    # Jobs are added before the scheduler starts; inspect without running them
    scheduler.scheduler.add_job = _RecordingAddJob()
    scheduler.scheduler.start = lambda: None

    scheduler.start()

    ids = [kwargs["id"] for _, kwargs in scheduler.scheduler.add_job.calls]
    assert ids == ["seed_quotes", "refresh_quotes"]
    refresh_kwargs = scheduler.scheduler.add_job.calls[1][1]
    assert refresh_kwargs["max_instances"] == 1


class _RecordingAddJob:
    def __init__(self):
        self.calls = []

    def __call__(self, *args, **kwargs):
        self.calls.append((args, kwargs))
