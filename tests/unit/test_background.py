import asyncio

import httpx

from garageflow.client.background import BackgroundRunner, ErrorChannel
from garageflow.client.cache import CacheState, QueryCache
from garageflow.client.http import ApiClient
from garageflow.client.polling import PeriodicRefresh
from garageflow.client.risk import RiskChecker
from garageflow.core.errors import ConflictError, TransientServerError


async def test_background_failures_go_to_the_error_channel():
    errors = ErrorChannel()
    seen = []
    errors.subscribe(lambda report: seen.append(report.context))
    runner = BackgroundRunner(errors)

    async def boom():
        raise ConflictError("stale")

    async def fine():
        return 42

    bad = runner.spawn(boom(), context="reorder")
    good = runner.spawn(fine(), context="refresh")
    await runner.drain()

    assert bad.result() is None
    assert good.result() == 42
    assert seen == ["reorder"]
    assert isinstance(errors.recent[0].error, ConflictError)
    assert runner.pending == 0


async def test_async_handlers_are_awaited_and_handler_errors_contained():
    errors = ErrorChannel()
    seen = []

    async def record(report):
        seen.append(report.error)

    def broken(report):
        raise RuntimeError("handler bug")

    errors.subscribe(broken)
    errors.subscribe(record)
    await errors.publish(ValueError("x"), context="test")
    assert len(seen) == 1


async def test_periodic_refresh_runs_until_block_exits():
    calls = []

    async def fetch():
        calls.append(len(calls))
        if len(calls) == 2:
            raise TransientServerError(503)
        return len(calls)

    errors = ErrorChannel()
    async with PeriodicRefresh(fetch, interval=0.01, errors=errors) as poller:
        for _ in range(100):
            if poller.runs >= 3:
                break
            await asyncio.sleep(0.01)
    assert not poller.running
    assert poller.runs >= 3
    assert len(errors.recent) == 1

    count = len(calls)
    await asyncio.sleep(0.05)
    assert len(calls) == count


def test_cache_two_phase_values():
    cache = QueryCache()
    cache.put_pending("queue", ["b", "a"], center_id="c1", date="2026-03-02")
    assert cache.confirmed("queue", center_id="c1", date="2026-03-02") is None
    assert cache.get("queue", date="2026-03-02", center_id="c1").state is CacheState.PENDING

    cache.mark_failed("queue", RuntimeError("x"), center_id="c1", date="2026-03-02")
    assert cache.get("queue", center_id="c1", date="2026-03-02").state is CacheState.FAILED

    cache.put_confirmed("queue", ["a", "b"], center_id="c1", date="2026-03-02")
    cache.put_confirmed("queue", ["z"], center_id="c2", date="2026-03-02")
    assert cache.confirmed("queue", center_id="c1", date="2026-03-02") == ["a", "b"]
    assert cache.invalidate("queue") == 2
    assert len(cache) == 0


async def test_risk_check_fails_open():
    def handler(request):
        return httpx.Response(503)

    async def no_sleep(delay):
        pass

    api = ApiClient("http://test", transport=httpx.MockTransport(handler), sleep=no_sleep)
    checker = RiskChecker(api, "/risk/blacklist")
    result = await checker.check_blacklist(customer_ref="cust-1")
    assert result.flagged is False
    assert result.checked is False
    await api.aclose()


async def test_risk_check_reports_flag():
    def handler(request):
        return httpx.Response(200, json={"flagged": True, "reason": "unpaid invoices"})

    api = ApiClient("http://test", transport=httpx.MockTransport(handler))
    result = await RiskChecker(api, "/risk/blacklist").check_blacklist(email="x@example.com")
    assert result.flagged is True
    assert result.reason == "unpaid invoices"
    await api.aclose()


async def test_risk_check_ignores_a_non_object_body():
    api = ApiClient("http://test", transport=httpx.MockTransport(lambda r: httpx.Response(200, json=["flagged"])))
    result = await RiskChecker(api, "/risk/blacklist").check_blacklist(customer_ref="cust-1")
    assert result.flagged is False
    assert result.checked is False
    await api.aclose()


async def test_risk_check_disabled_without_url():
    api = ApiClient("http://test", transport=httpx.MockTransport(lambda r: httpx.Response(500)))
    checker = RiskChecker(api)
    assert not checker.enabled
    assert (await checker.check_blacklist(customer_ref="c")).flagged is False
    await api.aclose()
