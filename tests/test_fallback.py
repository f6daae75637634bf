"""Tests for the fallback chain executor."""

import asyncio

import pytest

from src.core.fallback import NO_PROVIDER, FallbackChainExecutor
from src.core.results import Capability, ErrorKind, ProviderResult


class Adapter:
    def __init__(self, name, result=None, delay=0.0, raises=None):
        self.name = name
        self.result = result
        self.delay = delay
        self.raises = raises
        self.calls = 0

    async def run(self):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raises is not None:
            raise self.raises
        return self.result


def ok(name, value="value"):
    return Adapter(name, ProviderResult.success(name, value))


def bad(name, kind=ErrorKind.UNKNOWN):
    return Adapter(name, ProviderResult.failure(name, kind, "boom"))


def call(adapter):
    return adapter.run()


class TestSequential:
    async def test_stops_at_first_success(self):
        adapters = [bad("a"), ok("b"), ok("c")]
        outcome = await FallbackChainExecutor().run_sequential(Capability.LLM, adapters, call)

        assert outcome.ok
        assert outcome.result.provider == "b"
        assert [a.calls for a in adapters] == [1, 1, 0]
        assert [r.provider for r in outcome.attempts] == ["a", "b"]

    async def test_exhausted_chain_never_fabricates_success(self):
        adapters = [bad("a", ErrorKind.AUTH_FAILED), bad("b", ErrorKind.RATE_LIMITED), bad("c")]
        outcome = await FallbackChainExecutor().run_sequential(Capability.TRANSCRIPTION, adapters, call)

        assert not outcome.ok
        assert outcome.result.value is None
        assert outcome.result.provider == NO_PROVIDER
        assert outcome.result.error == ErrorKind.ALL_PROVIDERS_FAILED
        assert outcome.failures() == {"a": "auth_failed", "b": "rate_limited", "c": "unknown"}

    async def test_all_unavailable_reports_unavailable(self):
        adapters = [bad("a", ErrorKind.UNAVAILABLE), bad("b", ErrorKind.UNAVAILABLE)]
        outcome = await FallbackChainExecutor().run_sequential(Capability.FACE, adapters, call)

        assert outcome.result.error == ErrorKind.UNAVAILABLE
        assert outcome.all_unavailable

    async def test_empty_chain_is_unavailable(self):
        outcome = await FallbackChainExecutor().run_sequential(Capability.LLM, [], call)

        assert not outcome.ok
        assert outcome.result.error == ErrorKind.UNAVAILABLE
        assert outcome.attempts == []

    async def test_hung_provider_times_out_and_chain_continues(self):
        adapters = [Adapter("slow", ProviderResult.success("slow", "late"), delay=1.0), ok("fast")]
        outcome = await FallbackChainExecutor(timeout=0.05).run_sequential(Capability.LLM, adapters, call)

        assert outcome.result.provider == "fast"
        assert outcome.attempts[0].error == ErrorKind.TIMEOUT

    async def test_raising_adapter_becomes_unknown_failure(self):
        adapters = [Adapter("broken", raises=RuntimeError("kaboom")), ok("b")]
        outcome = await FallbackChainExecutor().run_sequential(Capability.LLM, adapters, call)

        assert outcome.attempts[0].error == ErrorKind.UNKNOWN
        assert "kaboom" in outcome.attempts[0].message
        assert outcome.result.provider == "b"


class TestConcurrent:
    async def test_one_rejection_does_not_drop_the_others(self):
        adapters = [ok("a", 1), Adapter("b", raises=ValueError("bad payload")), ok("c", 3)]
        results = await FallbackChainExecutor().run_concurrent(Capability.FACE, adapters, call)

        assert len(results) == 3
        assert [r.provider for r in results] == ["a", "b", "c"]
        assert results[0].ok and results[0].value == 1
        assert not results[1].ok
        assert results[2].ok and results[2].value == 3

    async def test_calls_run_in_parallel(self):
        adapters = [Adapter(n, ProviderResult.success(n, n), delay=0.2) for n in ("a", "b", "c")]
        loop = asyncio.get_running_loop()
        started = loop.time()
        await FallbackChainExecutor().run_concurrent(Capability.FACE, adapters, call)

        assert loop.time() - started < 0.5

    async def test_timeout_is_isolated(self):
        adapters = [Adapter("slow", ProviderResult.success("slow", 1), delay=1.0), ok("quick")]
        results = await FallbackChainExecutor().run_concurrent(Capability.FACE, adapters, call, timeout=0.05)

        assert results[0].error == ErrorKind.TIMEOUT
        assert results[1].ok

    async def test_no_adapters(self):
        assert await FallbackChainExecutor().run_concurrent(Capability.FACE, [], call) == []


class TestSelectPreferred:
    def test_follows_preference_not_completion_order(self):
        results = [
            ProviderResult.success("anthropic", "x"),
            ProviderResult.failure("openai", ErrorKind.TIMEOUT),
            ProviderResult.success("deepseek", "y"),
        ]
        chosen = FallbackChainExecutor.select_preferred(results, ["deepseek", "openai", "anthropic"])
        assert chosen.provider == "deepseek"

    def test_accept_callback_skips_rejected(self):
        results = [ProviderResult.success("a", "short"), ProviderResult.success("b", "long enough")]
        chosen = FallbackChainExecutor.select_preferred(results, ["a", "b"], accept=lambda r: len(r.value) > 5)
        assert chosen.provider == "b"

    def test_nothing_acceptable(self):
        results = [ProviderResult.failure("a", ErrorKind.UNKNOWN)]
        assert FallbackChainExecutor.select_preferred(results, ["a"]) is None


class TestProviderResult:
    def test_success_cannot_carry_error(self):
        with pytest.raises(ValueError):
            ProviderResult(ok=True, provider="a", error=ErrorKind.UNKNOWN)

    def test_failure_requires_error(self):
        with pytest.raises(ValueError):
            ProviderResult(ok=False, provider="a")

    def test_to_dict(self):
        assert ProviderResult.failure("a", ErrorKind.MALFORMED, "bad").to_dict() == {
            "ok": False, "provider": "a", "error": "malformed", "message": "bad",
        }
