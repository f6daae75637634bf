"""
Fallback chain execution over ordered provider adapters

Two modes:
- sequential: try adapters in preference order, stop at the first success
- concurrent: start every adapter at once and wait for all of them to settle

A hung provider is cut off by a per-call timeout and reported as a
Timeout failure; it never fails the chain on its own.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from src.core.results import Capability, ErrorKind, ProviderResult
from src.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
A = TypeVar("A")

NO_PROVIDER = "none"


@dataclass
class ChainOutcome(Generic[T]):
    """Chosen result of a chain plus every attempt made on the way"""
    result: ProviderResult[T]
    attempts: List[ProviderResult[T]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.result.ok

    @property
    def all_unavailable(self) -> bool:
        return all(a.error == ErrorKind.UNAVAILABLE for a in self.attempts)

    def failures(self) -> dict:
        return {a.provider: a.error.value for a in self.attempts if not a.ok}


class FallbackChainExecutor:
    """Runs adapter calls with timeouts, isolating each provider's failure"""

    def __init__(self, timeout: float = 60.0):
        self.timeout = timeout

    async def _invoke(
        self,
        adapter: A,
        call: Callable[[A], Awaitable[ProviderResult[T]]],
        timeout: Optional[float]
    ) -> ProviderResult[T]:
        name = getattr(adapter, "name", type(adapter).__name__)
        limit = timeout or self.timeout
        try:
            return await asyncio.wait_for(call(adapter), timeout=limit)
        except asyncio.TimeoutError:
            logger.warning(f"Provider {name} timed out after {limit:.0f}s")
            return ProviderResult.failure(name, ErrorKind.TIMEOUT, f"timed out after {limit:.0f}s")
        except Exception as e:
            logger.error(f"Provider {name} raised unexpectedly: {e}", exc_info=True)
            return ProviderResult.failure(name, ErrorKind.UNKNOWN, str(e))

    async def run_sequential(
        self,
        capability: Capability,
        adapters: Sequence[A],
        call: Callable[[A], Awaitable[ProviderResult[T]]],
        timeout: Optional[float] = None
    ) -> ChainOutcome[T]:
        """
        Try adapters in order until one succeeds

        Args:
            capability: Capability being served (for logging and failure labels)
            adapters: Adapters in preference order
            call: Coroutine factory invoking one adapter
            timeout: Per-call timeout override

        Returns:
            ChainOutcome whose result is the first success, or a synthesized
            failure when the chain is exhausted
        """
        attempts: List[ProviderResult[T]] = []

        for adapter in adapters:
            result = await self._invoke(adapter, call, timeout)
            attempts.append(result)
            if result.ok:
                logger.info(f"{capability.value} chain served by {result.provider}")
                return ChainOutcome(result=result, attempts=attempts)
            logger.info(f"{capability.value} provider {result.provider} failed: {result.error.value}")

        return ChainOutcome(result=self._exhausted(capability, attempts), attempts=attempts)

    async def run_concurrent(
        self,
        capability: Capability,
        adapters: Sequence[A],
        call: Callable[[A], Awaitable[ProviderResult[T]]],
        timeout: Optional[float] = None
    ) -> List[ProviderResult[T]]:
        """
        Start every adapter at once and collect every settled outcome

        Results come back in the order of ``adapters``. A provider that
        raises or hangs is reported as a failure without disturbing the rest.
        """
        if not adapters:
            return []

        settled = await asyncio.gather(
            *(self._invoke(adapter, call, timeout) for adapter in adapters),
            return_exceptions=True
        )

        results: List[ProviderResult[T]] = []
        for adapter, outcome in zip(adapters, settled):
            if isinstance(outcome, BaseException):
                name = getattr(adapter, "name", type(adapter).__name__)
                outcome = ProviderResult.failure(name, ErrorKind.UNKNOWN, str(outcome))
            results.append(outcome)

        succeeded = [r.provider for r in results if r.ok]
        logger.info(
            f"{capability.value} fan-out settled: {len(succeeded)}/{len(results)} succeeded",
            extra={"capability": capability.value, "succeeded": succeeded}
        )
        return results

    @staticmethod
    def select_preferred(
        results: Sequence[ProviderResult[T]],
        order: Sequence[str],
        accept: Optional[Callable[[ProviderResult[T]], bool]] = None
    ) -> Optional[ProviderResult[T]]:
        """Pick the first acceptable success following a fixed preference order"""
        rank = {name: i for i, name in enumerate(order)}
        ranked = sorted(
            (r for r in results if r.ok),
            key=lambda r: rank.get(r.provider, len(rank))
        )
        for result in ranked:
            if accept is None or accept(result):
                return result
        return None

    @staticmethod
    def _exhausted(capability: Capability, attempts: List[ProviderResult]) -> ProviderResult:
        if not attempts:
            return ProviderResult.failure(
                NO_PROVIDER, ErrorKind.UNAVAILABLE, f"no {capability.value} providers registered"
            )
        if all(a.error == ErrorKind.UNAVAILABLE for a in attempts):
            return ProviderResult.failure(
                NO_PROVIDER, ErrorKind.UNAVAILABLE, f"no {capability.value} providers configured"
            )
        tried = ", ".join(f"{a.provider}={a.error.value}" for a in attempts)
        logger.warning(f"{capability.value} chain exhausted ({tried})")
        return ProviderResult.failure(NO_PROVIDER, ErrorKind.ALL_PROVIDERS_FAILED, tried)
