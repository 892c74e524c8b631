"""Main pipeline orchestrator for the Whale Swap Tracker.

This module provides the Pipeline class that wires together all components
and runs one poll cycle per interval:

    Swap Feed → First Mentions → Price Enrichment → Per-user Matching → Alerts
              → First-mention Commit
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import aiohttp
from redis.asyncio import Redis

from whale_swap_tracker.alerter.channels import AlertChannel, DeliveryError
from whale_swap_tracker.alerter.channels.telegram import TelegramChannel
from whale_swap_tracker.alerter.formatter import AlertFormatter
from whale_swap_tracker.config import Settings, get_settings
from whale_swap_tracker.detector.classifier import SwapClassifier
from whale_swap_tracker.detector.evaluator import MatchEvaluator
from whale_swap_tracker.detector.first_mention import FirstMentionDetector
from whale_swap_tracker.detector.history import (
    DeliveryHistory,
    InMemoryDeliveryHistory,
    RedisDeliveryHistory,
)
from whale_swap_tracker.filters.profile import process_filters
from whale_swap_tracker.ingestor.feed import SwapFeedClient, SwapFeedError
from whale_swap_tracker.ingestor.models import Swap
from whale_swap_tracker.pricing.models import PriceCache
from whale_swap_tracker.pricing.resolver import PriceResolver
from whale_swap_tracker.pricing.sources import DexScreenerSource, JupiterPriceSource
from whale_swap_tracker.storage.database import DatabaseManager
from whale_swap_tracker.storage.store import SwapAlertStore
from whale_swap_tracker.tokens import DEFAULT_REGISTRY, TokenRegistry

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 10.0
DEFAULT_USER_CONCURRENCY = 20


class PipelineState(str, Enum):
    """Pipeline lifecycle states."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    ERROR = "error"


class CycleState(str, Enum):
    """Phase of the poll cycle currently executing."""

    IDLE = "idle"
    FETCHING = "fetching"
    ENRICHING = "enriching"
    EVALUATING = "evaluating"
    COMMITTING = "committing"


@dataclass
class CycleContext:
    """Data shared by every user evaluated in one cycle."""

    swaps: list[Swap]
    first_mentions: frozenset[str] = frozenset()
    prices: PriceCache = field(default_factory=PriceCache)


@dataclass
class CycleReport:
    """Outcome of a single poll cycle."""

    started_at: datetime
    finished_at: datetime | None = None
    swaps_seen: int = 0
    users_evaluated: int = 0
    matches: int = 0
    alerts_sent: int = 0
    delivery_failures: int = 0
    user_errors: int = 0
    first_mentions: int = 0
    first_mentions_committed: int = 0
    aborted: bool = False
    error: str | None = None


@dataclass
class PipelineStats:
    """Statistics for the pipeline."""

    started_at: datetime | None = None
    cycles_run: int = 0
    cycles_skipped: int = 0
    cycles_aborted: int = 0
    swaps_seen: int = 0
    alerts_sent: int = 0
    delivery_failures: int = 0
    user_errors: int = 0
    first_mentions_committed: int = 0
    last_cycle_at: datetime | None = None
    last_error: str | None = None


class Pipeline:
    """Main pipeline orchestrator for the Whale Swap Tracker.

    Collaborators not passed to the constructor are built from settings in
    start(). Tests inject fakes and call run_cycle() directly.

    Example:
        ```python
        from whale_swap_tracker.config import get_settings
        from whale_swap_tracker.pipeline import Pipeline

        pipeline = Pipeline(get_settings())
        report = await pipeline.run_once()

        # or poll until stopped
        await Pipeline(get_settings()).run()
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        dry_run: bool | None = None,
        feed: SwapFeedClient | None = None,
        resolver: PriceResolver | None = None,
        store: SwapAlertStore | None = None,
        first_mention_detector: FirstMentionDetector | None = None,
        evaluator: MatchEvaluator | None = None,
        formatter: AlertFormatter | None = None,
        channel: AlertChannel | None = None,
        registry: TokenRegistry = DEFAULT_REGISTRY,
        poll_interval_seconds: float | None = None,
        user_concurrency: int | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            settings: Application settings. Loaded with get_settings() on
                start() when missing collaborators must be built.
            dry_run: If True, log alerts instead of sending them. Overrides
                settings.dry_run.
            poll_interval_seconds: Seconds between cycles in run().
            user_concurrency: Users evaluated concurrently per cycle.
        """
        self._settings = settings
        self._dry_run_override = dry_run
        self._poll_interval_override = poll_interval_seconds
        self._user_concurrency_override = user_concurrency
        self._dry_run = False
        self._poll_interval = DEFAULT_POLL_INTERVAL_SECONDS
        self._user_concurrency = DEFAULT_USER_CONCURRENCY
        self._apply_settings(settings)
        self._registry = registry

        self._feed = feed
        self._resolver = resolver
        self._store = store
        self._first_mention_detector = first_mention_detector
        self._evaluator = evaluator
        self._formatter = formatter
        self._channel = channel
        self._classifier = SwapClassifier(registry)

        self._state = PipelineState.STOPPED
        self._cycle_state = CycleState.IDLE
        self._stats = PipelineStats()
        self._last_report: CycleReport | None = None

        # Resources owned by the pipeline (created in start())
        self._http: aiohttp.ClientSession | None = None
        self._redis: Redis | None = None
        self._db_manager: DatabaseManager | None = None

        # Synchronization
        self._cycle_lock = asyncio.Lock()
        self._stop_event: asyncio.Event | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._cycle_task: asyncio.Task[None] | None = None

    def _apply_settings(self, settings: Settings | None) -> None:
        if settings is not None:
            self._dry_run = settings.dry_run
            self._poll_interval = settings.feed.poll_interval_seconds
            self._user_concurrency = settings.delivery.user_concurrency
        if self._dry_run_override is not None:
            self._dry_run = self._dry_run_override
        if self._poll_interval_override is not None:
            self._poll_interval = self._poll_interval_override
        if self._user_concurrency_override is not None:
            self._user_concurrency = self._user_concurrency_override

    @property
    def state(self) -> PipelineState:
        """Current pipeline state."""
        return self._state

    @property
    def cycle_state(self) -> CycleState:
        return self._cycle_state

    @property
    def stats(self) -> PipelineStats:
        """Current pipeline statistics."""
        return self._stats

    @property
    def last_report(self) -> CycleReport | None:
        return self._last_report

    @property
    def is_running(self) -> bool:
        """Check if pipeline is running."""
        return self._state == PipelineState.RUNNING

    async def start(self) -> None:
        """Start the pipeline and its poll loop.

        Raises:
            RuntimeError: If pipeline is already running.
            Exception: If any component fails to initialize.
        """
        if self._state != PipelineState.STOPPED:
            raise RuntimeError(f"Cannot start pipeline in state {self._state}")

        self._state = PipelineState.STARTING
        self._stop_event = asyncio.Event()
        logger.info("Starting pipeline...")

        try:
            await self._initialize_components()
            self._poll_task = asyncio.create_task(self._run_poll_loop())
            self._stats.started_at = datetime.now(UTC)
            self._state = PipelineState.RUNNING
            logger.info("Pipeline started (poll interval %.1fs)", self._poll_interval)
        except Exception as e:
            self._state = PipelineState.ERROR
            self._stats.last_error = str(e)
            logger.error("Failed to start pipeline: %s", e)
            await self._cleanup()
            raise

    async def stop(self) -> None:
        """Stop the pipeline gracefully.

        Lets an in-flight cycle finish, then releases resources.
        """
        if self._state == PipelineState.STOPPED:
            return

        self._state = PipelineState.STOPPING
        logger.info("Stopping pipeline...")

        if self._stop_event:
            self._stop_event.set()

        if self._poll_task:
            self._poll_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._poll_task
            self._poll_task = None

        if self._cycle_task:
            with contextlib.suppress(asyncio.CancelledError):
                await self._cycle_task
            self._cycle_task = None

        await self._cleanup()

        self._state = PipelineState.STOPPED
        logger.info("Pipeline stopped")

    async def _initialize_components(self) -> None:
        """Build every collaborator that was not injected."""
        if self._components_ready():
            return

        settings = self._settings or get_settings()
        self._settings = settings
        self._apply_settings(settings)

        if settings.price.native_fallback_usd != self._registry.native_fallback_price:
            self._registry = replace(
                self._registry, native_fallback_price=settings.price.native_fallback_usd
            )
            self._classifier = SwapClassifier(self._registry)

        logger.debug("Initializing HTTP session...")
        self._http = aiohttp.ClientSession()

        if self._store is None:
            logger.debug("Initializing database manager...")
            self._db_manager = DatabaseManager(settings.database.url)
            self._store = SwapAlertStore(self._db_manager)

        if self._feed is None:
            self._feed = SwapFeedClient(
                self._http,
                url=settings.feed.url,
                timeout_seconds=settings.feed.timeout_seconds,
            )

        if self._resolver is None:
            self._resolver = PriceResolver(
                JupiterPriceSource(
                    self._http,
                    url=settings.price.primary_url,
                    bulk_timeout_seconds=settings.price.bulk_timeout_seconds,
                    item_timeout_seconds=settings.price.item_timeout_seconds,
                ),
                DexScreenerSource(
                    self._http,
                    url=settings.price.secondary_url,
                    timeout_seconds=settings.price.bulk_timeout_seconds,
                ),
                registry=self._registry,
                batch_size=settings.price.batch_size,
                max_concurrency=settings.price.max_concurrency,
            )

        if self._first_mention_detector is None:
            self._first_mention_detector = FirstMentionDetector(self._store)

        if self._evaluator is None:
            self._evaluator = MatchEvaluator(self._classifier, self._build_history(settings))

        if self._formatter is None:
            self._formatter = AlertFormatter(self._classifier)

        if self._channel is None and not self._dry_run and settings.telegram.bot_token:
            self._channel = TelegramChannel(
                settings.telegram.bot_token.get_secret_value(),
                session=self._http,
            )
            logger.info("Telegram channel enabled")

        if self._channel is None and not self._dry_run:
            logger.warning("No alert channel configured; alerts will only be logged")

        logger.info("All components initialized")

    def _build_history(self, settings: Settings) -> DeliveryHistory:
        delivery = settings.delivery
        if delivery.history_backend == "redis":
            if not settings.redis.url:
                raise ValueError("REDIS_URL is required when DELIVERY_HISTORY_BACKEND is redis")
            logger.debug("Initializing Redis delivery history...")
            self._redis = Redis.from_url(settings.redis.url)
            return RedisDeliveryHistory(
                self._redis,
                capacity=delivery.history_capacity,
                evict_count=delivery.history_evict,
            )
        return InMemoryDeliveryHistory(
            capacity=delivery.history_capacity,
            evict_count=delivery.history_evict,
        )

    def _components_ready(self) -> bool:
        return all(
            component is not None
            for component in (
                self._feed,
                self._resolver,
                self._store,
                self._first_mention_detector,
                self._evaluator,
                self._formatter,
            )
        )

    async def _cleanup(self) -> None:
        """Clean up resources."""
        if self._db_manager:
            await self._db_manager.dispose_async()
            self._db_manager = None

        if self._redis:
            await self._redis.aclose()
            self._redis = None

        if self._http:
            await self._http.close()
            self._http = None

        logger.debug("Resources cleaned up")

    async def _run_poll_loop(self) -> None:
        """Trigger one cycle per interval until stopped."""
        if not self._stop_event:
            return

        while not self._stop_event.is_set():
            if self._cycle_task is None or self._cycle_task.done():
                self._cycle_task = asyncio.create_task(self.run_cycle())
            else:
                self._stats.cycles_skipped += 1
                logger.warning("Previous cycle still running; skipping this tick")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._poll_interval)
                break
            except TimeoutError:
                pass

    async def run_cycle(self) -> None:
        """Run one fetch → enrich → evaluate → commit cycle.

        Overlapping calls are skipped. Every failure is contained: the
        outcome is recorded in `last_report` and `stats`.

        Raises:
            RuntimeError: If collaborators are missing and start() was not called.
        """
        if not self._components_ready():
            raise RuntimeError("Pipeline components are not initialized; call start() first")

        if self._cycle_lock.locked():
            self._stats.cycles_skipped += 1
            logger.warning("Cycle already in progress; skipping")
            return

        async with self._cycle_lock:
            report = CycleReport(started_at=datetime.now(UTC))
            try:
                await self._execute_cycle(report)
            except Exception as e:
                report.aborted = True
                report.error = str(e)
                logger.exception("Unexpected error in poll cycle: %s", e)
            finally:
                self._cycle_state = CycleState.IDLE
                report.finished_at = datetime.now(UTC)
                self._record_report(report)

    async def _execute_cycle(self, report: CycleReport) -> None:
        assert self._feed and self._resolver and self._store
        assert self._first_mention_detector

        self._cycle_state = CycleState.FETCHING
        try:
            swaps = await self._feed.fetch_swaps()
        except SwapFeedError as e:
            report.aborted = True
            report.error = str(e)
            logger.warning("Swap feed unavailable, skipping cycle: %s", e)
            return

        if not swaps:
            logger.debug("No swaps in feed this cycle")
            return

        report.swaps_seen = len(swaps)
        ctx = CycleContext(swaps=swaps)
        ctx.first_mentions = await self._first_mention_detector.detect(swaps)
        report.first_mentions = len(ctx.first_mentions)

        self._cycle_state = CycleState.ENRICHING
        symbol_hints = self._symbol_hints(swaps)
        await self._resolver.resolve(symbol_hints.keys(), symbols=symbol_hints, cache=ctx.prices)

        self._cycle_state = CycleState.EVALUATING
        try:
            users = await self._store.list_users()
        except Exception as e:
            report.aborted = True
            report.error = str(e)
            logger.error("Failed to list users, aborting cycle: %s", e)
            return

        semaphore = asyncio.Semaphore(self._user_concurrency)

        async def process_bounded(user_id: str) -> None:
            async with semaphore:
                await self._process_user(user_id, ctx, report)

        results = await asyncio.gather(
            *(process_bounded(user_id) for user_id in users),
            return_exceptions=True,
        )
        for user_id, res in zip(users, results, strict=True):
            if isinstance(res, BaseException):
                report.user_errors += 1
                logger.warning("Processing failed for user %s: %s", user_id, res)
        report.users_evaluated = len(users)

        self._cycle_state = CycleState.COMMITTING
        await self._commit_first_mentions(ctx, symbol_hints, report)

        logger.info(
            "Cycle done: %d swaps, %d users, %d alerts, %d first mentions",
            report.swaps_seen,
            report.users_evaluated,
            report.alerts_sent,
            report.first_mentions,
        )

    def _symbol_hints(self, swaps: list[Swap]) -> dict[str, str | None]:
        """Feed or registry symbol for every mint in the batch."""
        hints: dict[str, str | None] = {}
        for swap in swaps:
            for token in (swap.input_token, swap.output_token):
                if not token.mint:
                    continue
                hint = token.symbol or self._registry.symbol_for_mint(token.mint)
                if hints.get(token.mint) is None:
                    hints[token.mint] = hint
        return hints

    async def _process_user(self, user_id: str, ctx: CycleContext, report: CycleReport) -> None:
        """Evaluate the cycle's swaps for one user, in feed order."""
        assert self._store and self._evaluator and self._formatter

        try:
            rows = await self._store.get_filters(user_id)
        except Exception as e:
            report.user_errors += 1
            logger.warning("Failed to load filters for user %s: %s", user_id, e)
            return

        profile = process_filters(rows)
        if not profile.notifications_enabled:
            return

        for swap in ctx.swaps:
            try:
                result = await self._evaluator.evaluate(
                    user_id,
                    swap,
                    profile,
                    ctx.first_mentions,
                    prices=ctx.prices,
                )
            except Exception as e:
                report.user_errors += 1
                logger.warning(
                    "Evaluation failed for user %s, swap %s: %s", user_id, swap.swap_id[:12], e
                )
                continue

            if not result.matches:
                continue

            report.matches += 1
            text = self._formatter.format(swap, result.is_first_mention, ctx.prices)
            await self._deliver(user_id, swap, text, report)

    async def _deliver(self, user_id: str, swap: Swap, text: str, report: CycleReport) -> None:
        if self._dry_run:
            logger.info(
                "[DRY RUN] Would alert user %s: swap=%s, whale=%s",
                user_id,
                swap.swap_id[:12],
                swap.fee_payer[:8] + "...",
            )
            return
        if self._channel is None:
            logger.info(
                "No channel configured, alert for user %s not delivered: swap=%s, whale=%s",
                user_id,
                swap.swap_id[:12],
                swap.fee_payer[:8] + "...",
            )
            return

        try:
            await self._channel.send(user_id, text)
        except DeliveryError as e:
            report.delivery_failures += 1
            logger.warning("Delivery to user %s failed: %s", user_id, e)
            return
        except Exception as e:
            report.delivery_failures += 1
            logger.error("Unexpected delivery error for user %s: %s", user_id, e)
            return

        report.alerts_sent += 1
        logger.info("Alert sent to user %s for swap %s", user_id, swap.swap_id[:12])

    async def _commit_first_mentions(
        self,
        ctx: CycleContext,
        symbol_hints: dict[str, str | None],
        report: CycleReport,
    ) -> None:
        assert self._first_mention_detector
        for mint in sorted(ctx.first_mentions):
            symbol = ctx.prices.symbol_of(mint) or symbol_hints.get(mint)
            try:
                if await self._first_mention_detector.commit(mint, symbol):
                    report.first_mentions_committed += 1
            except Exception as e:
                report.user_errors += 1
                logger.error("Failed to commit first mention %s: %s", mint[:8] + "...", e)

    def _record_report(self, report: CycleReport) -> None:
        stats = self._stats
        stats.cycles_run += 1
        stats.last_cycle_at = report.finished_at
        stats.swaps_seen += report.swaps_seen
        stats.alerts_sent += report.alerts_sent
        stats.delivery_failures += report.delivery_failures
        stats.user_errors += report.user_errors
        stats.first_mentions_committed += report.first_mentions_committed
        if report.aborted:
            stats.cycles_aborted += 1
            stats.last_error = report.error
        self._last_report = report

    async def run(self) -> None:
        """Start the pipeline and run until interrupted.

        Example:
            ```python
            pipeline = Pipeline()
            try:
                await pipeline.run()
            except KeyboardInterrupt:
                pass
            ```
        """
        await self.start()

        try:
            if self._stop_event:
                await self._stop_event.wait()
        except asyncio.CancelledError:
            pass
        finally:
            await self.stop()

    async def run_once(self) -> CycleReport | None:
        """Run a single cycle without the poll loop and release resources."""
        if self._state != PipelineState.STOPPED:
            raise RuntimeError(f"Cannot run a single cycle in state {self._state}")
        await self._initialize_components()
        try:
            await self.run_cycle()
        finally:
            await self._cleanup()
        return self._last_report

    def request_stop(self) -> None:
        """Ask run() to return. Safe to call from a signal handler."""
        if self._stop_event:
            self._stop_event.set()

    async def __aenter__(self) -> Pipeline:
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.stop()
