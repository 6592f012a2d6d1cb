# ============================================================================
# CLAUDE CONTEXT - DISCOVERY COORDINATOR
# ============================================================================
# STATUS: Coordinator Layer - per-click feature discovery
# PURPOSE: Race WMS GetFeatureInfo across layers, fall back to WFS, own the result slot
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: DiscoveryCoordinator, LayerResult
# DEPENDENCIES: asyncio, .scope, .transport (httpx), .query_builder, .parser, .crs (pyproj)
# PATTERNS: State machine (Idle -> Querying -> Resolved), structured concurrency
# ENTRY_POINTS: outcome = await DiscoveryCoordinator().identify(click)
# ============================================================================
"""
Discovery Coordinator

The only stateful component. It owns:

- the result slot (`current`): one FoundFeature or None
- the cancellation scope of the click being resolved
- the subscriber callbacks of the UI collaborator

Per click:

1. A new click cancels the previous click's scope, then opens its own.
   A cancelled click never writes the slot and never notifies.
2. One WMS GetFeatureInfo query per candidate layer runs concurrently.
   The first response that parses to a feature wins and the others are
   cancelled; among responses settling in the same tick the lowest layer
   index wins.
3. When every layer answered "no feature" without an error, a WFS spatial
   query per layer runs in layer order and the first feature with
   geometry wins.
4. The outcome is published: a FoundFeature (coordinate always lon/lat),
   or None plus an informational "nothing found", or None plus an error
   notification. A service exception is shown only when the last
   candidate to settle raised it; failures on every candidate are a
   transport error.

Per-layer failures (transport, parse, service exceptions) are logged and
contained; they never abort discovery for the other layers.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, Coroutine, List, Optional

from util_logger import LoggerFactory, ComponentType, LogContext

from .config import DiscoveryConfig, get_discovery_config
from .crs import to_geographic
from .exceptions import DiscoveryError, ServiceException, TransportError
from .models import (
    ClickEvent,
    DiscoveryOutcome,
    DiscoveryStatus,
    FeatureSource,
    FoundFeature,
    Notification,
    NotificationLevel,
    ParsedFeature,
    Query,
)
from .parser import parse_feature_response
from .query_builder import (
    build_feature_by_id_query,
    build_feature_info_query,
    build_spatial_query,
)
from .scope import CancellationScope, ScopeCancelled
from .transport import OGCTransport

logger = LoggerFactory.create_logger(ComponentType.COORDINATOR, "DiscoveryCoordinator")

NOTHING_FOUND_MESSAGE = "Nothing found"


@dataclass
class LayerResult:
    """Settled result of one per-layer query."""
    layer: str
    feature: Optional[ParsedFeature] = None
    error: Optional[DiscoveryError] = None

    @property
    def is_hit(self) -> bool:
        return self.feature is not None


def _is_hit(task: asyncio.Task) -> bool:
    return task.exception() is None and task.result().is_hit


class DiscoveryCoordinator:
    """
    Click-to-feature coordinator.

    Usage:
        coordinator = DiscoveryCoordinator(on_result=show_popup, on_notification=toast)
        outcome = await coordinator.identify(click)
        coordinator.clear()          # user closed the popup
        await coordinator.close()
    """

    def __init__(
        self,
        config: Optional[DiscoveryConfig] = None,
        transport: Optional[OGCTransport] = None,
        on_result: Optional[Callable[[Optional[FoundFeature]], None]] = None,
        on_notification: Optional[Callable[[Notification], None]] = None,
        on_progress: Optional[Callable[[bool], None]] = None
    ):
        self.config = config or get_discovery_config()
        self._owns_transport = transport is None
        self.transport = transport or OGCTransport(self.config)

        self.on_result = on_result
        self.on_notification = on_notification
        self.on_progress = on_progress

        self.current: Optional[FoundFeature] = None
        self._scope: Optional[CancellationScope] = None
        self._click_seq = 0

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    @property
    def in_progress(self) -> bool:
        """True while a click is being resolved."""
        return self._scope is not None

    async def identify(self, click: ClickEvent) -> DiscoveryOutcome:
        """
        Resolve a click to at most one feature and publish it.

        Args:
            click: Click coordinate, view snapshot and candidate layers

        Returns:
            DiscoveryOutcome; status CANCELLED when a newer click superseded
            this one (the slot is left to the newer click)
        """
        self._click_seq += 1
        click_id = self._click_seq

        if self._scope is not None:
            self._scope.cancel()

        scope = CancellationScope(f"click-{click_id}")
        self._scope = scope
        self._set_progress(True)

        outcome: Optional[DiscoveryOutcome] = None
        try:
            async with scope:
                outcome = await self._discover(click, click_id, scope)
        except ScopeCancelled:
            outcome = None
        finally:
            if self._scope is scope:
                self._scope = None
                self._set_progress(False)

        if outcome is None or scope.cancelled or click_id != self._click_seq:
            logger.info(
                f"Click {click_id} superseded, result discarded",
                extra={'custom_dimensions': LogContext(click_id=str(click_id)).to_dict()}
            )
            return DiscoveryOutcome(click_id=click_id, status=DiscoveryStatus.CANCELLED)

        self._publish(outcome)
        return outcome

    def clear(self) -> None:
        """User closed the displayed result."""
        self.current = None
        if self.on_result:
            self.on_result(None)

    def cancel(self) -> None:
        """Abort the click in flight, if any, without touching the slot."""
        if self._scope is not None:
            self._scope.cancel()

    async def close(self):
        self.cancel()
        if self._owns_transport:
            await self.transport.close()

    # ========================================================================
    # DISCOVERY
    # ========================================================================

    async def _discover(self, click: ClickEvent, click_id: int, scope: CancellationScope) -> DiscoveryOutcome:
        crs = click.crs
        pixel = click.view.pixel_of(*click.coordinate)

        # WMS results in the order they settled
        settled: List[LayerResult] = []
        tasks = [
            scope.spawn(
                self._settle(
                    self._query_layer(
                        build_feature_info_query(click.view, crs, [layer], pixel, self.config),
                        layer,
                        click_id
                    ),
                    settled
                ),
                name=layer
            )
            for layer in click.layers
        ]
        winner = await scope.first_accepted(tasks, accept=_is_hit)

        if winner is not None:
            hit: LayerResult = winner.result()
            logger.info(
                f"Click {click_id}: WMS hit on {hit.layer} ({hit.feature.typename})",
                extra={'custom_dimensions': self._context(click_id, click, hit.layer)}
            )
            geojson = hit.feature.geojson
            if geojson is None and self.config.enrich_geometry and hit.feature.fid:
                geojson = await self._lookup_geometry(hit.feature, click_id, scope)
            return self._found(click_id, click, hit.feature, hit.layer, FeatureSource.WMS, geojson)

        # The spatial fallback only follows clean "no feature" answers
        if any(result.error is not None for result in settled):
            logger.info(
                f"Click {click_id}: WMS errors on {[r.layer for r in settled if r.error is not None]}, "
                f"spatial fallback skipped",
                extra={'custom_dimensions': LogContext(click_id=str(click_id), crs=crs.value).to_dict()}
            )
            return self._miss(click_id, settled)

        results: List[LayerResult] = []
        for layer in click.layers:
            result = await self._await_child(
                scope,
                self._query_layer(build_spatial_query(click.coordinate, crs, layer, self.config), layer, click_id),
                name=f"wfs:{layer}"
            )
            results.append(result)
            if result.feature is not None and result.feature.geojson is not None:
                logger.info(
                    f"Click {click_id}: WFS spatial hit on {layer} ({result.feature.typename})",
                    extra={'custom_dimensions': self._context(click_id, click, layer)}
                )
                return self._found(
                    click_id, click, result.feature, layer, FeatureSource.WFS, result.feature.geojson
                )

        return self._miss(click_id, results)

    @staticmethod
    async def _settle(coro: Coroutine, settled: List[LayerResult]) -> LayerResult:
        result = await coro
        settled.append(result)
        return result

    async def _await_child(self, scope: CancellationScope, coro: Coroutine, name: str):
        """Run one child in the scope and wait for it without leaking CancelledError."""
        task = scope.spawn(coro, name=name)
        await asyncio.wait([task])
        scope.raise_if_cancelled()
        if task.cancelled():
            raise ScopeCancelled(f"{scope.name}: {name} cancelled")
        return task.result()

    async def _query_layer(self, query: Query, layer: str, click_id: int) -> LayerResult:
        """One request + parse; every failure becomes part of the LayerResult."""
        dims = LogContext(click_id=str(click_id), layer=layer).to_dict()
        try:
            response = await self.transport.send(query)
            feature = parse_feature_response(response.text, response.content_type)
            return LayerResult(layer=layer, feature=feature)
        except ServiceException as e:
            logger.warning(f"Service exception from {layer}: {e.upstream_message}", extra={'custom_dimensions': dims})
            return LayerResult(layer=layer, error=e)
        except DiscoveryError as e:
            logger.warning(f"Query for {layer} failed: {e}", extra={'custom_dimensions': dims})
            return LayerResult(layer=layer, error=e)
        except Exception as e:
            logger.exception(f"Unexpected error querying {layer}: {e}", extra={'custom_dimensions': dims})
            return LayerResult(layer=layer, error=TransportError(f"Unexpected error: {str(e)}"))

    async def _lookup_geometry(self, feature: ParsedFeature, click_id: int, scope: CancellationScope):
        """WFS GetFeature by id for a WMS hit that carried no geometry."""
        result = await self._await_child(
            scope,
            self._query_layer(build_feature_by_id_query(feature.typename, feature.fid, self.config),
                              feature.typename, click_id),
            name=f"wfs-id:{feature.fid}"
        )
        if result.feature is not None:
            return result.feature.geojson
        return None

    # ========================================================================
    # OUTCOMES
    # ========================================================================

    def _found(
        self,
        click_id: int,
        click: ClickEvent,
        feature: ParsedFeature,
        layer: str,
        source: FeatureSource,
        geojson
    ) -> DiscoveryOutcome:
        found = FoundFeature(
            typename=feature.typename,
            fid=feature.fid,
            coordinate=to_geographic(click.coordinate, click.crs),
            props=dict(feature.props),
            geojson=geojson,
            layer=layer,
            source=source
        )
        return DiscoveryOutcome(
            click_id=click_id,
            status=DiscoveryStatus.FOUND,
            feature=found,
            notification=Notification(level=NotificationLevel.SUCCESS, message=f"Found {found.typename}")
        )

    def _miss(self, click_id: int, results: List[LayerResult]) -> DiscoveryOutcome:
        """
        Aggregate outcome when no layer produced a feature.

        Args:
            results: Results of the stage the click ended on, in settle order

        A service exception is surfaced only when it came from the last
        candidate to settle. Failures on every candidate are a transport
        error. Anything else is an ordinary "nothing found".
        """
        last = results[-1] if results else None
        if last is not None and isinstance(last.error, ServiceException):
            return DiscoveryOutcome(
                click_id=click_id,
                status=DiscoveryStatus.SERVICE_ERROR,
                notification=Notification(level=NotificationLevel.ERROR, message=f"Error: {last.error}")
            )

        if results and all(r.error is not None for r in results):
            error = last.error
            return DiscoveryOutcome(
                click_id=click_id,
                status=DiscoveryStatus.TRANSPORT_ERROR,
                notification=Notification(level=NotificationLevel.ERROR, message=f"Error: {error}")
            )

        return DiscoveryOutcome(
            click_id=click_id,
            status=DiscoveryStatus.NOT_FOUND,
            notification=Notification(level=NotificationLevel.INFO, message=NOTHING_FOUND_MESSAGE)
        )

    def _publish(self, outcome: DiscoveryOutcome) -> None:
        """Write the slot and notify. A new click always replaces the slot."""
        self.current = outcome.feature
        if self.on_result:
            self.on_result(self.current)
        if outcome.notification and self.on_notification:
            self.on_notification(outcome.notification)

    def _set_progress(self, value: bool) -> None:
        if self.on_progress:
            self.on_progress(value)

    @staticmethod
    def _context(click_id: int, click: ClickEvent, layer: str) -> dict:
        return LogContext(click_id=str(click_id), layer=layer, crs=click.crs.value).to_dict()
