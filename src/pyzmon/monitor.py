"""Live ride monitor.

Consumes decoded packets, keeps the live athlete picture up to date and
publishes ``watching``, ``nearby``, ``groups`` and ``chat`` events.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Protocol

from pydantic import ValidationError

from pyzmon._mqtt import MqttPacketRuntime, MqttSettings
from pyzmon._scheduler import NearbyScheduler
from pyzmon.config import MonitorConfig
from pyzmon.exceptions import MonitorStateError
from pyzmon.ingestion.normalize import distance, safe_int
from pyzmon.models.packets import (
    ChatMessage,
    IncomingPacket,
    OutgoingPacket,
    PacketEvent,
    PacketKind,
    PayloadType,
    PlayerUpdate,
)
from pyzmon.models.profile import AthleteProfile
from pyzmon.models.results import ChatEvent, WatchingEvent
from pyzmon.models.state import AthleteState
from pyzmon.models.stats import AthleteStats
from pyzmon.profiles import ProfileCache
from pyzmon.proximity import ProximityResult, compute_proximity
from pyzmon.state.events import EventBus, Listener, Topic
from pyzmon.state.policy import CacheSavePolicy
from pyzmon.state.store import LiveStateStore
from pyzmon.storage import JsonFileStorage, StateStorage

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PacketSource(Protocol):
    """Anything that delivers decoded packets to a callback."""

    @property
    def is_running(self) -> bool: ...

    def start(self, on_event: Callable[[PacketEvent], None]) -> None: ...

    def stop(self) -> None: ...


class ZwiftMonitor:
    """Live picture of the riders around the watched athlete.

    Usage::

        async with ZwiftMonitor(MonitorConfig.from_env()) as monitor:
            monitor.subscribe(Topic.NEARBY, print)
            await asyncio.Event().wait()

    All state mutation happens on the event loop thread: packets arrive via
    :meth:`handle_packet`, and the scheduler only reads the store.
    """

    def __init__(
        self,
        config: MonitorConfig | None = None,
        *,
        source: PacketSource | None = None,
        storage: StateStorage | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config or MonitorConfig()
        self._clock = clock
        self._source = source
        self._storage: StateStorage = storage or JsonFileStorage(self._config.storage_dir)
        self._bus = EventBus()
        self._store = LiveStateStore(
            clock=clock,
            stale_after=self._config.stale_after,
            evict_after=self._config.evict_after,
        )
        self._profiles = ProfileCache(
            policy=CacheSavePolicy(
                min_interval=self._config.cache_save_interval,
                min_updates=self._config.cache_min_updates,
                clock=self._now_ms,
            )
        )
        self._watching: int | None = None
        self._road_sig: tuple[int, bool] | None = None
        self._scheduler = NearbyScheduler(
            tick=self.refresh_nearby,
            is_active=lambda: self._watching is not None,
            after_cycle=self._maybe_save_profiles,
            interval=self._config.nearby_interval,
            idle_interval=self._config.idle_poll_interval,
        )
        self._started = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ZwiftMonitor:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        """Load the profile cache, start the packet source and the scheduler.

        Raises
        ------
        StorageError
            If the profile cache exists but cannot be read.
        """
        if self._started:
            raise MonitorStateError("Monitor already started")
        loop = asyncio.get_running_loop()
        await self._profiles.load(self._storage)

        if self._source is None and self._config.mqtt_enabled:
            self._source = MqttPacketRuntime(MqttSettings.from_config(self._config), loop=loop, logger=_logger)
        if self._source is not None:
            await loop.run_in_executor(None, self._source.start, self.handle_packet)

        self._scheduler.start()
        self._started = True
        _logger.info("Monitor started with %d cached athlete profiles", len(self._profiles))

    async def stop(self) -> None:
        """Stop the packet source, wait for the scheduler and flush the profile cache.

        The flush bypasses the save debounce: any pending profile update is
        written regardless of the interval and update-count thresholds.
        """
        if not self._started:
            return
        self._started = False
        source = self._source
        if source is not None:
            try:
                await asyncio.get_running_loop().run_in_executor(None, source.stop)
            except Exception:
                _logger.debug("Packet source stop failed", exc_info=True)
        await self._scheduler.stop()
        await self._profiles.flush(self._storage)
        _logger.info("Monitor stopped")

    @property
    def is_running(self) -> bool:
        return self._started

    # ------------------------------------------------------------------
    # Read access and subscriptions
    # ------------------------------------------------------------------

    @property
    def watching(self) -> int | None:
        """Id of the athlete whose perspective drives nearby/groups."""
        return self._watching

    @property
    def profiles(self) -> ProfileCache:
        return self._profiles

    @property
    def scheduler(self) -> NearbyScheduler:
        return self._scheduler

    def get_state(self, athlete_id: int) -> AthleteState | None:
        return self._store.get(athlete_id)

    def get_stats(self, athlete_id: int) -> AthleteStats | None:
        stats = self._store.stats(athlete_id)
        return stats.model_copy() if stats is not None else None

    def get_profile(self, athlete_id: int) -> AthleteProfile | None:
        return self._profiles.get(athlete_id)

    def states(self) -> list[AthleteState]:
        return self._store.snapshot()

    def subscribe(self, topic: Topic | str, listener: Listener) -> Callable[[], None]:
        return self._bus.subscribe(topic, listener)

    def unsubscribe(self, topic: Topic | str, listener: Listener) -> None:
        self._bus.unsubscribe(topic, listener)

    # ------------------------------------------------------------------
    # Packet routing
    # ------------------------------------------------------------------

    def handle_packet(self, event: PacketEvent) -> None:
        """Route one decoded packet (called on the event loop)."""
        try:
            if event.kind == PacketKind.INCOMING:
                self.on_incoming(IncomingPacket.model_validate(event.packet))
            elif event.kind == PacketKind.OUTGOING:
                self.on_outgoing(OutgoingPacket.model_validate(event.packet))
            else:
                _logger.warning("Ignoring packet of unknown kind %r", event.kind)
        except ValidationError as exc:
            _logger.warning("Ignoring malformed %s packet: %s", event.kind, exc)

    def on_incoming(self, packet: IncomingPacket) -> None:
        for update in packet.player_updates:
            self._handle_player_update(update)
        if self._watching is None and packet.athlete_id is not None:
            # Not hooked up to an outgoing stream (yet); follow the local athlete.
            self._set_watching(packet.athlete_id)
        for raw in packet.player_states:
            self._process_raw_state(raw)

    def on_outgoing(self, packet: OutgoingPacket) -> None:
        if packet.state is None:
            return
        raw = packet.state
        if "id" not in raw and "athleteId" not in raw and packet.athlete_id is not None:
            raw = {**raw, "id": packet.athlete_id}
        self._process_raw_state(raw)
        watching = packet.watching_athlete_id
        if watching is not None and watching != self._watching:
            self._set_watching(watching)

    def process_state(self, raw: dict[str, Any] | AthleteState) -> AthleteState:
        """Store a state record and publish ``watching`` if it belongs to the watched athlete."""
        state, stats = self._store.upsert(raw)
        if state.id == self._watching:
            self._check_road_signature(state)
            self._bus.publish(Topic.WATCHING, WatchingEvent(state=state, stats=stats.model_copy()))
        return state

    def _process_raw_state(self, raw: dict[str, Any]) -> None:
        try:
            self.process_state(raw)
        except ValidationError as exc:
            _logger.warning("Ignoring malformed player state: %s", exc)

    def _handle_player_update(self, update: PlayerUpdate) -> None:
        kind = update.type
        if kind == PayloadType.ENTERED_WORLD:
            athlete_id = safe_int(update.payload.get("athleteId"))
            if athlete_id is None:
                _logger.warning("PlayerEnteredWorld without athleteId ignored")
                return
            try:
                self._profiles.record(athlete_id, update.payload)
            except ValidationError as exc:
                _logger.warning("Ignoring malformed PlayerEnteredWorld payload: %s", exc)
        elif kind == PayloadType.CHAT_MESSAGE:
            try:
                chat = ChatMessage.model_validate(update.payload)
            except ValidationError as exc:
                _logger.warning("Ignoring malformed ChatMessage payload: %s", exc)
                return
            self._handle_chat(chat, update.ts)
        elif kind in (PayloadType.EVENT_JOIN, PayloadType.EVENT_LEAVE, PayloadType.RIDE_ON):
            _logger.info("%s: %s", kind.value, update.payload)
        else:
            _logger.warning("Ignoring player update of unknown type %s", update.type_name)

    def _handle_chat(self, chat: ChatMessage, ts: int | None) -> None:
        watching_state = self._store.get(self._watching) if self._watching is not None else None
        if watching_state is not None and watching_state.group_id != chat.event_subgroup:
            _logger.debug(
                "Skipping chat for subgroup %s (watching group %s)",
                chat.event_subgroup,
                watching_state.group_id,
            )
            return

        from_state = self._store.get(chat.from_athlete_id)
        dist_gap = distance(from_state, watching_state) if from_state and watching_state else None
        profile = self._profiles.get(chat.from_athlete_id)
        self._bus.publish(
            Topic.CHAT,
            ChatEvent(
                from_athlete_id=chat.from_athlete_id,
                to=chat.to,
                message=chat.message,
                event_subgroup=chat.event_subgroup,
                first_name=chat.first_name or (profile.first_name if profile else None),
                last_name=chat.last_name or (profile.last_name if profile else None),
                avatar=chat.avatar or (profile.avatar if profile else None),
                ts=ts,
                dist_gap=dist_gap,
            ),
        )

    # ------------------------------------------------------------------
    # Watch state and scheduling
    # ------------------------------------------------------------------

    def _set_watching(self, athlete_id: int) -> None:
        _logger.info("Now watching athlete %s", athlete_id)
        self._watching = athlete_id
        current = self._store.get(athlete_id)
        self._road_sig = current.road_signature if current is not None else None
        self._scheduler.wake.notify()

    def _check_road_signature(self, state: AthleteState) -> None:
        sig = state.road_signature
        if self._road_sig is not None and sig != self._road_sig:
            _logger.debug("Watched athlete road changed %s -> %s", self._road_sig, sig)
            self._scheduler.wake.notify()
        self._road_sig = sig

    def refresh_nearby(self) -> ProximityResult | None:
        """Recompute and publish ``nearby`` and ``groups`` (one scheduler tick)."""
        if self._watching is None:
            return None
        watched = self._store.get(self._watching)
        if watched is None:
            return None
        fresh = self._store.prune(self._clock())
        _logger.debug(
            "Athletes: %d States: %d Fresh: %d Watching: %s",
            len(self._profiles),
            len(self._store),
            len(fresh),
            watched.id,
        )
        result = compute_proximity(
            watched,
            fresh,
            self._profiles,
            window=self._config.nearby_window,
            gap=self._config.group_gap,
        )
        if result is None:
            return None
        self._bus.publish(Topic.NEARBY, result.nearby)
        self._bus.publish(Topic.GROUPS, result.groups)
        return result

    async def _maybe_save_profiles(self) -> None:
        await self._profiles.maybe_save(self._storage)

    def _now_ms(self) -> int:
        return int(self._clock().timestamp() * 1000)
