"""Booking orchestrator — re-validates a selection and commits it all-or-nothing.

Data may have changed since discovery, so the layover window and every
selected experience are checked again. Nothing is written unless every
selected experience passes.
"""

import asyncio
import logging
import secrets
import string
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from app.data.currency import convert
from app.services.layover.adapters import DEFAULT_WEATHER, ExperienceSource, WeatherSource
from app.services.layover.commission import CommissionCalculator, StrategyContext
from app.services.layover.config import EngineConfig, default_engine_config
from app.services.layover.errors import (
    InvalidBookingRequest,
    NoValidSelection,
    PartialUnavailability,
)
from app.services.layover.feasibility import TransitDirectory, evaluate
from app.services.layover.matching import match_experiences
from app.services.layover.models import (
    BookingConfirmation,
    BookingQuery,
    ExperienceCandidate,
    ExperienceConfirmation,
    ExperienceSelection,
    FeasibilityResult,
    Money,
    WeatherReport,
)

logger = logging.getLogger(__name__)

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_code(prefix: str, length: int = 8) -> str:
    return prefix + "".join(secrets.choice(_CODE_ALPHABET) for _ in range(length))


class BookingStore(ABC):
    """Persistence collaborator for committed bookings."""

    @abstractmethod
    async def save(self, booking: BookingConfirmation) -> None:
        ...

    @abstractmethod
    async def get(self, booking_id: str) -> BookingConfirmation | None:
        ...

    @abstractmethod
    async def count_experience_bookings(self, experience_id: str, since: datetime) -> int:
        """Committed bookings that include `experience_id`, created at or after `since`."""
        ...


class InMemoryBookingStore(BookingStore):
    def __init__(self):
        self._bookings: dict[str, BookingConfirmation] = {}
        self._lock = asyncio.Lock()

    async def save(self, booking: BookingConfirmation) -> None:
        async with self._lock:
            self._bookings[booking.booking_id] = booking

    async def get(self, booking_id: str) -> BookingConfirmation | None:
        return self._bookings.get(booking_id)

    async def find_by_confirmation(self, code: str) -> BookingConfirmation | None:
        return next((b for b in self._bookings.values() if b.confirmation_code == code), None)

    async def count_experience_bookings(self, experience_id: str, since: datetime) -> int:
        return sum(
            1 for b in self._bookings.values()
            if b.created_at >= since and any(e.experience.id == experience_id for e in b.experiences)
        )

    def __len__(self) -> int:
        return len(self._bookings)


class BookingOrchestrator:
    """Validates, prices and commits a layover booking."""

    def __init__(
        self,
        experience_source: ExperienceSource,
        store: BookingStore,
        transit: TransitDirectory | None = None,
        commission: CommissionCalculator | None = None,
        config: EngineConfig = default_engine_config,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        weather_source: WeatherSource | None = None,
    ):
        self._experiences = experience_source
        self._weather = weather_source
        self._store = store
        self._transit = transit or TransitDirectory()
        self._commission = commission or CommissionCalculator(config.commission)
        self.config = config
        self._now = now

    async def book(self, query: BookingQuery) -> BookingConfirmation:
        self._validate(query)
        window = query.window
        airport = window.airport

        # 1. Layover must still allow leaving the airport
        feasibility = evaluate(
            window,
            self._transit.lookup(airport),
            self.config.feasibility,
            query.min_layover_duration,
        )
        if not feasibility.can_leave_airport:
            reasons = "; ".join(feasibility.reasons) or "layover no longer feasible"
            raise NoValidSelection(
                f"Cannot leave {airport} during this layover: {reasons}",
                failed={s.experience_id: "layover_infeasible" for s in query.selections},
            )

        # 2. Every selected experience re-checked in parallel, weather alongside
        weather, *checks = await asyncio.gather(
            self._fetch_weather(airport),
            *(self._recheck(s, query, feasibility) for s in query.selections),
        )

        failed = {
            s.experience_id: reason
            for s, (_, reason) in zip(query.selections, checks)
            if reason is not None
        }
        if failed and len(failed) == len(query.selections):
            logger.info(f"Booking rejected, nothing bookable at {airport}: {failed}")
            raise NoValidSelection("None of the selected experiences can be booked", failed=failed)
        if failed:
            logger.info(f"Booking rejected, partial unavailability at {airport}: {failed}")
            raise PartialUnavailability(failed)

        # 3. Commission per experience, summed once
        currency = query.flight_price.currency
        known_weather = weather.source != "default"
        since = self._now() - timedelta(hours=24)
        confirmations = []
        for selection, (experience, _) in zip(query.selections, checks):
            recent = await self._store.count_experience_bookings(experience.id, since)
            price = Money(
                convert(experience.price.amount, experience.price.currency, currency),
                currency,
            )
            result = self._commission.calculate(
                price,
                StrategyContext(
                    loyalty_tier=query.loyalty_tier,
                    layover_minutes=window.duration_minutes,
                    experience_minutes=experience.duration_minutes,
                    experience_type=experience.activity_type,
                    rating=experience.rating,
                    weather_good=weather.is_good_for_outdoor if known_weather else None,
                    weather_label=weather.label if known_weather else None,
                    booking_velocity=recent / 24,
                    inventory_level=experience.inventory,
                    promo_codes=list(query.promo_codes),
                ),
                experience_id=experience.id,
            )
            confirmations.append(ExperienceConfirmation(
                experience=experience,
                travelers=selection.travelers,
                confirmation_number=generate_code("EXP"),
                voucher_code=generate_code("VCH", 10),
                commission=result,
            ))

        summary = self._commission.summarize([c.commission for c in confirmations])

        booking = BookingConfirmation(
            booking_id=str(uuid.uuid4()),
            confirmation_code=generate_code("LHQ"),
            flight_id=query.flight_id,
            window=window,
            experiences=confirmations,
            summary=summary,
            created_at=self._now(),
            payment_method=query.payment_method,
            user_id=query.user_id,
        )

        # 4. Single write
        await self._store.save(booking)

        logger.info(
            f"Booking {booking.confirmation_code} committed: {len(confirmations)} experiences, "
            f"commission {summary.total_commission.amount} {summary.currency}"
        )
        return booking

    # --- Private helpers ---

    @staticmethod
    def _validate(query: BookingQuery) -> None:
        if not query.selections:
            raise InvalidBookingRequest("At least one experience must be selected")
        if query.adults < 1:
            raise InvalidBookingRequest("At least one adult traveler is required")
        if not query.payment_method:
            raise InvalidBookingRequest("A payment method is required")
        if not query.window.airport:
            raise InvalidBookingRequest("Layover airport is required")

        ids = [s.experience_id for s in query.selections]
        if len(set(ids)) != len(ids):
            raise InvalidBookingRequest("Each experience may only be selected once")

        party = query.adults + query.children + query.infants
        for s in query.selections:
            if s.travelers < 1 or s.travelers > party:
                raise InvalidBookingRequest(
                    f"Experience {s.experience_id} has {s.travelers} travelers for a party of {party}"
                )
            if s.start.tzinfo is None:
                raise InvalidBookingRequest(f"Experience {s.experience_id} start time needs a timezone")

    async def _recheck(
        self,
        selection: ExperienceSelection,
        query: BookingQuery,
        feasibility: FeasibilityResult,
    ) -> tuple[ExperienceCandidate | None, str | None]:
        """(refreshed experience, None) when bookable, else (None, reason)."""
        try:
            experience = await self._experiences.check_availability(
                selection, query.window.airport, query.flight_price.currency
            )
        except Exception as e:
            logger.warning(f"Availability check failed for {selection.experience_id}: {e}")
            return None, "availability_check_failed"

        if experience is None or not experience.available:
            return None, "unavailable"

        if not match_experiences([experience], query.window, feasibility):
            return None, "outside_layover_window"

        return experience, None

    async def _fetch_weather(self, airport: str) -> WeatherReport:
        if not self._weather:
            return DEFAULT_WEATHER
        try:
            return await self._weather.fetch_weather(airport)
        except Exception as e:
            logger.warning(f"Weather source {self._weather.name} failed for {airport}, pricing without it: {e}")
            return DEFAULT_WEATHER
