from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from app.services.layover.models import (
    BookingQuery,
    DiscoveryQuery,
    ExperienceSelection,
    Money,
    TimingWindow,
)


class Passengers(BaseModel):
    adults: int = Field(1, ge=1, le=9)
    children: int = Field(0, ge=0, le=9)
    infants: int = Field(0, ge=0, le=9)


class LayoverPreferences(BaseModel):
    min_layover_duration: int | None = Field(None, ge=0)
    max_layover_duration: int | None = Field(None, gt=0)
    preferred_activities: list[str] = []
    physical_demand: Literal["low", "moderate", "medium", "high"] | None = None

    @model_validator(mode="after")
    def _check_range(self):
        if (
            self.min_layover_duration is not None
            and self.max_layover_duration is not None
            and self.min_layover_duration > self.max_layover_duration
        ):
            raise ValueError("min_layover_duration exceeds max_layover_duration")
        return self


def _airport_code(value: str) -> str:
    code = value.strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValueError(f"Invalid airport code: {value}")
    return code


class DiscoveryRequest(BaseModel):
    origin: str
    destination: str | None = None
    departure_date: date
    return_date: date | None = None
    passengers: Passengers = Passengers()
    preferences: LayoverPreferences = LayoverPreferences()
    budget: Literal["economy", "premium", "luxury"] | None = None
    preferred_destinations: list[str] = []
    avoid_destinations: list[str] = []

    @field_validator("origin")
    @classmethod
    def _origin(cls, v: str) -> str:
        return _airport_code(v)

    @field_validator("destination")
    @classmethod
    def _destination(cls, v: str | None) -> str | None:
        return _airport_code(v) if v else None

    @field_validator("preferred_destinations", "avoid_destinations")
    @classmethod
    def _codes(cls, v: list[str]) -> list[str]:
        return [_airport_code(c) for c in v]

    @model_validator(mode="after")
    def _check_dates(self):
        if self.return_date and self.return_date < self.departure_date:
            raise ValueError("return_date is before departure_date")
        return self

    def to_query(self) -> DiscoveryQuery:
        return DiscoveryQuery(
            origin=self.origin,
            destination=self.destination,
            departure_date=self.departure_date.isoformat(),
            return_date=self.return_date.isoformat() if self.return_date else None,
            adults=self.passengers.adults,
            children=self.passengers.children,
            infants=self.passengers.infants,
            min_layover_duration=self.preferences.min_layover_duration,
            max_layover_duration=self.preferences.max_layover_duration,
            preferred_activities=list(self.preferences.preferred_activities),
            physical_demand=self.preferences.physical_demand,
            budget=self.budget,
            preferred_destinations=list(self.preferred_destinations),
            avoid_destinations=list(self.avoid_destinations),
        )


def _aware(value: datetime, field_name: str) -> datetime:
    if value.tzinfo is None:
        raise ValueError(f"{field_name} must include a timezone offset")
    return value


class FlightOffer(BaseModel):
    id: str
    price: Decimal = Field(gt=0)
    currency: str = "USD"
    layover_airport: str
    arrival: datetime
    departure: datetime
    airline: str | None = None

    @field_validator("layover_airport")
    @classmethod
    def _airport(cls, v: str) -> str:
        return _airport_code(v)

    @field_validator("arrival", "departure")
    @classmethod
    def _tz(cls, v: datetime, info) -> datetime:
        return _aware(v, info.field_name)

    @model_validator(mode="after")
    def _check_order(self):
        if self.departure < self.arrival:
            raise ValueError("departure is before arrival")
        return self


class ExperienceSelectionRequest(BaseModel):
    experience_id: str = Field(min_length=1)
    start: datetime
    travelers: int = Field(1, ge=1)

    @field_validator("start")
    @classmethod
    def _tz(cls, v: datetime) -> datetime:
        return _aware(v, "start")


class BookingRequest(BaseModel):
    flight: FlightOffer
    experiences: list[ExperienceSelectionRequest] = Field(min_length=1)
    passengers: Passengers = Passengers()
    preferences: LayoverPreferences = LayoverPreferences()
    payment_method: str = Field(min_length=1)
    loyalty_tier: str | None = None
    promo_codes: list[str] = []
    user_id: str | None = None

    def to_query(self) -> BookingQuery:
        return BookingQuery(
            flight_id=self.flight.id,
            flight_price=Money(self.flight.price, self.flight.currency),
            window=TimingWindow(
                arrival=self.flight.arrival,
                departure=self.flight.departure,
                airport=self.flight.layover_airport,
                flight_id=self.flight.id,
                airline=self.flight.airline,
            ),
            selections=[
                ExperienceSelection(e.experience_id, e.start, e.travelers)
                for e in self.experiences
            ],
            adults=self.passengers.adults,
            children=self.passengers.children,
            infants=self.passengers.infants,
            payment_method=self.payment_method,
            loyalty_tier=self.loyalty_tier,
            promo_codes=list(self.promo_codes),
            min_layover_duration=self.preferences.min_layover_duration,
            user_id=self.user_id,
        )
