"""Data models for the events backend resources."""

from datetime import date as DateType
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ALL_CATEGORIES = "all"


class EventFilter(BaseModel):
    """Filter context narrowing an events query.

    The category ``"all"`` and empty values mean "no filter", so two filters
    that select the same server-side query compare (and hash) equal.
    """

    model_config = ConfigDict(frozen=True)

    category: Optional[str] = None
    date: Optional[DateType] = None

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        if not value or value == ALL_CATEGORIES:
            return None
        return value

    @field_validator("date", mode="before")
    @classmethod
    def _normalize_date(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def is_unfiltered(self) -> bool:
        """True when the query is the canonical, cacheable one."""
        return self.category is None and self.date is None

    def to_params(self) -> dict[str, str]:
        """Query parameters for the events resource."""
        params = {}
        if self.category is not None:
            params["category"] = self.category
        if self.date is not None:
            params["date"] = self.date.isoformat()
        return params

    def __str__(self) -> str:
        if self.is_unfiltered:
            return "unfiltered"
        return f"category={self.category or ALL_CATEGORIES}, date={self.date or '-'}"


class ApiModel(BaseModel):
    """Base model mapping the backend's camelCase keys to snake_case fields."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Category(ApiModel):
    """Event category as listed by the categories resource."""

    id: int
    name: str
    display_name: str
    color: str
    icon: str = "calendar"


class EventCategory(ApiModel):
    """Category association nested inside an event."""

    category_id: int
    category_name: Optional[str] = None
    category_display_name: Optional[str] = None
    category_color: Optional[str] = None
    category_icon: Optional[str] = None


class Event(ApiModel):
    """City event with its associated categories."""

    id: int
    title: str
    description: Optional[str] = None

    # Time information
    start_date: datetime
    end_date: Optional[datetime] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    # Location and organizer
    location: str = ""
    address: Optional[str] = None
    organizer_name: Optional[str] = None
    organizer_contact: Optional[str] = None

    # Listing details
    category_id: Optional[int] = None
    price: Optional[str] = None
    capacity: Optional[int] = None
    image_url: Optional[str] = None
    website_url: Optional[str] = None
    ticket_url: Optional[str] = None
    participant_type: Optional[str] = None
    is_active: bool = True
    is_featured: bool = False

    categories: list[EventCategory] = Field(default_factory=list)


class VenueCategory(ApiModel):
    """Venue category as nested in venue listings."""

    id: int
    name: str
    display_name: str
    color: Optional[str] = None
    icon: Optional[str] = None
    description: Optional[str] = None


class Venue(ApiModel):
    """Venue listing flattened from the venues resource."""

    id: int
    name: str
    description: Optional[str] = None
    address: str = ""
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    rating: Optional[float] = None
    category_id: Optional[int] = None
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None
    category: Optional[VenueCategory] = Field(default=None, alias="venue_categories")


class User(ApiModel):
    """Logged-in user identity as kept on the client."""

    id: int
    name: Optional[str] = None
    email: Optional[str] = None
