"""Enum definitions for application constants."""

from enum import Enum


class UserType(str, Enum):
    """Account kind, fixed at sign-up."""
    USER = "user"
    PROVIDER = "provider"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


class ProviderType(str, Enum):
    """Service categories. Also the tag vocabulary used in AI checklists."""
    VENUE = "venue"
    CATERING = "catering"
    PHOTOGRAPHER = "photographer"
    VIDEOGRAPHER = "videographer"
    FLORIST = "florist"
    DECORATOR = "decorator"
    MUSIC = "music"
    TRANSPORTATION = "transportation"
    MAKEUP = "makeup"
    CLOTHING = "clothing"
    JEWELRY = "jewelry"
    INVITATIONS = "invitations"
    OTHER = "other"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_

    @classmethod
    def vocabulary(cls) -> list[str]:
        return [member.value for member in cls]


class SubscriptionStatus(str, Enum):
    """
    Provider standing with the billing provider.

    Only ACTIVE providers are visible in the marketplace and can receive leads.
    """
    ACTIVE = "active"
    INACTIVE = "inactive"
    PAST_DUE = "past_due"
    CANCELLED = "cancelled"


class LeadStatus(str, Enum):
    """
    Lead pipeline status.

    new → contacted → booked (forward-only in the UI; the API accepts any
    member of this set and rejects everything else).
    """
    NEW = "new"
    CONTACTED = "contacted"
    BOOKED = "booked"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


# Defaults
DEFAULT_SUBSCRIPTION_STATUS = SubscriptionStatus.INACTIVE
DEFAULT_LEAD_STATUS = LeadStatus.NEW
