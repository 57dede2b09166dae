"""Pydantic schemas for provider analytics."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel


TimeRange = Literal["7d", "30d", "90d"]


class ProfileViewStats(BaseModel):
    total: int
    this_month: int
    last_month: int


class LeadAnalytics(BaseModel):
    total: int
    this_month: int
    conversion_rate: float
    by_status: dict[str, int]


class RevenueStats(BaseModel):
    total_bookings: int
    estimated_value: int
    this_month: int


class PerformanceStats(BaseModel):
    completion_rate: float


class ActivityItem(BaseModel):
    type: Literal["view", "lead"]
    description: str
    timestamp: datetime


class ProviderAnalyticsResponse(BaseModel):
    time_range: TimeRange
    profile_views: ProfileViewStats
    leads: LeadAnalytics
    revenue: RevenueStats
    performance: PerformanceStats
    recent_activity: list[ActivityItem]


class ViewRecordedResponse(BaseModel):
    success: bool = True
