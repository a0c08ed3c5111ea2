"""
Pydantic schemas for the portfolio FastAPI backend.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class ContactFormSubmissionPayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1)
    email: EmailStr
    subject: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)


class ContactFormSubmissionUpdate(BaseModel):
    """Partial update; the submission timestamp is not editable."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    subject: Optional[str] = Field(None, min_length=1)
    message: Optional[str] = Field(None, min_length=1)


class ContactFormSubmissionResponse(BaseModel):
    contact_form_submission_id: str
    name: str
    email: str
    subject: str
    message: str
    submission_timestamp: int


class ContactFormSubmissionItem(BaseModel):
    id: str
    name: str
    email: str
    subject: str
    message: str
    submission_timestamp: int


class ContactFormSubmissionsResponse(BaseModel):
    contact_form_submissions: list[ContactFormSubmissionItem]


class GitHubProfileResponse(BaseModel):
    login: str
    id: int
    avatar_url: Optional[str] = None
    html_url: Optional[str] = None
    name: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    public_repos: int = 0
    followers: int = 0
    following: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CurrentWeather(BaseModel):
    temperature: float
    humidity: float
    description: str
    icon: str


class WeatherPoint(BaseModel):
    timestamp: Optional[int] = None
    temperature: Optional[float] = None
    description: Optional[str] = None
    icon: Optional[str] = None


class WeatherDataResponse(BaseModel):
    current: CurrentWeather
    forecast: list[WeatherPoint]
    past: list[WeatherPoint]


class Recipe(BaseModel):
    title: str
    ingredients: list[str]
    instructions: str
    image_url: str
    source_url: str


class RecipesResponse(BaseModel):
    recipes: list[Recipe]
