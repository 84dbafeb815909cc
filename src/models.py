"""
Data models for the Lancers scraper
Defines structure for job records and extraction results
"""

from typing import List, Sequence
from pydantic import BaseModel, Field, field_validator


class JobRecord(BaseModel):
    """Represents a single listing card scraped from a search page"""

    title: str = ""
    url: str = ""
    description: str = ""
    category: str = ""
    price: str = ""
    suggestions: str = ""  # "winners/applicants"
    days_left: str = ""

    # Employer
    employer_name: str = ""
    employer_url: str = ""
    employer_avatar_url: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _absent_is_empty(cls, value):
        # Missing nodes come through as None; downstream expects ""
        if value is None:
            return ""
        return value

    def to_dict(self) -> dict:
        """Wire shape handed to downstream consumers"""
        return {
            "title": self.title,
            "url": self.url,
            "description": self.description,
            "category": self.category,
            "price": self.price,
            "suggestionsRatio": self.suggestions,
            "daysLeft": self.days_left,
            "employerName": self.employer_name,
            "employerUrl": self.employer_url,
            "employerAvatarUrl": self.employer_avatar_url,
        }

    def __str__(self) -> str:
        return f"{self.title} ({self.price or 'no price'})"


class ExtractionResult(BaseModel):
    """Outcome of one retry-engine run against a search page"""

    records: List[JobRecord] = Field(default_factory=list)
    attempts: int = 0
    cards_found: int = 0
    errors: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.records)


def select_target(iteration: int, targets: Sequence[str]) -> str:
    """Pick the search URL for a cycle; alternates through the targets"""
    return targets[iteration % len(targets)]
