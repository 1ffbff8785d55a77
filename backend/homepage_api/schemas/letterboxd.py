"""
Homepage Backend — Letterboxd Schemas
=====================================

What:  The film entries returned by GET /letterboxd/ and the poster lookup
       payload returned by Letterboxd itself.
"""

from pydantic import BaseModel, Field


class FilmData(BaseModel):
    """One diary entry scraped from the owner's films page."""
    name: str = Field(description="Film title (poster alt text)")
    poster_url: str = Field(description="Resolved poster image URL")
    rating: int = Field(description="Rating in half stars, 1-10")
    watched_at: str = Field(description="Watch date as published (ISO 8601)")


class LetterboxdPoster(BaseModel):
    """JSON body of https://letterboxd.com/film/<slug>/poster/std/<size>."""
    url: str
