"""
Homepage Backend — Letterboxd Film Diary Scraper
================================================

What:  Scrapes the owner's Letterboxd films page, resolves each poster to
       an image URL, and caches the whole list globally for a fixed TTL.
How:   BeautifulSoup over the films-by-date HTML; poster lookups run
       concurrently with asyncio.gather; a single asyncio.Lock guards the
       (last_hit_at, last_response) pair.
Who:   Called by the /letterboxd route handler.

Page structure relied on (one <li> per film under div.poster-grid):

    <div class="poster-grid"><ul><li>
        <div data-component-class="LazyPoster" data-item-link="/film/heat-1995/">
            <img alt="Heat" ...>
        </div>
        <span class="rating rated-9"></span>
        <time datetime="2024-03-01T00:00:00.000Z"></time>
    </li></ul></div>

    An item missing any of alt / rating / datetime / item link is skipped.
    Unrated films therefore never appear in the list.

Poster lookup:
    GET {base}{item_link}poster/std/{size} answers {"url": "https://..."}.
    A failed lookup keeps the item link in poster_url rather than dropping
    the film. Lookups run through their own circuit breaker.

Failure policy:
    A failed scrape never replaces cached data. With a previous result in
    memory it is served stale (timestamp not advanced, so the next request
    retries); with nothing cached the error propagates as a 503.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional

import httpx
from bs4 import BeautifulSoup, Tag
from pydantic import ValidationError as PydanticValidationError

from homepage_api.config import settings
from homepage_api.exceptions import HomepageError, UpstreamServiceError
from homepage_api.schemas.letterboxd import FilmData, LetterboxdPoster
from homepage_api.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)


def _attr(node: Optional[Tag], name: str) -> Optional[str]:
    if node is None:
        return None
    value = node.get(name)
    if isinstance(value, list):
        # bs4 splits multi-valued attributes such as class
        value = " ".join(value)
    return value or None


def parse_rating(class_attr: Optional[str]) -> Optional[int]:
    """'rating rated-8' → 8; anything without a trailing integer → None."""
    if not class_attr:
        return None
    tail = class_attr.split("-")[-1]
    return int(tail) if tail.isdigit() else None


def parse_film(film_node: Tag) -> Optional[FilmData]:
    """
    Build a FilmData from one poster-grid <li>, or None when incomplete.

    poster_url holds the film's item link at this stage; it is swapped for
    the real image URL by the poster lookup.
    """
    name = _attr(film_node.find("img"), "alt")
    rating = parse_rating(_attr(film_node.find("span", class_="rating"), "class"))
    watched_at = _attr(film_node.find("time"), "datetime")
    item_link = _attr(
        film_node.find(attrs={"data-component-class": "LazyPoster"}),
        "data-item-link",
    )

    if name is None or rating is None or watched_at is None or item_link is None:
        return None

    return FilmData(name=name, rating=rating, watched_at=watched_at, poster_url=item_link)


def parse_films(html: str) -> List[FilmData]:
    """All complete film entries on a films page, in page order."""
    soup = BeautifulSoup(html, "html.parser")
    films = []
    for film_node in soup.select("div.poster-grid li"):
        film = parse_film(film_node)
        if film is not None:
            films.append(film)
    return films


class LetterboxdService:
    """
    Global TTL cache in front of the Letterboxd scrape.

    Args:
        username: diary owner (defaults to settings.letterboxd_user)
        client:   httpx client override for tests
        clock:    time source, seconds
    """

    def __init__(
        self,
        username: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.username = username or settings.letterboxd_user
        self.base_url = settings.letterboxd_base_url
        self.ttl = settings.letterboxd_cache_ttl
        self.upstream = UpstreamClient("letterboxd", client=client)
        # Poster outcomes never touch the films-page circuit
        self.posters = UpstreamClient("letterboxd-posters", client=client)
        self.last_hit_at: float = 0.0
        self.last_response: Optional[List[FilmData]] = None
        self._lock = asyncio.Lock()
        self._clock = clock

    @property
    def films_url(self) -> str:
        return f"{self.base_url}/{self.username}/films/by/date/size/large/"

    def poster_url(self, item_link: str) -> str:
        return f"{self.base_url}{item_link}poster/std/{settings.letterboxd_poster_size}"

    async def get_films(self) -> List[FilmData]:
        """
        The cached film list, refreshed when older than the TTL.

        Raises:
            UpstreamServiceError / CircuitBreakerOpenError only when the
            scrape fails and nothing has ever been cached.
        """
        async with self._lock:
            now = self._clock()

            if self.last_response is not None and now - self.last_hit_at < self.ttl:
                return list(self.last_response)

            try:
                films = await self.scrape()
            except HomepageError as e:
                if self.last_response is None:
                    raise
                logger.warning(
                    "Letterboxd scrape failed (%s); serving %d cached films from %.0fs ago",
                    e.message,
                    len(self.last_response),
                    now - self.last_hit_at,
                )
                return list(self.last_response)

            self.last_hit_at = now
            self.last_response = films
            return list(films)

    async def scrape(self) -> List[FilmData]:
        """Fetch and parse the films page, then resolve every poster."""
        response = await self.upstream.get(self.films_url)
        if not response.is_success:
            raise UpstreamServiceError(
                service="letterboxd",
                message=f"Letterboxd answered {response.status_code} for the films page",
                context={"status_code": response.status_code},
            )

        films = parse_films(response.text)
        if not films:
            logger.warning("Letterboxd films page for %s contained no complete entries", self.username)

        resolved = await asyncio.gather(*(self.resolve_poster(film) for film in films))
        logger.info("Scraped %d films from Letterboxd for %s", len(resolved), self.username)
        return list(resolved)

    async def resolve_poster(self, film: FilmData) -> FilmData:
        """Replace the item link in poster_url with the poster image URL."""
        url = self.poster_url(film.poster_url)

        try:
            response = await self.posters.get(url)
        except HomepageError as e:
            logger.warning("Poster lookup for %s failed: %s", film.name, e.message)
            return film

        if not response.is_success:
            logger.warning("Poster lookup for %s answered %d", film.name, response.status_code)
            return film

        try:
            poster = LetterboxdPoster.model_validate_json(response.text)
        except PydanticValidationError:
            logger.warning("Poster lookup for %s returned an unexpected body", film.name)
            return film

        return film.model_copy(update={"poster_url": poster.url})


letterboxd_service = LetterboxdService()
