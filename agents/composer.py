"""Template composer for deterministic, mode-specific replies."""

import logging
import random
import re
from pathlib import Path
from typing import Optional

import yaml

from schemas.context import Mode, ContextBag
from schemas.evidence import MovieSummary, PersonSummary, GameSummary, SearchHit
from schemas.responses import ComposerOutput, Generation
from .router import load_keywords, contains_keyword

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES_PATH = Path(__file__).parent.parent / "data" / "reply_templates.yaml"


def load_templates(path: Optional[str] = None) -> dict:
    """Load reply template banks from YAML."""
    with open(path or DEFAULT_TEMPLATES_PATH, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def rating_tier(rating: float, top: float, middle: float) -> str:
    """Bucket a rating into top / middle / low."""
    if rating >= top:
        return "top"
    if rating >= middle:
        return "middle"
    return "low"


class ComposerAgent:
    """
    Builds replies from the gathered context using fixed template banks.

    Pure apart from the injected random source: no I/O after construction,
    and every mode produces a non-empty reply.
    """

    # (top, middle) thresholds; movies are rated out of 10, games out of 5
    MOVIE_TIERS = (7.0, 6.0)
    GAME_TIERS = (4.0, 3.0)
    MAX_WORKS = 3
    MAX_PLATFORMS = 3
    MAX_GENRES = 3

    def __init__(
        self,
        templates: Optional[dict] = None,
        keywords: Optional[dict] = None,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize composer.

        Args:
            templates: Template banks (loaded from YAML when omitted)
            keywords: Keyword sets used to pick empty-context replies
            rng: Random source for picking from reply pools
        """
        self.templates = templates or load_templates()
        self.keywords = keywords or load_keywords()
        self.rng = rng or random.Random()

    def compose(self, message: str, context: ContextBag, mode: Mode) -> ComposerOutput:
        """
        Compose a reply for the given mode.

        Args:
            message: Raw user message
            context: Gathered context
            mode: Classified mode

        Returns:
            ComposerOutput marked as a fallback generation
        """
        message = message or ""

        if mode == Mode.CINEPHILE:
            text = self._compose_cinephile(message, context)
        elif mode == Mode.GAME:
            text = self._compose_game(message, context)
        elif mode == Mode.RESEARCH:
            text = self._compose_research(context)
        else:
            text = self._compose_chat(message)

        return ComposerOutput(response_text=text, generation=Generation.FALLBACK)

    def _compose_cinephile(self, message: str, context: ContextBag) -> str:
        bank = self.templates["cinephile"]

        if context.movies:
            blocks = [self._movie_block(movie, bank) for movie in context.movies]
            return "\n\n".join([bank["movies_intro"], *blocks, bank["movies_outro"]])

        if context.people:
            blocks = [self._person_block(person, bank) for person in context.people]
            return "\n\n".join([bank["people_intro"], *blocks, bank["people_outro"]])

        if contains_keyword(message.lower(), self.keywords.get("cinephile", [])):
            return bank["empty"]
        return bank["idle"]

    def _movie_block(self, movie: MovieSummary, bank: dict) -> str:
        tier = rating_tier(movie.vote_average, *self.MOVIE_TIERS)
        lines = [bank["movie_block"].format(
            title=movie.title,
            year=movie.year or "N/A",
            rating=f"{movie.vote_average:.1f}",
            tier=bank["tiers"][tier],
        )]
        if movie.overview:
            lines.append(bank["movie_overview"].format(overview=movie.overview))
        return "\n".join(lines)

    def _person_block(self, person: PersonSummary, bank: dict) -> str:
        lines = [bank["person_block"].format(
            name=person.name,
            department=person.known_for_department or "Acting",
        )]
        if person.known_for:
            works = ", ".join(person.known_for[:self.MAX_WORKS])
            lines.append(bank["person_works"].format(works=works))
        popularity = f"{person.popularity:.1f}" if person.popularity is not None else "N/A"
        lines.append(bank["person_popularity"].format(popularity=popularity))
        return "\n".join(lines)

    def _compose_game(self, message: str, context: ContextBag) -> str:
        bank = self.templates["game"]

        if context.games:
            blocks = [self._game_block(game, bank) for game in context.games]
            return "\n\n".join([bank["games_intro"], *blocks, bank["games_outro"]])

        if contains_keyword(message.lower(), self.keywords.get("game", [])):
            return bank["empty"]
        return bank["idle"]

    def _game_block(self, game: GameSummary, bank: dict) -> str:
        tier = rating_tier(game.rating, *self.GAME_TIERS)
        lines = [bank["game_block"].format(
            name=game.name,
            rating=f"{game.rating:.1f}",
            tier=bank["tiers"][tier],
            released=game.released or "Coming soon",
        )]
        if game.platforms:
            lines.append(bank["game_platforms"].format(
                platforms=", ".join(game.platforms[:self.MAX_PLATFORMS])
            ))
        if game.genres:
            lines.append(bank["game_genres"].format(
                genres=", ".join(game.genres[:self.MAX_GENRES])
            ))
        return "\n".join(lines)

    def _compose_research(self, context: ContextBag) -> str:
        bank = self.templates["research"]

        if not context.search_results:
            return bank["empty"]

        blocks = [self._hit_block(hit, bank) for hit in context.search_results]
        return "\n\n".join([bank["results_intro"], *blocks, bank["results_outro"]])

    @staticmethod
    def _hit_block(hit: SearchHit, bank: dict) -> str:
        return bank["hit_block"].format(
            title=hit.title,
            snippet=hit.snippet,
            source=hit.source or "web",
            link=hit.link,
        )

    def _compose_chat(self, message: str) -> str:
        bank = self.templates["chat"]
        message_lower = message.lower()

        for group in bank["groups"]:
            if any(re.search(rf"\b{re.escape(kw.lower())}\b", message_lower) for kw in group["keywords"]):
                logger.debug(f"Chat reply group: {group['name']}")
                return self.rng.choice(group["replies"])

        if len(message.strip()) <= bank.get("short_message_length", 40):
            return self.rng.choice(bank["short_default"])
        return self.rng.choice(bank["long_default"])
