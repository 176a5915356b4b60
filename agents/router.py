"""Keyword router for mode classification and entity extraction."""

import logging
import re
from pathlib import Path
from typing import Optional

import yaml
from rapidfuzz import fuzz

from memory.models import ConversationTurn
from schemas.context import Mode, AdapterKind
from schemas.responses import ClassifierOutput, ClassifierStrategy, Entities

logger = logging.getLogger(__name__)

DEFAULT_KEYWORDS_PATH = Path(__file__).parent.parent / "data" / "keywords.yaml"

# Topics scoring at least this against the current one count as the same subject
SAME_TOPIC_SCORE = 90


def load_keywords(path: Optional[str] = None) -> dict:
    """Load the canonical keyword sets from YAML."""
    with open(path or DEFAULT_KEYWORDS_PATH, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return {key: [str(kw).lower() for kw in values or []] for key, values in data.items()}


def contains_keyword(text_lower: str, keywords: list[str]) -> bool:
    """Whole-word-prefix match, so "movie" matches "movies" but "hi" misses "this"."""
    return any(re.search(rf"\b{re.escape(kw)}", text_lower) for kw in keywords)


def resolve_topic(subject: Optional[str], current_topic: Optional[str]) -> Optional[str]:
    """
    Apply the topic continuity rule.

    A new subject replaces the current topic unless it is a near-duplicate of
    it; no subject keeps the current topic.
    """
    if not subject or not subject.strip():
        return current_topic
    subject = subject.strip()
    if current_topic and fuzz.ratio(subject.lower(), current_topic.lower()) >= SAME_TOPIC_SCORE:
        return current_topic
    return subject


class RouterAgent:
    """Routes messages to a mode using fixed keyword sets. Never fails."""

    TRIGGER_PATTERN = re.compile(
        r"\b(?:tell me about|who is|who's|what is|what's|search for|look up|find|about)\s+([^?.!,;]+)",
        re.IGNORECASE,
    )
    QUOTED_PATTERN = re.compile(r"[\"“]([^\"”]{2,})[\"”]")
    WORD_PATTERN = re.compile(r"[A-Za-z0-9][\w'’:&-]*")

    # Words that never start or make up a subject on their own
    NON_SUBJECT_WORDS = {
        "i", "i'm", "im", "i've", "i'd", "me", "my", "you", "your", "he", "she", "it",
        "they", "them", "him", "her", "his", "its", "their", "we", "us", "our",
        "this", "that", "these", "those", "one", "guy", "other", "the", "a", "an",
        "hi", "hello", "hey", "ok", "okay", "yes", "no", "please", "thanks", "bro", "yaar",
    }
    CONNECTORS = {"of", "the", "and", "&", "in", "on", "vs"}
    MAX_SUBJECT_WORDS = 8

    def __init__(self, keywords: Optional[dict] = None):
        """
        Initialize router with keyword sets.

        Args:
            keywords: Keyword sets keyed by category (loaded from YAML when omitted)
        """
        self.keywords = keywords or load_keywords()

    def classify(
        self,
        message: str,
        recent_turns: Optional[list[ConversationTurn]] = None,
        current_topic: Optional[str] = None
    ) -> ClassifierOutput:
        """
        Classify a message and extract entities.

        Args:
            message: Raw user message
            recent_turns: Recent conversation turns (unused by this strategy)
            current_topic: Topic carried over from the previous turn

        Returns:
            ClassifierOutput with mode, entities and resolved topic
        """
        mode = self.detect_mode(message)
        entities = self.extract_entities(message, mode)
        topic = resolve_topic(entities.primary_subject(), current_topic)
        sources = self.suggest_sources(message, mode)

        logger.info(
            f"Keyword router: mode={mode.value}, topic={topic}, "
            f"extra sources={sorted(source.value for source in sources)}"
        )

        return ClassifierOutput(
            mode=mode,
            entities=entities,
            suggested_sources=sources,
            topic=topic,
            strategy=ClassifierStrategy.KEYWORD,
        )

    def detect_mode(self, message: str) -> Mode:
        """First matching category wins: research > cinephile > game > chat."""
        message_lower = (message or "").lower()

        if contains_keyword(message_lower, self.keywords.get("research", [])):
            return Mode.RESEARCH
        if contains_keyword(message_lower, self.keywords.get("cinephile", [])):
            return Mode.CINEPHILE
        if contains_keyword(message_lower, self.keywords.get("game", [])):
            return Mode.GAME

        return Mode.CHAT

    def suggest_sources(self, message: str, mode: Mode) -> set[AdapterKind]:
        """
        Secondary domains named in the message, looked up alongside the mode's own.

        "Best racing movies and games" is cinephile by priority but still gets
        game results. Chat stays adapter-free.
        """
        if mode == Mode.CHAT:
            return set()

        message_lower = (message or "").lower()
        sources = set()
        if contains_keyword(message_lower, self.keywords.get("cinephile", [])):
            sources.add(AdapterKind.MOVIES)
        if contains_keyword(message_lower, self.keywords.get("game", [])):
            sources.add(AdapterKind.GAMES)
        if contains_keyword(message_lower, self.keywords.get("people", [])):
            sources.add(AdapterKind.PEOPLE)
        return sources

    def extract_entities(self, message: str, mode: Mode) -> Entities:
        """Place the message's subject in the slot implied by mode."""
        subject = self.extract_subject(message or "")
        if not subject:
            return Entities()

        if contains_keyword(message.lower(), self.keywords.get("people", [])):
            return Entities(person=subject)
        if mode == Mode.CINEPHILE:
            return Entities(movie=subject)
        if mode == Mode.GAME:
            return Entities(game=subject)
        return Entities(topic=subject)

    def extract_subject(self, message: str) -> Optional[str]:
        """Quoted text, then the phrase after a trigger, then a capitalized run."""
        quoted = self.QUOTED_PATTERN.search(message)
        if quoted:
            return self._clean_subject(quoted.group(1))

        trigger = self.TRIGGER_PATTERN.search(message)
        if trigger:
            subject = self._clean_subject(trigger.group(1))
            if subject:
                return subject

        return self._capitalized_run(message)

    def _clean_subject(self, phrase: str) -> Optional[str]:
        words = phrase.strip().split()
        if not words or words[0].lower().strip("'’") in self.NON_SUBJECT_WORDS - {"the", "a", "an"}:
            return None
        if all(word.lower() in self.NON_SUBJECT_WORDS for word in words):
            return None
        return " ".join(words[:self.MAX_SUBJECT_WORDS]).strip(" \"'“”")

    def _capitalized_run(self, message: str) -> Optional[str]:
        """Longest run of capitalized words that does not open a sentence."""
        runs = []
        current: list[str] = []

        def flush():
            while current and current[-1].lower() in self.CONNECTORS:
                current.pop()
            if current:
                runs.append(list(current))
            current.clear()

        for match in self.WORD_PATTERN.finditer(message):
            word = match.group(0)
            lower = word.lower()
            prefix = message[:match.start()].rstrip()
            if not prefix or prefix[-1] in ".!?":
                # Sentence-initial capitals say nothing about names
                flush()
                continue

            if word[0].isupper() and lower not in self.NON_SUBJECT_WORDS:
                current.append(word)
            elif current and (lower in self.CONNECTORS or word[0].isdigit()):
                current.append(word)
            else:
                flush()
        flush()

        if not runs:
            return None
        longest = max(runs, key=len)
        return " ".join(longest[:self.MAX_SUBJECT_WORDS])
