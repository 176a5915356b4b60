"""Tests for Router Agent."""

import pytest
from agents.router import RouterAgent, resolve_topic, load_keywords, contains_keyword
from schemas.context import Mode, AdapterKind
from schemas.responses import ClassifierStrategy


class TestRouterAgent:
    """Test Router Agent keyword classification."""

    def setup_method(self):
        """Set up test fixtures."""
        self.router = RouterAgent()

    def test_research_classification(self):
        """Test research keywords win."""
        messages = [
            "search for the latest Mars rover news",
            "Can you look up the population of Tokyo?",
            "tell me about quantum computing",
        ]

        for message in messages:
            assert self.router.detect_mode(message) == Mode.RESEARCH

    def test_research_beats_cinephile(self):
        """Test research has priority over movie keywords."""
        result = self.router.classify("who is the director of Inception")

        assert result.mode == Mode.RESEARCH

    def test_cinephile_classification(self):
        """Test movie and TV keywords."""
        messages = [
            "Recommend a good movie for tonight",
            "Any Bollywood films worth watching?",
            "best tv series of the year",
        ]

        for message in messages:
            assert self.router.detect_mode(message) == Mode.CINEPHILE

    def test_cinephile_beats_game(self):
        """Test cinephile has priority over game keywords."""
        assert self.router.detect_mode("movie about a video game") == Mode.CINEPHILE

    def test_game_classification(self):
        """Test gaming keywords."""
        messages = [
            "What should I play on my PS5?",
            "best Nintendo games",
            "Steam sale recommendations",
        ]

        for message in messages:
            assert self.router.detect_mode(message) == Mode.GAME

    def test_chat_default(self):
        """Test messages without keywords fall to chat."""
        messages = ["hello yaar", "I am feeling sad today", "tell me a joke", ""]

        for message in messages:
            assert self.router.detect_mode(message) == Mode.CHAT

    def test_keywords_match_word_starts_only(self):
        """Test short keywords do not match inside other words."""
        assert self.router.detect_mode("we rode an atv downhill") == Mode.CHAT
        assert self.router.detect_mode("Watching movies tonight") == Mode.CINEPHILE

    def test_classify_output_shape(self):
        """Test keyword classification output."""
        result = self.router.classify("Tell me a joke")

        assert result.strategy == ClassifierStrategy.KEYWORD
        assert result.suggested_sources == set()
        assert result.question_type is None

    def test_secondary_domains_suggested(self):
        """Test other domains named in the message are looked up too."""
        result = self.router.classify("best racing movies and games")

        assert result.mode == Mode.CINEPHILE
        assert result.suggested_sources == {AdapterKind.MOVIES, AdapterKind.GAMES}

    def test_people_keyword_suggests_people(self):
        """Test a people keyword adds a people lookup in research mode."""
        sources = self.router.suggest_sources("search for the director of Dune", Mode.RESEARCH)

        assert sources == {AdapterKind.MOVIES, AdapterKind.PEOPLE}

    def test_chat_suggests_nothing(self):
        """Test chat never fans out to adapters."""
        assert self.router.suggest_sources("you're a star", Mode.CHAT) == set()

    def test_movie_entity_extraction(self):
        """Test subject lands in the movie slot for cinephile messages."""
        result = self.router.classify("Is the movie Oppenheimer worth watching?")

        assert result.mode == Mode.CINEPHILE
        assert result.entities.movie == "Oppenheimer"
        assert result.topic == "Oppenheimer"

    def test_game_entity_extraction(self):
        """Test subject lands in the game slot for game messages."""
        result = self.router.classify("Is the game Elden Ring hard?")

        assert result.mode == Mode.GAME
        assert result.entities.game == "Elden Ring"

    def test_person_entity_extraction(self):
        """Test people keywords put the subject in the person slot."""
        result = self.router.classify("Which films has the actor Cillian Murphy done?")

        assert result.entities.person == "Cillian Murphy"

    def test_trigger_phrase_extraction(self):
        """Test the phrase after a trigger is the subject."""
        result = self.router.classify("tell me about black holes")

        assert result.mode == Mode.RESEARCH
        assert result.entities.topic == "black holes"

    def test_quoted_subject_extraction(self):
        """Test quoted text is the subject."""
        assert self.router.extract_subject('have you seen "the grand budapest hotel"') == "the grand budapest hotel"

    def test_pronoun_is_not_a_subject(self):
        """Test pronoun-only follow-ups carry no subject."""
        assert self.router.extract_subject("who directed it?") is None
        assert self.router.extract_subject("what about the other guy?") is None

    def test_sentence_initial_capital_ignored(self):
        """Test the first word of a sentence is not a name."""
        assert self.router.extract_subject("Recommend something fun") is None

    def test_topic_kept_on_follow_up(self):
        """Test a follow-up without a subject keeps the current topic."""
        result = self.router.classify("who directed it?", current_topic="Oppenheimer")

        assert result.topic == "Oppenheimer"

    def test_new_subject_replaces_topic(self):
        """Test a different subject replaces the current topic."""
        result = self.router.classify("Is Barbie a good movie?", current_topic="Oppenheimer")

        assert result.topic == "Barbie"


class TestResolveTopic:
    """Test topic continuity rule."""

    def test_no_subject_keeps_topic(self):
        """Test missing subject keeps the current topic."""
        assert resolve_topic(None, "Oppenheimer") == "Oppenheimer"
        assert resolve_topic("  ", "Oppenheimer") == "Oppenheimer"

    def test_near_duplicate_keeps_existing_string(self):
        """Test case or small spelling differences keep the stored topic."""
        assert resolve_topic("oppenheimer", "Oppenheimer") == "Oppenheimer"
        assert resolve_topic("Oppenhiemer", "Oppenheimer") == "Oppenheimer"

    def test_different_subject_wins(self):
        """Test a different subject replaces the topic."""
        assert resolve_topic("Barbie", "Oppenheimer") == "Barbie"

    def test_first_subject_sets_topic(self):
        """Test a subject with no current topic becomes the topic."""
        assert resolve_topic("Elden Ring", None) == "Elden Ring"

    def test_no_subject_no_topic(self):
        """Test nothing in, nothing out."""
        assert resolve_topic(None, None) is None


class TestKeywordData:
    """Test canonical keyword sets."""

    def test_keyword_sets_present(self):
        """Test every category is loaded and lowercased."""
        keywords = load_keywords()

        for category in ("research", "cinephile", "game", "people", "trending", "interrogatives"):
            assert keywords[category]
            assert all(kw == kw.lower() for kw in keywords[category])

    @pytest.mark.parametrize("text,expected", [
        ("trending movies", True),
        ("most popular games", True),
        ("populated areas", False),
        ("nothing here", False),
    ])
    def test_contains_keyword(self, text, expected):
        """Test word-start keyword matching."""
        assert contains_keyword(text, ["trending", "popular"]) is expected
