"""Tests for LLM Composer Agent."""

import random
from unittest.mock import Mock

from agents.composer import ComposerAgent
from agents.llm_composer import LLMComposerAgent, normalize_question
from llm.base_client import LLMError
from memory.models import ConversationTurn
from schemas.context import Mode, ContextBag
from schemas.evidence import MovieSummary, PersonSummary, GameSummary, SearchHit
from schemas.responses import Generation

INTERROGATIVES = ["who", "what", "is", "compare", "better"]


class TestNormalizeQuestion:
    """Test question-mark normalization."""

    def test_interrogative_gets_question_mark(self):
        """Test question words without punctuation become questions."""
        assert normalize_question("who directed Oppenheimer", INTERROGATIVES) == "who directed Oppenheimer?"
        assert normalize_question("Compare Halo and Destiny", INTERROGATIVES) == "Compare Halo and Destiny?"

    def test_existing_punctuation_kept(self):
        """Test terminal punctuation is left alone."""
        assert normalize_question("what is this!", INTERROGATIVES) == "what is this!"
        assert normalize_question("who is he?", INTERROGATIVES) == "who is he?"

    def test_statements_unchanged(self):
        """Test non-questions are left alone."""
        assert normalize_question("recommend a movie", INTERROGATIVES) == "recommend a movie"
        assert normalize_question("  ", INTERROGATIVES) == ""


class TestLLMComposerAgent:
    """Test model-assisted synthesis with template fallback."""

    def setup_method(self):
        """Set up test fixtures."""
        self.llm_client = Mock()
        self.fallback = ComposerAgent(rng=random.Random(1))
        self.composer = LLMComposerAgent(self.llm_client, fallback=self.fallback)
        self.context = ContextBag(movies=[
            MovieSummary(title="Oppenheimer", release_date="2023-07-19", vote_average=8.1,
                         overview="The story of J. Robert Oppenheimer.")
        ])

    def test_model_reply_used_verbatim(self):
        """Test a good model reply is returned as is."""
        reply = "Arre yaar, Oppenheimer is a must watch! Nolan at his best."
        self.llm_client.complete.return_value = reply

        output = self.composer.synthesize("Is Oppenheimer good", self.context, [], None, Mode.CINEPHILE)

        assert output.generation == Generation.MODEL
        assert output.response_text == reply
        self.llm_client.complete.assert_called_once()

    def test_echoed_labels_stripped(self):
        """Test speaker labels echoed by the model are removed."""
        self.llm_client.complete.return_value = "ShawnGPT: Assistant: Bilkul yaar, watch it tonight!"

        output = self.composer.synthesize("should I watch it", self.context, [], None, Mode.CINEPHILE)

        assert output.response_text == "Bilkul yaar, watch it tonight!"

    def test_llm_error_falls_back(self):
        """Test adapter failure switches to templates."""
        self.llm_client.complete.side_effect = LLMError("no candidates")

        output = self.composer.synthesize("oppenheimer movie", self.context, [], None, Mode.CINEPHILE)

        assert output.generation == Generation.FALLBACK
        assert "**Oppenheimer** (2023)" in output.response_text

    def test_unexpected_error_falls_back(self):
        """Test any exception switches to templates."""
        self.llm_client.complete.side_effect = RuntimeError("boom")

        output = self.composer.synthesize("hello", ContextBag(), [], None, Mode.CHAT)

        assert output.generation == Generation.FALLBACK
        assert output.response_text.strip()

    def test_short_reply_falls_back(self):
        """Test suspiciously short output switches to templates."""
        self.llm_client.complete.return_value = "ok"

        output = self.composer.synthesize("search mars", ContextBag(), [], None, Mode.RESEARCH)

        assert output.generation == Generation.FALLBACK
        assert output.response_text == self.fallback.templates["research"]["empty"]

    def test_label_only_reply_falls_back(self):
        """Test a reply that is only a label counts as empty."""
        self.llm_client.complete.return_value = "Reply:   "

        output = self.composer.synthesize("hello", ContextBag(), [], None, Mode.CHAT)

        assert output.generation == Generation.FALLBACK

    def test_no_client_uses_templates(self):
        """Test templates are used when no model is configured."""
        composer = LLMComposerAgent(None, fallback=self.fallback)

        output = composer.synthesize("oppenheimer movie", self.context, [], None, Mode.CINEPHILE)

        assert output.generation == Generation.FALLBACK
        assert "Must watch yaar!" in output.response_text

    def test_all_empty_context_never_empty_reply(self):
        """Test every mode yields text with an empty bag and a failing model."""
        self.llm_client.complete.side_effect = LLMError("down")

        for mode in Mode:
            output = self.composer.synthesize("", ContextBag(), [], None, mode)
            assert output.response_text.strip()

    def test_prompt_contents(self):
        """Test persona, context, topic, history and message reach the prompt."""
        self.llm_client.complete.return_value = "Christopher Nolan directed it, yaar!"
        turns = [
            ConversationTurn(turn_id=1, role="user", content="Tell me about Oppenheimer"),
            ConversationTurn(turn_id=2, role="assistant", content="It's a 2023 biopic."),
        ]

        self.composer.synthesize("who directed it", self.context, turns, "Oppenheimer", Mode.CINEPHILE)

        prompt = self.llm_client.complete.call_args[0][0]
        assert "ShawnGPT" in prompt
        assert "Oppenheimer (2023), rated 8.1/10" in prompt
        assert "## Current topic\nOppenheimer" in prompt
        assert "User: Tell me about Oppenheimer" in prompt
        assert "ShawnGPT: It's a 2023 biopic." in prompt
        assert prompt.rstrip().endswith("User: who directed it?\nShawnGPT:")

    def test_prompt_caps_context(self):
        """Test each context list is capped in the prompt."""
        self.llm_client.complete.return_value = "Here are some picks for you, dost!"
        context = ContextBag(
            movies=[MovieSummary(title=f"Movie {i}", vote_average=7) for i in range(8)],
            people=[PersonSummary(name=f"Person {i}") for i in range(7)],
            games=[GameSummary(name=f"Game {i}", rating=4) for i in range(8)],
            search_results=[SearchHit(title=f"Hit {i}", link=f"https://example.com/{i}") for i in range(7)],
        )

        self.composer.synthesize("recommend stuff", context, [], None, Mode.CHAT)

        prompt = self.llm_client.complete.call_args[0][0]
        assert "Movie 5" in prompt and "Movie 6" not in prompt
        assert "Person 4" in prompt and "Person 5" not in prompt
        assert "Game 5" in prompt and "Game 6" not in prompt
        assert "Hit 4" in prompt and "Hit 5" not in prompt

    def test_prompt_history_window(self):
        """Test only the last six turns are included."""
        self.llm_client.complete.return_value = "Sure thing, let's keep chatting yaar!"
        turns = [
            ConversationTurn(turn_id=i, role="user" if i % 2 else "assistant", content=f"message number {i}")
            for i in range(1, 11)
        ]

        self.composer.synthesize("and then", ContextBag(), turns, None, Mode.CHAT)

        prompt = self.llm_client.complete.call_args[0][0]
        assert "message number 4" not in prompt
        assert "message number 5" in prompt
        assert "message number 10" in prompt

    def test_generation_config_defaults(self):
        """Test the default sampling options are sent."""
        self.llm_client.complete.return_value = "A perfectly reasonable reply here."

        self.composer.synthesize("hello", ContextBag(), [], None, Mode.CHAT)

        config = self.llm_client.complete.call_args[0][1]
        assert config.temperature == 0.8
        assert config.top_k == 40
        assert config.top_p == 0.95
        assert config.max_output_tokens == 300
