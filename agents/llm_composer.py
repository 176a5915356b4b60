"""LLM-based composer agent for persona-aware reply generation."""

import logging
import re
from typing import Optional, List

from llm.base_client import BaseLLMClient, GenerationConfig, LLMError
from memory.models import ConversationTurn
from schemas.context import Mode, ContextBag
from schemas.responses import ComposerOutput, Generation
from .composer import ComposerAgent
from .router import load_keywords

logger = logging.getLogger(__name__)


def normalize_question(message: str, interrogatives: list[str]) -> str:
    """Append a question mark to an unpunctuated message that opens with a question word."""
    text = (message or "").strip()
    if not text or text[-1] in ".?!":
        return text
    first_word = text.split()[0].lower().strip(",:;")
    if first_word in interrogatives:
        return text + "?"
    return text


class LLMComposerAgent:
    """
    Model-assisted reply composer.

    Makes one completion call per message. Anything unusable (adapter failure,
    empty or very short output) is replaced by the template composer's reply,
    so ``synthesize`` always returns a non-empty reply.
    """

    MODE_INSTRUCTIONS = {
        Mode.RESEARCH: "You are in research mode: answer from the web results below and mention their sources.",
        Mode.CINEPHILE: "You are in cinephile mode: talk movies like a film-buff friend, using the movie and people data below.",
        Mode.GAME: "You are in game mode: talk games like a gamer friend, using the game data below.",
        Mode.CHAT: "You are in chat mode: keep it casual, warm and a little funny.",
    }

    # Per-field caps on serialized context
    MAX_MOVIES = 6
    MAX_PEOPLE = 5
    MAX_GAMES = 6
    MAX_RESULTS = 5
    MAX_OVERVIEW_CHARS = 300

    ECHOED_LABEL = re.compile(r"^\s*(?:assistant|shawngpt|reply)\s*:\s*", re.IGNORECASE)

    def __init__(
        self,
        llm_client: Optional[BaseLLMClient] = None,
        fallback: Optional[ComposerAgent] = None,
        min_reply_length: int = 20,
        history_turns: int = 6,
        generation_config: Optional[GenerationConfig] = None
    ):
        """
        Initialize LLM composer.

        Args:
            llm_client: LLM client for generation (templates only when None)
            fallback: Template composer used when the model cannot be used
            min_reply_length: Shorter model replies count as failures
            history_turns: Number of recent turns included in the prompt
            generation_config: Sampling options for the completion
        """
        self.llm_client = llm_client
        self.fallback = fallback or ComposerAgent()
        self.min_reply_length = min_reply_length
        self.history_turns = history_turns
        self.generation_config = generation_config or GenerationConfig()
        self.persona = self.fallback.templates.get("persona", "")
        self.interrogatives = self.fallback.keywords.get("interrogatives") or load_keywords().get("interrogatives", [])

    def synthesize(
        self,
        message: str,
        context: ContextBag,
        recent_turns: Optional[List[ConversationTurn]] = None,
        current_topic: Optional[str] = None,
        mode: Mode = Mode.CHAT
    ) -> ComposerOutput:
        """
        Produce the reply text for one message.

        Args:
            message: Raw user message
            context: Gathered context
            recent_turns: Recent conversation turns, oldest first
            current_topic: Current conversation topic
            mode: Classified mode

        Returns:
            ComposerOutput marked MODEL or FALLBACK
        """
        if self.llm_client is None:
            return self.fallback.compose(message, context, mode)

        prompt = self.build_prompt(message, context, recent_turns or [], current_topic, mode)

        try:
            content = self.llm_client.complete(prompt, self.generation_config)
        except LLMError as e:
            logger.warning(f"LLM composer unavailable, using templates: {e}")
            return self.fallback.compose(message, context, mode)
        except Exception as e:
            logger.error(f"LLM composer error: {e}")
            return self.fallback.compose(message, context, mode)

        reply = self._clean_reply(content)
        if len(reply) < self.min_reply_length:
            logger.warning(f"LLM reply too short ({len(reply)} chars), using templates")
            return self.fallback.compose(message, context, mode)

        return ComposerOutput(response_text=reply, generation=Generation.MODEL)

    def build_prompt(
        self,
        message: str,
        context: ContextBag,
        recent_turns: List[ConversationTurn],
        current_topic: Optional[str],
        mode: Mode
    ) -> str:
        """Assemble persona, context, topic, history and the message into one prompt."""
        parts = [self.persona, self.MODE_INSTRUCTIONS[mode]]

        context_text = self._format_context(context)
        if context_text:
            parts.append(f"## Reference data\n{context_text}")

        if current_topic:
            parts.append(
                f"## Current topic\n{current_topic}\n"
                "If the user says \"he\", \"she\", \"it\" or \"that one\", they mean this topic."
            )

        history = recent_turns[-self.history_turns:] if self.history_turns > 0 else []
        if history:
            lines = [
                f"{'User' if turn.role == 'user' else 'ShawnGPT'}: {turn.content}"
                for turn in history
            ]
            parts.append("## Conversation so far\n" + "\n".join(lines))

        parts.append(f"User: {normalize_question(message, self.interrogatives)}\nShawnGPT:")

        return "\n\n".join(part for part in parts if part)

    def _format_context(self, context: ContextBag) -> str:
        sections = []

        if context.movies:
            lines = []
            for movie in context.movies[:self.MAX_MOVIES]:
                line = f"- {movie.title} ({movie.year or 'N/A'}), rated {movie.vote_average:.1f}/10"
                if movie.overview:
                    line += f": {movie.overview[:self.MAX_OVERVIEW_CHARS]}"
                lines.append(line)
            sections.append("Movies:\n" + "\n".join(lines))

        if context.people:
            lines = []
            for person in context.people[:self.MAX_PEOPLE]:
                line = f"- {person.name} ({person.known_for_department or 'Acting'})"
                if person.known_for:
                    line += f", known for {', '.join(person.known_for[:3])}"
                lines.append(line)
            sections.append("People:\n" + "\n".join(lines))

        if context.games:
            lines = []
            for game in context.games[:self.MAX_GAMES]:
                line = f"- {game.name} (released {game.released or 'TBA'}), rated {game.rating:.1f}/5"
                if game.platforms:
                    line += f", on {', '.join(game.platforms[:3])}"
                if game.genres:
                    line += f", genres {', '.join(game.genres[:3])}"
                lines.append(line)
            sections.append("Games:\n" + "\n".join(lines))

        if context.search_results:
            lines = [
                f"- {hit.title} ({hit.source or hit.link}): {hit.snippet}"
                for hit in context.search_results[:self.MAX_RESULTS]
            ]
            sections.append("Web results:\n" + "\n".join(lines))

        return "\n\n".join(sections)

    def _clean_reply(self, content: Optional[str]) -> str:
        """Strip whitespace and any speaker label the model echoed back."""
        reply = (content or "").strip()
        previous = None
        while reply != previous:
            previous = reply
            reply = self.ECHOED_LABEL.sub("", reply, count=1).strip()
        return reply
