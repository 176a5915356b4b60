"""LLM-based router agent for automatic mode detection."""

import json
import logging
from typing import Optional

from llm.base_client import BaseLLMClient, GenerationConfig, LLMError
from memory.models import ConversationTurn
from schemas.context import Mode, AdapterKind
from schemas.responses import ClassifierOutput, ClassifierStrategy, Entities
from .router import RouterAgent, resolve_topic

logger = logging.getLogger(__name__)


def extract_json_object(text: str) -> Optional[dict]:
    """
    Return the first balanced ``{...}`` block in ``text`` decoded as a dict.

    Tolerates prose or code fences around the object. Braces inside JSON
    strings are ignored while matching.
    """
    if not text:
        return None

    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    candidate = text[start:index + 1]
                    try:
                        parsed = json.loads(candidate)
                    except json.JSONDecodeError:
                        break
                    return parsed if isinstance(parsed, dict) else None
        start = text.find("{", start + 1)

    return None


class LLMRouterAgent:
    """
    Model-assisted router.

    Asks the LLM for a JSON classification and falls back to the keyword
    router on any adapter or parse failure.
    """

    PROMPT_TEMPLATE = """You classify messages for a chat assistant that can look up movies (TMDb), games (RAWG) and the web (Serper).

## Modes
- "research": factual questions, look-ups, current events, "what is"/"who is" questions
- "cinephile": movies, TV shows, actors, directors
- "game": video games, consoles, gaming platforms
- "chat": casual conversation, feelings, jokes, advice

## APIs
- "movies": movie search or trending movies
- "people": actor/director search
- "games": game search or trending games
- "web_search": general web search

## Conversation so far
{history}

Current topic: {topic}

## Message
{message}

If the message refers back to the current topic (e.g. "he", "that one", "the other guy"), keep using the current topic.

Respond with valid JSON only:
{{
  "mode": "research" | "cinephile" | "game" | "chat",
  "entities": {{"movie": null, "game": null, "person": null, "topic": null}},
  "apis": ["movies", "people", "games", "web_search"],
  "questionType": "recommendation | factual | comparison | opinion | greeting | other"
}}"""

    API_ALIASES = {
        "movies": AdapterKind.MOVIES,
        "movie": AdapterKind.MOVIES,
        "tmdb": AdapterKind.MOVIES,
        "people": AdapterKind.PEOPLE,
        "person": AdapterKind.PEOPLE,
        "games": AdapterKind.GAMES,
        "game": AdapterKind.GAMES,
        "rawg": AdapterKind.GAMES,
        "web_search": AdapterKind.WEB_SEARCH,
        "search": AdapterKind.WEB_SEARCH,
        "web": AdapterKind.WEB_SEARCH,
        "serper": AdapterKind.WEB_SEARCH,
    }

    HISTORY_TURNS = 4

    def __init__(
        self,
        llm_client: BaseLLMClient,
        fallback: Optional[RouterAgent] = None
    ):
        """
        Initialize LLM router.

        Args:
            llm_client: LLM client used for classification
            fallback: Keyword router used when the model output is unusable
        """
        self.llm_client = llm_client
        self.fallback = fallback or RouterAgent()

    def classify(
        self,
        message: str,
        recent_turns: Optional[list[ConversationTurn]] = None,
        current_topic: Optional[str] = None
    ) -> ClassifierOutput:
        """
        Classify a message using LLM reasoning.

        Args:
            message: Raw user message
            recent_turns: Recent conversation turns, oldest first
            current_topic: Topic carried over from the previous turn

        Returns:
            ClassifierOutput (keyword-based when the model cannot be used)
        """
        prompt = self._build_prompt(message, recent_turns or [], current_topic)

        try:
            content = self.llm_client.complete(
                prompt,
                GenerationConfig(temperature=0.1, max_output_tokens=400)
            )
        except LLMError as e:
            logger.warning(f"LLM router unavailable, using keywords: {e}")
            return self.fallback.classify(message, recent_turns, current_topic)
        except Exception as e:
            logger.error(f"LLM router error: {e}")
            return self.fallback.classify(message, recent_turns, current_topic)

        parsed = extract_json_object(content)
        if parsed is None:
            logger.warning("LLM router returned no JSON object, using keywords")
            return self.fallback.classify(message, recent_turns, current_topic)

        try:
            mode = Mode(str(parsed.get("mode", "")).strip().lower())
        except ValueError:
            logger.warning(f"LLM router returned unknown mode: {parsed.get('mode')!r}")
            return self.fallback.classify(message, recent_turns, current_topic)

        entities = self._parse_entities(parsed.get("entities"))
        if entities.primary_subject() is None:
            entities = self.fallback.extract_entities(message, mode)

        suggested_sources = self._parse_apis(parsed.get("apis"))
        question_type = parsed.get("questionType")
        topic = resolve_topic(entities.primary_subject(), current_topic)

        logger.info(
            f"LLM router: mode={mode.value}, topic={topic}, "
            f"apis={sorted(source.value for source in suggested_sources)}"
        )

        return ClassifierOutput(
            mode=mode,
            entities=entities,
            suggested_sources=suggested_sources,
            question_type=str(question_type) if question_type else None,
            topic=topic,
            strategy=ClassifierStrategy.MODEL,
        )

    def _build_prompt(
        self,
        message: str,
        recent_turns: list[ConversationTurn],
        current_topic: Optional[str]
    ) -> str:
        history_lines = [
            f"{turn.role.upper()}: {turn.content}"
            for turn in recent_turns[-self.HISTORY_TURNS:]
        ]
        return self.PROMPT_TEMPLATE.format(
            history="\n".join(history_lines) if history_lines else "(none)",
            topic=current_topic or "(none)",
            message=message,
        )

    @staticmethod
    def _parse_entities(raw) -> Entities:
        if not isinstance(raw, dict):
            return Entities()

        def as_text(value) -> Optional[str]:
            if isinstance(value, str) and value.strip() and value.strip().lower() != "null":
                return value.strip()
            return None

        return Entities(
            movie=as_text(raw.get("movie")),
            game=as_text(raw.get("game")),
            person=as_text(raw.get("person")),
            topic=as_text(raw.get("topic")),
        )

    def _parse_apis(self, raw) -> set[AdapterKind]:
        if not isinstance(raw, list):
            return set()
        sources = set()
        for api in raw:
            kind = self.API_ALIASES.get(str(api).strip().lower())
            if kind:
                sources.add(kind)
        return sources
