"""Main orchestrator for the ShawnGPT chat assistant."""

import random
import threading
import uuid
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Optional, Union

from config.settings import Settings
from schemas.context import Mode
from schemas.responses import ClassifierOutput, ClassifierStrategy, ChatReply

# Data adapters
from retrieval.tmdb_provider import TMDbProvider
from retrieval.rawg_provider import RAWGProvider
from retrieval.serper_provider import SerperProvider

# LLM components
from llm.factory import create_llm_client, LLMProvider
from llm.base_client import BaseLLMClient

# Memory components
from memory.models import Conversation
from memory.store import ConversationStore, InMemoryConversationStore, PersistenceError, TurnNotSavedError
from memory.sqlite_store import SQLiteConversationStore
from memory.context_manager import ConversationState

# Agents
from agents.router import RouterAgent, resolve_topic
from agents.llm_router import LLMRouterAgent
from agents.context_aggregator import ContextAggregator
from agents.composer import ComposerAgent
from agents.llm_composer import LLMComposerAgent

logger = logging.getLogger(__name__)


class ChatOrchestrator:
    """
    Runs one message through classify, gather and synthesize, then saves the turn.

    Messages for the same conversation are serialized by a per-conversation
    lock; different conversations proceed independently.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[ConversationStore] = None,
        llm_client: Optional[BaseLLMClient] = None,
        movie_provider: Optional[TMDbProvider] = None,
        game_provider: Optional[RAWGProvider] = None,
        search_provider: Optional[SerperProvider] = None,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize orchestrator.

        Args:
            settings: Application settings
            store: Conversation store (built from settings when omitted)
            llm_client: LLM client (built from settings when omitted)
            movie_provider: TMDb adapter override
            game_provider: RAWG adapter override
            search_provider: Serper adapter override
            rng: Random source for template replies
        """
        self.settings = settings or Settings()

        self.llm_client = llm_client or self._init_llm_client()
        self.state = ConversationState(store or self._init_store())

        adapter_options = {
            "timeout": self.settings.adapter_timeout,
            "retries": self.settings.adapter_retries,
            "retry_wait": self.settings.adapter_retry_wait,
        }
        self.aggregator = ContextAggregator(
            movie_provider=movie_provider or TMDbProvider(self.settings.tmdb_api_key, **adapter_options),
            game_provider=game_provider or RAWGProvider(self.settings.rawg_api_key, **adapter_options),
            search_provider=search_provider or SerperProvider(self.settings.serper_api_key, **adapter_options),
        )

        self._init_agents(rng or random.Random(self.settings.template_seed))

        # conversation id -> [lock, holders and waiters]
        self._locks: dict[str, list] = {}
        self._locks_guard = threading.Lock()

    def _init_llm_client(self) -> Optional[BaseLLMClient]:
        """Initialize LLM client based on settings."""
        api_key = self.settings.get_llm_api_key()

        if not api_key:
            logger.warning(
                f"No API key for {self.settings.llm_provider}. "
                "LLM features will be disabled, using keyword routing and templates."
            )
            return None

        try:
            client = create_llm_client(
                provider=LLMProvider(self.settings.llm_provider),
                api_key=api_key,
                model=self.settings.llm_model,
                timeout=self.settings.llm_timeout
            )
        except Exception as e:
            logger.error(f"Failed to initialize LLM client: {e}")
            return None

        logger.info(
            f"LLM client initialized: {self.settings.llm_provider} "
            f"({client.get_model_name()})"
        )
        return client

    def _init_store(self) -> ConversationStore:
        """Initialize the conversation store named in settings."""
        if self.settings.memory_backend == "sqlite":
            logger.info(f"Memory initialized: {self.settings.db_path}")
            return SQLiteConversationStore(db_path=self.settings.db_path)
        if self.settings.memory_backend != "memory":
            raise ValueError(f"Unsupported memory backend: {self.settings.memory_backend}")
        return InMemoryConversationStore()

    def _init_agents(self, rng: random.Random):
        """Initialize agents (LLM-assisted when a client is available)."""
        self.keyword_router = RouterAgent()
        self.router = (
            LLMRouterAgent(self.llm_client, fallback=self.keyword_router)
            if self.llm_client else self.keyword_router
        )
        self.composer = LLMComposerAgent(
            llm_client=self.llm_client,
            fallback=ComposerAgent(keywords=self.keyword_router.keywords, rng=rng),
            min_reply_length=self.settings.min_reply_length,
            history_turns=self.settings.history_turns,
        )
        logger.info(f"Using {'LLM-assisted' if self.llm_client else 'rule-based'} agents")

    @contextmanager
    def _conversation_lock(self, conversation_id: str):
        """Serialize work on one conversation; the entry is dropped once nobody needs it."""
        with self._locks_guard:
            entry = self._locks.setdefault(conversation_id, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[conversation_id]

    def process_message(
        self,
        message: str,
        conversation_id: Optional[str] = None,
        explicit_mode: Optional[Union[Mode, str]] = None
    ) -> ChatReply:
        """
        Process a user message end-to-end.

        Args:
            message: User message
            conversation_id: Existing conversation ID (a new conversation is created when omitted or unknown)
            explicit_mode: Mode chosen by the user; None means automatic detection

        Returns:
            ChatReply with the reply text, mode, topic and gathered context

        Raises:
            ValueError: If explicit_mode is not a known mode
            PersistenceError: If the conversation cannot be loaded
            TurnNotSavedError: If the reply was produced but could not be saved
        """
        if explicit_mode is not None and not isinstance(explicit_mode, Mode):
            explicit_mode = Mode(str(explicit_mode).lower())
        message = message or ""
        conversation_id = conversation_id or str(uuid.uuid4())

        with self._conversation_lock(conversation_id):
            conversation = self.state.get_or_create(conversation_id)
            recent_turns = self.state.recent_turns(conversation_id, self.settings.history_turns)

            classification = self._classify(
                message, recent_turns, conversation.current_topic, explicit_mode
            )
            context = self.aggregator.gather(
                classification.mode, message, classification.suggested_sources
            )
            composed = self.composer.synthesize(
                message, context, recent_turns, classification.topic, classification.mode
            )

            reply = ChatReply(
                conversation_id=conversation_id,
                content=composed.response_text,
                mode=classification.mode,
                topic=classification.topic,
                generation=composed.generation,
                context=context,
                metadata={
                    **context.to_metadata(),
                    "mode": classification.mode.value,
                    "generation": composed.generation.value,
                    "topic": classification.topic,
                    "generated_at": datetime.now().isoformat(),
                },
            )

            self._save_exchange(conversation_id, message, reply)

        logger.info(
            f"Replied in conversation {conversation_id}: mode={reply.mode.value}, "
            f"generation={reply.generation.value}, topic={reply.topic}"
        )
        return reply

    def _classify(
        self,
        message: str,
        recent_turns: list,
        current_topic: Optional[str],
        explicit_mode: Optional[Mode]
    ) -> ClassifierOutput:
        """Automatic detection, or the user's mode with keyword-extracted entities."""
        if explicit_mode is None:
            return self.router.classify(message, recent_turns, current_topic)

        entities = self.keyword_router.extract_entities(message, explicit_mode)
        return ClassifierOutput(
            mode=explicit_mode,
            entities=entities,
            topic=resolve_topic(entities.primary_subject(), current_topic),
            strategy=ClassifierStrategy.KEYWORD,
        )

    def _save_exchange(self, conversation_id: str, message: str, reply: ChatReply):
        """Store both turns, the topic and the first-exchange title in one write."""
        try:
            self.state.record_exchange(
                conversation_id, message, reply.content, reply.metadata, reply.topic
            )
        except PersistenceError as e:
            logger.error(f"Failed to save turn for conversation {conversation_id}: {e}")
            raise TurnNotSavedError(f"Reply produced but not saved: {e}", reply=reply) from e

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        """Get a conversation with its turns."""
        return self.state.store.get_conversation(conversation_id)

    def get_conversation_history(self, conversation_id: str) -> Optional[list]:
        """Get conversation history for display."""
        conversation = self.state.store.get_conversation(conversation_id)
        if not conversation:
            return None

        return [
            {
                "role": turn.role,
                "content": turn.content,
                "timestamp": turn.created_at,
                "metadata": turn.metadata,
            }
            for turn in conversation.turns
        ]

    def list_conversations(self, limit: int = 50) -> list[Conversation]:
        """List conversations, most recently updated first."""
        return self.state.store.list_conversations(limit=limit)

    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation and its turns."""
        return self.state.store.delete_conversation(conversation_id)
