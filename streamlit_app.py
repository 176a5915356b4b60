"""ShawnGPT - Streamlit App with Chat UI."""

import os
import streamlit as st
from config.settings import Settings
from schemas.context import Mode
from memory.store import PersistenceError, TurnNotSavedError
from orchestrator import ChatOrchestrator


st.set_page_config(
    page_title="ShawnGPT",
    page_icon="😎",
    layout="wide"
)

MODE_LABELS = {
    "auto": "Auto detect",
    Mode.CHAT.value: "💬 Chat",
    Mode.CINEPHILE.value: "🎬 Cinephile",
    Mode.GAME.value: "🎮 Game",
    Mode.RESEARCH.value: "🔍 Research",
}

# Initialize session state
if "conversation_id" not in st.session_state:
    st.session_state.conversation_id = None

if "messages" not in st.session_state:
    st.session_state.messages = []

if "orchestrator" not in st.session_state:
    st.session_state.orchestrator = None


def reset_conversation():
    """Start a fresh conversation."""
    st.session_state.conversation_id = None
    st.session_state.messages = []


def load_conversation(conversation_id: str):
    """Load an existing conversation into the chat view."""
    history = st.session_state.orchestrator.get_conversation_history(conversation_id) or []
    st.session_state.conversation_id = conversation_id
    st.session_state.messages = [
        {"role": turn["role"], "content": turn["content"], "metadata": turn["metadata"]}
        for turn in history
    ]


def get_orchestrator(settings: Settings) -> ChatOrchestrator:
    """Get or create orchestrator instance; sidebar changes rebuild it."""
    current = st.session_state.orchestrator
    if current is None or current.settings != settings:
        st.session_state.orchestrator = ChatOrchestrator(settings=settings)
    return st.session_state.orchestrator


def render_context(metadata: dict):
    """Show the movies, games and sources behind an assistant reply."""
    if not metadata:
        return

    movies = metadata.get("movies") or []
    games = metadata.get("games") or []
    sources = metadata.get("sources") or []

    if movies:
        with st.expander(f"Movies ({len(movies)})"):
            for movie in movies:
                year = (movie.get("release_date") or "")[:4] or "N/A"
                st.markdown(f"- **{movie['title']}** ({year}) ⭐ {movie.get('vote_average', 0):.1f}/10")
    if games:
        with st.expander(f"Games ({len(games)})"):
            for game in games:
                st.markdown(f"- **{game['name']}** ⭐ {game.get('rating', 0):.1f}/5")
    if sources:
        with st.expander(f"Sources ({len(sources)})"):
            for hit in sources:
                st.markdown(f"- [{hit['title']}]({hit['link']}) ({hit.get('source', '')})")


# Sidebar configuration
st.sidebar.header("Configuration")

llm_provider = st.sidebar.selectbox(
    "LLM Provider",
    options=["gemini", "openai", "anthropic"],
    index=0,
    help="Model used for mode detection and replies"
)

llm_api_key = st.sidebar.text_input(
    f"{llm_provider.title()} API Key",
    value=os.environ.get(f"{llm_provider.upper()}_API_KEY", ""),
    type="password",
    help="Leave empty to use keyword routing and template replies"
)

mode_option = st.sidebar.selectbox(
    "Mode",
    options=list(MODE_LABELS),
    format_func=MODE_LABELS.get,
    index=0,
    help="Auto detect picks a mode for every message"
)

with st.sidebar.expander("Advanced Settings"):
    db_path = st.text_input(
        "Conversation database",
        value="data/conversations.db",
        help="SQLite file for saved conversations"
    )
    show_debug = st.checkbox("Show debug info", value=False)

settings = Settings(
    llm_provider=llm_provider,
    **{f"{llm_provider}_api_key": llm_api_key or None},
    memory_backend="sqlite",
    db_path=db_path,
    verbose=show_debug,
)
orchestrator = get_orchestrator(settings)

st.sidebar.markdown("---")

if st.sidebar.button("New Chat", type="primary"):
    reset_conversation()
    st.rerun()

st.sidebar.subheader("Conversations")
for conversation in orchestrator.list_conversations(limit=20):
    is_current = conversation.conversation_id == st.session_state.conversation_id
    col_open, col_delete = st.sidebar.columns([5, 1])
    if col_open.button(
        ("▶ " if is_current else "") + conversation.title,
        key=f"open-{conversation.conversation_id}",
        use_container_width=True
    ):
        load_conversation(conversation.conversation_id)
        st.rerun()
    if col_delete.button("🗑", key=f"delete-{conversation.conversation_id}"):
        orchestrator.delete_conversation(conversation.conversation_id)
        if is_current:
            reset_conversation()
        st.rerun()

# Main content
st.title("ShawnGPT")
st.markdown("Your Hinglish buddy for movies, games, web research and random gupshup")

# Display chat messages
for message in st.session_state.messages:
    with st.chat_message(message["role"]):
        st.markdown(message["content"])
        if message["role"] == "assistant":
            render_context(message.get("metadata"))

# Chat input
if prompt := st.chat_input("Kya chal raha hai? Ask me anything..."):
    st.session_state.messages.append({"role": "user", "content": prompt})

    with st.chat_message("user"):
        st.markdown(prompt)

    with st.chat_message("assistant"):
        with st.spinner("Soch raha hoon..."):
            explicit_mode = None if mode_option == "auto" else Mode(mode_option)
            reply = None
            try:
                reply = orchestrator.process_message(
                    prompt,
                    conversation_id=st.session_state.conversation_id,
                    explicit_mode=explicit_mode
                )
            except TurnNotSavedError as e:
                st.warning(f"This reply could not be saved: {e}")
                reply = e.reply
            except PersistenceError as e:
                st.error(f"Error processing message: {e}")
                if show_debug:
                    import traceback
                    st.code(traceback.format_exc())

        if reply is not None:
            st.caption(MODE_LABELS[reply.mode.value])
            st.markdown(reply.content)
            render_context(reply.metadata)
            if show_debug:
                llm_status = "Enabled" if orchestrator.llm_client else "Disabled (fallback mode)"
                st.info(f"LLM: {llm_status} | generation: {reply.generation.value} | topic: {reply.topic}")

            st.session_state.conversation_id = reply.conversation_id
            st.session_state.messages.append(
                {"role": "assistant", "content": reply.content, "metadata": reply.metadata}
            )

# Welcome message if no messages
if not st.session_state.messages:
    st.markdown("""
    ### Namaste!

    I'm ShawnGPT. I can dig up movies, games and web results, or just chat.

    **Try asking:**
    - "Recommend some trending movies"
    - "Tell me about Elden Ring game"
    - "What is the latest news on the Mars mission?"
    - "Tell me a joke yaar"

    **Tips:**
    - Leave the mode on Auto detect, or pin one in the sidebar
    - Follow-up questions remember the topic ("who directed it?")
    """)

# Footer
st.sidebar.markdown("---")
st.sidebar.markdown("Built with Streamlit")
