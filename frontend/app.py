import asyncio
from pathlib import Path
from typing import Optional, Tuple

import requests
import streamlit as st

from config.settings import configure_logging, settings
from creator.errors import CreatorError
from creator.gallery import GalleryStore
from creator.generation_client import GenerationClient
from creator.model import AssistantTurn, GalleryItem, Success, SystemTurn, UserTurn
from creator.session import ChatSession
from creator.utils import extension_for_content_type

PRESET_PROMPTS = [
    {
        "label": "Add Elegant Diners",
        "prompt": "Transform this restaurant photo by adding elegant, sophisticated diners enjoying their meal. Show couples and small groups in upscale attire, engaged in pleasant conversation. Warm ambient lighting, realistic photography style. The people should look natural and blend seamlessly with the existing environment.",
    },
    {
        "label": "Busy Lunch Scene",
        "prompt": "Add a vibrant lunch crowd to this restaurant space. Show business professionals and casual diners enjoying their meals. Natural daylight, lively atmosphere with realistic people in smart casual attire. Maintain the original ambiance while making it feel popular and welcoming.",
    },
    {
        "label": "Romantic Evening",
        "prompt": "Transform this into a romantic evening scene with couples enjoying intimate dinners. Soft candlelight ambiance, elegant attire, wine glasses raised. Create a warm, luxurious atmosphere perfect for date night marketing.",
    },
    {
        "label": "Group Celebration",
        "prompt": "Add a festive group celebration to this space - a birthday party or special occasion with happy guests, some raising glasses in a toast. Mixed ages, joyful expressions, celebratory atmosphere while maintaining the restaurant's authentic style.",
    },
]


def download_image(image_url: str) -> Optional[Tuple[bytes, str]]:
    """Fetch a generated image; returns (content, content type) for the download button."""
    try:
        resp = requests.get(image_url, timeout=30)
        resp.raise_for_status()
        return resp.content, resp.headers.get("Content-Type", "image/png")
    except requests.RequestException as e:
        st.warning(f"Could not fetch image for download: {e}")
        return None


@st.cache_resource
def get_gallery(path: str) -> GalleryStore:
    # one store per process: every browser session writes through it
    gallery = GalleryStore(Path(path))
    gallery.load()
    return gallery


def get_session() -> ChatSession:
    if "session" not in st.session_state:
        configure_logging()
        gallery = get_gallery(str(settings.GALLERY_PATH))
        st.session_state["session"] = ChatSession(GenerationClient(), gallery)
    return st.session_state["session"]


def run_submission(session: ChatSession, prompt: str) -> None:
    with st.chat_message("assistant"):
        with st.spinner("Creating your image... this may take 15-30 seconds"):
            try:
                asyncio.run(session.submit(prompt))
            except CreatorError as e:
                st.error(str(e))
                return
            except Exception as e:
                st.error(f"❌ Error: {e}")
    st.rerun()


def render_turn(turn) -> None:
    if isinstance(turn, SystemTurn):
        with st.chat_message("assistant", avatar="👨‍🍳"):
            st.markdown(turn.content)
    elif isinstance(turn, UserTurn):
        with st.chat_message("user"):
            if turn.image_thumbnail:
                st.image(turn.image_thumbnail, width=200)
            st.markdown(turn.prompt)
    elif isinstance(turn, AssistantTurn):
        with st.chat_message("assistant"):
            if turn.is_pending:
                st.markdown("⏳ Creating your image...")
                return
            outcome = turn.outcome
            if isinstance(outcome, Success):
                st.image(outcome.image_url, use_container_width=True)
                st.markdown(outcome.message)
                st.markdown(f"🔗 [Open original]({outcome.image_url})")
            else:
                st.error(outcome.message)


def render_gallery_item(gallery: GalleryStore, item: GalleryItem) -> None:
    st.image(item.image_url, use_container_width=True)
    st.caption(item.prompt[:120])
    st.caption(item.created_at.strftime("%Y-%m-%d %H:%M"))
    if st.button("⬇️ Prepare download", key=f"dl_prepare_{item.id}"):
        downloaded = download_image(item.image_url)
        if downloaded:
            data, content_type = downloaded
            ext = extension_for_content_type(content_type)
            st.download_button(
                "⬇️ Download",
                data=data,
                file_name=f"restaurant-ai-content_{item.created_at:%Y%m%d_%H%M%S}{ext}",
                mime=content_type.split(";", 1)[0],
                key=f"dl_{item.id}",
            )
    if st.button("🗑️ Remove", key=f"rm_{item.id}"):
        gallery.remove(item.id)
        st.rerun()


# ==========================
# Config
# ==========================
st.set_page_config(
    page_title="Restaurant Content Creator",
    page_icon="👨‍🍳",
    layout="wide",
)

st.title("👨‍🍳 Restaurant Content Creator")
st.caption("AI-powered image transformation")

session = get_session()

# ==========================
# Sidebar
# ==========================
with st.sidebar:
    st.header("⚙️ Settings")

    uploaded = st.file_uploader(
        "📷 Restaurant photo",
        type=["png", "jpg", "jpeg", "webp"],
        disabled=session.processing,
    )
    # a sent image is dropped by the session; only a new upload selects again
    if uploaded is not None and st.session_state.get("upload_id") != uploaded.file_id:
        session.select_image(uploaded.getvalue())
        st.session_state["upload_id"] = uploaded.file_id
    if session.selected_image is not None:
        st.image(session.selected_image, width=200)

    st.markdown("---")

    if st.button("🗑️ Clear chat history", use_container_width=True, disabled=session.processing):
        session.reset_conversation()
        st.rerun()

    num_requests = len([t for t in session.log if isinstance(t, UserTurn)])
    st.markdown(f"**💬 Requests:** {num_requests}")
    st.markdown(f"**🖼️ Saved images:** {len(session.gallery)}")

    st.markdown("---")
    st.write("🔗 Webhook:", session.client.webhook_url)

chat_tab, gallery_tab = st.tabs(["💬 Chat", "🖼️ Gallery"])

# ==========================
# Chat
# ==========================
with chat_tab:
    for turn in session.log:
        render_turn(turn)

    if not session.processing:
        cols = st.columns(len(PRESET_PROMPTS))
        for i, (col, preset) in enumerate(zip(cols, PRESET_PROMPTS)):
            with col:
                if st.button(f"✨ {preset['label']}", key=f"preset_{i}", use_container_width=True):
                    if session.selected_image is not None:
                        run_submission(session, preset["prompt"])
                    else:
                        # no photo yet: the preset becomes the draft prompt
                        st.session_state["prompt_text"] = preset["prompt"]
                        st.rerun()

    placeholder = (
        "Describe how you want to transform this image..."
        if session.selected_image is not None
        else "First, upload a photo of your restaurant..."
    )
    with st.form("prompt_form", clear_on_submit=True):
        user_prompt = st.text_area(
            "💭 Prompt", key="prompt_text", placeholder=placeholder, disabled=session.processing
        )
        sent = st.form_submit_button("Send", disabled=session.processing)
    if sent and user_prompt.strip():
        run_submission(session, user_prompt)

# ==========================
# Gallery
# ==========================
with gallery_tab:
    items = session.gallery.items
    if not items:
        st.info("No images yet. Successful transformations are saved here.")
    else:
        confirm = st.checkbox("I want to delete every image in the gallery")
        if st.button("🗑️ Clear gallery", disabled=not confirm):
            session.gallery.clear()
            st.rerun()

        cols = st.columns(3)
        for i, item in enumerate(items):
            with cols[i % 3]:
                render_gallery_item(session.gallery, item)
