"""
TechGear Support — Gradio UI
============================
Single-file Gradio Blocks widget. Every turn goes through ChatController,
which talks to the FastAPI backend over HTTP and streams the reply back.
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "backend"))

import gradio as gr
from settings import settings
from widget.controller import ChatController
from widget.storage import SESSION_KEY, SessionStore

MAX_INPUT_CHARS = 2000

SUGGESTED_QUESTIONS = [
    "What's your return policy?",
    "Do you ship internationally?",
    "What payment methods do you accept?",
]


# ---------------------------------------------------------------------------
# Event handlers
# ---------------------------------------------------------------------------
# Each browser tab owns its controller through gr.State; the session id is
# mirrored into browser localStorage through gr.BrowserState.
def new_controller(session_id: str = "") -> ChatController:
    return ChatController(settings.get_api_url(), SessionStore(session_id))


async def chat_handler(user_input: str, chat_history: list, controller, stored_session: str):
    """Streams (chat_history, input_box, controller, stored_session) updates while the reply arrives."""
    if controller is None:
        controller = new_controller(stored_session)

    updated = False
    if (user_input or "").strip():
        async for transcript in controller.send(user_input):
            updated = True
            yield transcript, "", controller, controller.storage.get() or ""

    if not updated:
        yield chat_history, user_input, controller, stored_session


async def restore_history(stored_session: str):
    controller = new_controller(stored_session)
    transcript = await controller.load()
    return transcript, controller, controller.storage.get() or ""


def new_chat(controller):
    if controller is not None:
        controller.reset()
    return [], "", controller, ""


# ---------------------------------------------------------------------------
# Build Gradio UI
# ---------------------------------------------------------------------------
def create_app():
    theme = gr.themes.Base(
        primary_hue=gr.themes.colors.blue,
        secondary_hue=gr.themes.colors.indigo,
        neutral_hue=gr.themes.colors.slate,
    )

    with gr.Blocks(title="TechGear Support", theme=theme, fill_height=True) as app:
        # ---- State ----
        controller_state = gr.State(None)
        stored_session = gr.BrowserState("", storage_key=SESSION_KEY)

        with gr.Row():
            gr.Markdown("## ✨ TechGear Support\nFriendly help, explained simply 🙂")
            new_chat_btn = gr.Button("↺ New Chat", scale=0)

        chatbot = gr.Chatbot(
            label="Chat",
            type="messages",
            height="70vh",
            placeholder=(
                '<div style="text-align:center;padding:3em">'
                "<h2>Welcome to TechGear Support!</h2>"
                "<p>I'm here to help answer your questions about our store, products, "
                "and policies. Ask me anything!</p></div>"
            ),
        )

        with gr.Row():
            suggestion_btns = [gr.Button(q, size="sm") for q in SUGGESTED_QUESTIONS]

        msg_input = gr.Textbox(
            placeholder="Ask about shipping, returns, or anything...",
            show_label=False,
            max_length=MAX_INPUT_CHARS,
            submit_btn=True,
        )

        gr.Markdown(
            '<p style="text-align:center;font-size:0.75em;color:#94a3b8">'
            "Press Enter to send • AI responses may contain errors</p>"
        )

        # ============ EVENT WIRING ============
        msg_input.submit(
            fn=chat_handler,
            inputs=[msg_input, chatbot, controller_state, stored_session],
            outputs=[chatbot, msg_input, controller_state, stored_session],
        )

        new_chat_btn.click(
            fn=new_chat,
            inputs=controller_state,
            outputs=[chatbot, msg_input, controller_state, stored_session],
        )

        for btn, question in zip(suggestion_btns, SUGGESTED_QUESTIONS):
            btn.click(fn=lambda q=question: q, inputs=None, outputs=msg_input)

        app.load(
            fn=restore_history,
            inputs=stored_session,
            outputs=[chatbot, controller_state, stored_session],
        )

    return app


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app = create_app()
    app.launch(
        server_name="0.0.0.0",
        server_port=7860,
        share=False,
        show_error=True,
    )
