"""NiceGUI chat interface with streamed assistant replies."""

import logging
import os

from nicegui import ui

from sonic_chat.client.consumer import API_BASE_URL, StreamConsumer
from sonic_chat.client.conversation import ClientTurn, Conversation
from sonic_chat.ui.segments import split_code_blocks

logger = logging.getLogger(__name__)

MARKDOWN_EXTRAS = [
    "fenced-code-blocks",
    "tables",
    "code-friendly",
    "target-blank-links",
]

CUSTOM_CSS = """
<style>
    body { background: #030712; min-height: 100vh; }

    .app-container {
        background: #111827;
        border: 1px solid #1f2937;
        border-radius: 12px;
        overflow: hidden;
    }

    .message-user { color: #e5e7eb; }
    .message-assistant { color: #d1d5db; }
    .message-body table { border-collapse: collapse; margin: 0.5rem 0; }
    .message-body th, .message-body td {
        border: 1px solid #374151;
        padding: 0.25rem 0.75rem;
    }
    .message-body a { color: #60a5fa; }
    .code-language {
        font-size: 0.75rem;
        color: #9ca3af;
        text-transform: lowercase;
    }
</style>
"""


@ui.page("/")
def chat_page() -> None:
    """Main chat page. Conversation state lives for this page only."""
    ui.add_head_html(CUSTOM_CSS)
    conversation = Conversation()
    bodies: dict[int, ui.column] = {}

    messages_container: ui.column
    scroll_area: ui.scroll_area
    input_field: ui.input
    send_btn: ui.button

    def render_body(content: str) -> None:
        for segment in split_code_blocks(content):
            if segment.kind == "code":
                with ui.column().classes("w-full gap-0"):
                    language = segment.language or "text"
                    ui.label(language).classes("code-language")
                    ui.code(segment.text, language=language).classes("w-full")
            else:
                ui.markdown(segment.text, extras=MARKDOWN_EXTRAS).classes("w-full")

    def render_message(turn: ClientTurn) -> None:
        is_user = turn.role == "user"
        with ui.row().classes("w-full gap-3 items-start no-wrap"):
            ui.avatar(
                "person" if is_user else "smart_toy",
                color="grey-9",
                text_color="grey-3",
                size="md",
            )
            with ui.column().classes("gap-1 flex-grow"):
                ui.label("You" if is_user else "AI").classes("font-medium text-gray-200")
                css = "message-user" if is_user else "message-assistant"
                with ui.column().classes(f"w-full gap-2 message-body {css}") as body:
                    render_body(turn.content)
                bodies[turn.id] = body
                if turn.is_typing:
                    ui.spinner("dots", size="md", color="grey-5")

    def scroll_to_bottom() -> None:
        scroll_area.scroll_to(percent=1.0)

    def refresh_messages() -> None:
        bodies.clear()
        messages_container.clear()
        with messages_container:
            for turn in conversation:
                render_message(turn)
        scroll_to_bottom()

    def on_update(updated: Conversation) -> None:
        typing = updated.typing_turn()
        if typing is None or typing.id not in bodies:
            refresh_messages()
            return
        body = bodies[typing.id]
        body.clear()
        with body:
            render_body(typing.content)
        scroll_to_bottom()

    async def send_message() -> None:
        text = input_field.value.strip()
        if not text or conversation.typing_turn() is not None:
            return

        input_field.value = ""
        send_btn.disable()

        consumer = StreamConsumer(
            conversation,
            base_url=API_BASE_URL,
            on_update=on_update,
        )
        try:
            result = await consumer.send(
                [
                    ClientTurn(id=Conversation.next_id(), role="user", content=text),
                    ClientTurn(
                        id=Conversation.next_id(),
                        role="assistant",
                        content="",
                        is_typing=True,
                    ),
                ]
            )
        finally:
            send_btn.enable()

        if result.error:
            ui.notify(f"Reply failed: {result.error}", type="negative")

    def new_chat() -> None:
        if conversation.typing_turn() is not None:
            return
        conversation.clear()
        refresh_messages()

    # === UI Layout ===
    with ui.column().classes("w-full max-w-3xl mx-auto app-container p-0").style(
        "height: calc(100vh - 2rem)"
    ):
        with ui.row().classes("w-full px-5 py-4 items-center justify-between border-b"):
            ui.label("ChatGPT Clone").classes("text-xl font-semibold text-gray-100")
            ui.button(icon="add", on_click=new_chat).props("flat round color=white")

        with ui.scroll_area().classes("flex-grow w-full") as scroll_area:
            messages_container = ui.column().classes("w-full gap-6 p-4")
            refresh_messages()

        with ui.row().classes("w-full p-4 gap-2 items-center no-wrap border-t"):
            input_field = (
                ui.input(placeholder="Type your message...")
                .props("dark outlined dense")
                .classes("flex-grow")
                .on("keydown.enter", send_message)
            )
            send_btn = ui.button("Send", on_click=send_message).props("color=primary")


def main() -> None:
    ui.run(
        title="Sonic Chat",
        port=int(os.getenv("UI_PORT", "8080")),
        reload=False,
        dark=True,
    )


if __name__ == "__main__":
    main()
