"""Starts Sonic Chat.

By default the relay API and the chat page share one uvicorn server. With
RUN_MODE=separate they run as two processes and the page reaches the relay
over HTTP at API_BASE_URL.
"""

import logging
import os
import sys

from dotenv import load_dotenv

# relay config and the consumer read the environment at import time
load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

HOST = os.getenv("HOST", "0.0.0.0")
API_PORT = int(os.getenv("PORT", "8000"))
UI_PORT = int(os.getenv("UI_PORT", "8080"))


def run_integrated() -> None:
    """Serve /api/chat, /health and the chat page from one process."""
    import uvicorn
    from nicegui import ui

    from sonic_chat.api.app import create_app
    from sonic_chat.ui.chat_page import chat_page  # noqa: F401 - registers "/"

    app = create_app()
    ui.run_with(
        app,
        title="Sonic Chat",
        dark=True,
        storage_secret=os.getenv("NICEGUI_STORAGE_SECRET", "sonic-chat-secret"),
    )

    logger.info(f"Relay and chat page on http://localhost:{API_PORT}/")
    uvicorn.run(
        app,
        host=HOST,
        port=API_PORT,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


def run_separate() -> None:
    """Run the relay and the chat page as child processes until one exits."""
    import subprocess
    import time

    logger.info(f"Relay on http://localhost:{API_PORT}, chat page on http://localhost:{UI_PORT}")

    relay_proc = subprocess.Popen(
        [
            sys.executable,
            "-m",
            "uvicorn",
            "sonic_chat.api.app:app",
            "--host",
            HOST,
            "--port",
            str(API_PORT),
        ]
    )
    page_proc = subprocess.Popen(
        [sys.executable, "-c", "from sonic_chat.ui.chat_page import main; main()"],
        env={**os.environ, "UI_PORT": str(UI_PORT)},
    )
    children = (relay_proc, page_proc)

    try:
        while all(proc.poll() is None for proc in children):
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping relay and chat page")
    finally:
        for proc in children:
            proc.terminate()
        for proc in children:
            proc.wait()


def main() -> None:
    mode = os.getenv("RUN_MODE", "integrated").lower()
    logger.info(f"Sonic Chat starting ({mode})")

    if mode == "separate":
        run_separate()
    else:
        run_integrated()


if __name__ == "__main__":
    main()
