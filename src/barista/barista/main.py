"""CLI entry point for the barista order agent.

Usage:
    python -m barista.main
"""

import uuid
from pathlib import Path

from loguru import logger

from .config import get_settings
from .enums import Progress
from .logging import setup_logging
from .models import ChatResponse
from .service import create_orchestrator


def _print_response(response: ChatResponse) -> None:
    print(f"Bot: {response.message}")
    order = response.current_order
    if order is not None:
        filled = {
            k: v for k, v in order.model_dump(mode="json").items() if v not in (None, [])
        }
        print(f"     order: {filled}")
    suggestions = response.suggestions
    if isinstance(suggestions, list):
        suggestions = " | ".join(suggestions)
    if suggestions:
        print(f"     try: {suggestions}")
    print()


def main() -> None:
    """Run the barista chatbot CLI."""
    settings = get_settings()

    log_file = setup_logging(level=settings.log_level, log_dir=Path(settings.log_dir))
    logger.info("Starting barista chatbot CLI (log file: {})", log_file)

    orchestrator = create_orchestrator(settings)

    user_id = "cli"
    thread_id = str(uuid.uuid4())
    logger.info("Session started (thread_id={})", thread_id)

    print("-" * 50)
    print("Barista ready! Type 'quit' to exit.")
    print("-" * 50)
    print()

    while True:
        try:
            user_input = input("You: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye!")
            break

        if not user_input:
            continue
        if user_input.lower() in ("quit", "exit", "q"):
            print("Goodbye!")
            break

        logger.debug("User input: {}", user_input)
        response = orchestrator.run(thread_id, user_id, user_input)
        _print_response(response)

        if response.progress == Progress.COMPLETED:
            print("-" * 50)
            print("Order placed! Enjoy your drink.")
            print("-" * 50)
            break

    if settings.langfuse_enabled:
        from langfuse import get_client

        get_client().flush()

    logger.info("Chatbot session ended (thread_id={})", thread_id)


if __name__ == "__main__":
    main()
