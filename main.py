#!/usr/bin/env python3
"""
Mindful - Resilient conversational support client.

Entry point for the interactive chat loop.
"""

import asyncio
import argparse
import logging

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

HELP_TEXT = """Commands:
  /record     start or stop voice recording (needs --voice)
  /voice      turn spoken replies on or off
  /reconnect  clear the connection error state
  /quit       exit"""


def _print_notice(notice) -> None:
    print(f"  [{notice.level.value}] {notice.title}: {notice.description}")


def _print_message(message) -> None:
    if message.sender.value == "assistant":
        print(f"\nMindful: {message.content}")


async def run_interactive(orchestrator, use_voice: bool = False) -> None:
    """
    Run the orchestrator in interactive mode.

    Args:
        orchestrator: An initialized Orchestrator
        use_voice: Whether /record is available
    """
    loop = asyncio.get_running_loop()
    print("\n" + "=" * 50)
    print("Mindful - Interactive Mode")
    print("=" * 50)
    print(HELP_TEXT)
    print("=" * 50)

    while True:
        prompt = "\n[recording - type /record to stop] " if orchestrator.is_recording else "\nYou: "
        try:
            user_input = (await loop.run_in_executor(None, input, prompt)).strip()
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye!")
            break

        if not user_input:
            continue

        command = user_input.lower()
        if command in ("/quit", "/exit", "quit", "exit"):
            print("\nGoodbye!")
            break
        if command == "/voice":
            orchestrator.toggle_voice_output()
            continue
        if command == "/reconnect":
            orchestrator.reconnect()
            continue
        if command == "/record":
            if not use_voice:
                print("  Voice input is off. Restart with --voice.")
                continue
            result = await orchestrator.toggle_recording()
            if result is not None:
                print(f"\nYou (voice): {result.user_message.content}")
            continue

        await orchestrator.send(user_input)
        health = orchestrator.health
        if health.degraded:
            print("  [connection degraded - type /reconnect to retry]")

    await orchestrator.shutdown()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Mindful - Conversational support assistant"
    )
    parser.add_argument(
        "--text",
        type=str,
        default=None,
        help="Process a single text input and exit"
    )
    parser.add_argument(
        "--voice", "-v",
        action="store_true",
        help="Enable microphone input with speech-to-text"
    )
    parser.add_argument(
        "--no-speech",
        action="store_true",
        help="Do not speak replies aloud"
    )
    parser.add_argument(
        "--backend-url",
        type=str,
        default=None,
        help="Use a Mindful backend instead of calling the services directly"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        help="Logging level (default: WARNING)"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Import here to allow --help without loading all dependencies
    from mindful.orchestrator import DEFAULT_GREETING, Orchestrator

    async def run():
        orchestrator = Orchestrator(
            speech_enabled=not args.no_speech,
            greeting=None if args.text else DEFAULT_GREETING,
            on_notice=_print_notice,
            on_message=_print_message
        )
        await orchestrator.initialize(use_voice=args.voice, backend_url=args.backend_url)

        if args.text:
            await orchestrator.send(args.text)
            await orchestrator.shutdown()
        else:
            await run_interactive(orchestrator, use_voice=args.voice)

    asyncio.run(run())


if __name__ == "__main__":
    main()
