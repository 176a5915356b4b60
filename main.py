#!/usr/bin/env python3
"""ShawnGPT chat assistant CLI."""

import argparse
import logging
import sys
from typing import Optional

from config.settings import Settings
from schemas.context import Mode
from memory.store import PersistenceError, TurnNotSavedError
from orchestrator import ChatOrchestrator

MODE_CHOICES = ["auto"] + [mode.value for mode in Mode]


def parse_mode(value: str) -> Optional[Mode]:
    """Map the --mode choice to an explicit mode (None for auto)."""
    return None if value == "auto" else Mode(value)


def print_reply(reply, verbose: bool = False):
    """Print a reply with its mode badge."""
    print(f"\n[{reply.mode.value}] {reply.content}\n")
    if verbose:
        print(f"  generation={reply.generation.value} topic={reply.topic} "
              f"conversation={reply.conversation_id}\n")


def run_interactive(orchestrator: ChatOrchestrator, mode: Optional[Mode], conversation_id: Optional[str], verbose: bool):
    """Read messages from stdin until EOF or /quit."""
    print("ShawnGPT is here! Type /quit to exit, /mode <name> to switch modes, /new for a new chat.\n")

    while True:
        try:
            message = input("you> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if not message:
            continue
        if message in ("/quit", "/exit"):
            break
        if message == "/new":
            conversation_id = None
            print("Started a new conversation.\n")
            continue
        if message.startswith("/mode"):
            parts = message.split()
            if len(parts) == 2 and parts[1] in MODE_CHOICES:
                mode = parse_mode(parts[1])
                print(f"Mode set to {parts[1]}.\n")
            else:
                print(f"Usage: /mode {{{','.join(MODE_CHOICES)}}}\n")
            continue

        try:
            reply = orchestrator.process_message(message, conversation_id, mode)
        except TurnNotSavedError as e:
            print(f"Warning: {e}", file=sys.stderr)
            reply = e.reply
        except PersistenceError as e:
            print(f"Error processing message: {e}", file=sys.stderr)
            continue

        conversation_id = reply.conversation_id
        print_reply(reply, verbose)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="ShawnGPT - a Hinglish chat buddy for movies, games and web research"
    )
    parser.add_argument(
        "--message",
        "-m",
        type=str,
        help="Single message to send (starts an interactive chat when omitted)"
    )
    parser.add_argument(
        "--mode",
        type=str,
        choices=MODE_CHOICES,
        default="auto",
        help="Conversation mode (default: auto)"
    )
    parser.add_argument(
        "--conversation-id",
        "-c",
        type=str,
        help="Continue an existing conversation"
    )
    parser.add_argument(
        "--db-path",
        type=str,
        help="Persist conversations to this SQLite file"
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for template reply selection"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    settings_overrides = {"template_seed": args.seed, "verbose": args.verbose}
    if args.db_path:
        settings_overrides.update(memory_backend="sqlite", db_path=args.db_path)
    settings = Settings(**settings_overrides)

    orchestrator = ChatOrchestrator(settings=settings)
    mode = parse_mode(args.mode)

    if not args.message:
        run_interactive(orchestrator, mode, args.conversation_id, args.verbose)
        return

    try:
        reply = orchestrator.process_message(args.message, args.conversation_id, mode)
    except TurnNotSavedError as e:
        print(f"Warning: {e}", file=sys.stderr)
        reply = e.reply
    except PersistenceError as e:
        print(f"Error processing message: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)

    print_reply(reply, args.verbose)


if __name__ == "__main__":
    main()
