#!/usr/bin/env python3
"""Personal finance assistant CLI."""

import argparse
import logging
import sys
from config.settings import Settings
from schemas.errors import FatalError
from orchestrator import FinanceAssistantOrchestrator


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Finance Assistant - record and query your finances in plain language"
    )
    parser.add_argument(
        "--user",
        "-u",
        type=str,
        default="default",
        help="User identifier (default: default)"
    )
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        "--message",
        "-m",
        type=str,
        help="Message to send to the assistant"
    )
    mode.add_argument(
        "--voice",
        type=str,
        help="Path to an audio file to transcribe and send"
    )
    mode.add_argument(
        "--history",
        action="store_true",
        help="Show the latest conversation"
    )
    mode.add_argument(
        "--new-conversation",
        action="store_true",
        help="Start a fresh conversation"
    )
    mode.add_argument(
        "--categorize",
        "-c",
        type=str,
        help="Categorize a transaction description"
    )
    parser.add_argument(
        "--db-path",
        type=str,
        help="Path to the SQLite database (default: data/finance.db)"
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
        format="%(asctime)s %(name)s %(levelname)s %(message)s"
    )

    # Create settings
    settings = Settings(
        db_path=args.db_path,
        verbose=args.verbose,
    )

    # Initialize orchestrator
    orchestrator = FinanceAssistantOrchestrator.from_settings(settings)

    if args.categorize:
        print(orchestrator.categorize(args.categorize).value)
        return

    if args.history:
        turns = orchestrator.get_history(args.user)
        if not turns:
            print("No conversation yet.")
        for turn in turns:
            print(f"[{turn.timestamp.strftime('%Y-%m-%d %H:%M')}] {turn.role.value}: {turn.content}")
        return

    if args.new_conversation:
        conversation = orchestrator.start_new_conversation(args.user)
        print(f"Started conversation {conversation.conversation_id}")
        return

    try:
        if args.voice:
            with open(args.voice, "rb") as f:
                reply = orchestrator.handle_voice_message(args.user, f.read(), filename=args.voice)
            if reply.transcription:
                print(f"You said: {reply.transcription}\n")
        else:
            reply = orchestrator.handle_message(args.user, args.message)

        print(reply.response_text)
        if args.verbose:
            print(f"\n[source: {reply.source}, action: {reply.action_summary or 'none'}]")
    except (FatalError, OSError) as e:
        print(f"Error processing message: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
