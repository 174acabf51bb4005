#!/usr/bin/env python3
"""
Main entry point for the interview progression engine.
Replays a recorded transcript with: python -m interview_gate transcript.json
"""
import json
import sys

from pydantic import ValidationError

from .interview.replay import load_script, replay, script_config
from .utils.logging import setup_logging

USAGE = ("Usage: python -m interview_gate TRANSCRIPT.json "
         "[--timebox-ms=N] [--unproductive-limit=N] [--log-file=PATH] [--log-level=LEVEL]")


def main():
    """Command-line interface for transcript replay."""

    paths = [arg for arg in sys.argv[1:] if not arg.startswith("--")]
    if len(paths) != 1 or "--help" in sys.argv or "-h" in sys.argv:
        print(USAGE)
        sys.exit(2)

    # Flags take precedence over the transcript, which takes precedence over the environment
    overrides = {}
    for arg in sys.argv[1:]:
        if arg.startswith("--timebox-ms="):
            overrides["timebox_ms"] = arg.split("=", 1)[1]
        elif arg.startswith("--unproductive-limit="):
            overrides["unproductive_limit"] = arg.split("=", 1)[1]
        elif arg.startswith("--log-file="):
            overrides["log_file"] = arg.split("=", 1)[1]
        elif arg.startswith("--log-level="):
            overrides["log_level"] = arg.split("=", 1)[1]
        elif arg.startswith("--"):
            print(f"❌ Unknown option: {arg}")
            print(USAGE)
            sys.exit(2)

    try:
        script = load_script(paths[0])
    except OSError as e:
        print(f"❌ Cannot read transcript: {e}")
        sys.exit(1)
    except (ValidationError, json.JSONDecodeError) as e:
        print(f"❌ Invalid transcript: {e}")
        sys.exit(1)

    # Load configuration from environment
    try:
        config = script_config(script, **overrides)
        setup_logging(config.log_file, config.log_level)
    except ValueError as e:
        print(f"❌ Configuration Error: {e}")
        sys.exit(1)

    snapshot = replay(script, config=config)
    print(json.dumps(snapshot.to_dict(), indent=2))
    print(f"📝 Detailed logs: {config.log_file}")


if __name__ == "__main__":
    main()
