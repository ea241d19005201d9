"""Subcommand dispatcher for reelcompose.

Usage:
    reelcompose render --manifest job.yaml --output reel.mp4
    reelcompose cues   --script script.txt --duration 30
"""

import argparse
import sys


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="reelcompose",
        description="Vertical reel rendering: clips + script + narration -> mp4.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Register subcommands. Each delegates to its own module's main().
    subparsers.add_parser("render", help="Render a reel from a YAML job manifest")
    subparsers.add_parser("cues", help="Preview cue timing for a script")

    # Parse only the subcommand name, pass the rest to the subcommand's parser.
    parsed, remaining = parser.parse_known_args(args)

    if parsed.command is None:
        parser.print_help()
        sys.exit(1)

    if parsed.command == "render":
        from .render_cli import main as render_main
        render_main(remaining)
    elif parsed.command == "cues":
        from .cues_cli import main as cues_main
        cues_main(remaining)


if __name__ == "__main__":
    main()
