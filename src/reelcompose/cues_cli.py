"""CLI for previewing script cue timing.

Usage:
    reelcompose cues --script script.txt --duration 30
    reelcompose cues --script script.txt --duration 30 --json
"""

import argparse
import json
import sys
from pathlib import Path

from .errors import EmptyScriptError, InvalidPlanError
from .timing import plan_cues


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Show word-count-weighted cue timing for a script.",
    )
    parser.add_argument(
        "--script", required=True,
        help="Path to script text file, one cue per line ('-' for stdin)",
    )
    parser.add_argument(
        "--duration", type=float, required=True,
        help="Target total duration in seconds",
    )
    parser.add_argument(
        "--json", action="store_true",
        help="Emit cues as JSON instead of a table",
    )
    parsed = parser.parse_args(args)

    if parsed.script == "-":
        script = sys.stdin.read()
    else:
        path = Path(parsed.script)
        if not path.exists():
            parser.error(f"Script file not found: {path}")
        script = path.read_text(encoding="utf-8")

    try:
        cues = plan_cues(script, parsed.duration)
    except (EmptyScriptError, InvalidPlanError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if parsed.json:
        out = [
            {"text": c.text, "start": round(c.start, 3), "end": round(c.end, 3)}
            for c in cues
        ]
        print(json.dumps(out, indent=2))
        return

    for i, cue in enumerate(cues):
        print(f"  {i:2d}  {cue.start:7.2f}s - {cue.end:7.2f}s  ({cue.duration:5.2f}s)  {cue.text}")


if __name__ == "__main__":
    main()
