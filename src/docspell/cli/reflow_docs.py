"""CLI command: re-wrap documentation comments and markdown to a maximum line width."""

from __future__ import annotations

from dotenv import load_dotenv

from docspell.cli.common import build_parser, run_command
from docspell.runner import RunMode


load_dotenv()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser(
        "Re-wrap documentation comments and markdown to a maximum line width",
        with_dry_run=True,
        with_checkers=False,
    )
    args = parser.parse_args(argv)
    return run_command(RunMode.REFLOW, args)


if __name__ == "__main__":
    raise SystemExit(main())
