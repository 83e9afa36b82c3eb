"""CLI command: check documentation comments and markdown for spelling suggestions."""

from __future__ import annotations

from dotenv import load_dotenv

from docspell.cli.common import build_parser, run_command
from docspell.runner import RunMode


load_dotenv()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser(
        "Check documentation comments and markdown for spelling suggestions",
        with_dry_run=False,
        with_checkers=True,
    )
    args = parser.parse_args(argv)
    return run_command(RunMode.CHECK, args)


if __name__ == "__main__":
    raise SystemExit(main())
