"""CLI command: apply the first suggested correction to documentation comments and markdown."""

from __future__ import annotations

from dotenv import load_dotenv

from docspell.cli.common import build_parser, run_command
from docspell.runner import RunMode


load_dotenv()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser(
        "Apply the first suggested correction to documentation comments and markdown",
        with_dry_run=True,
        with_checkers=True,
    )
    args = parser.parse_args(argv)
    return run_command(RunMode.FIX, args)


if __name__ == "__main__":
    raise SystemExit(main())
