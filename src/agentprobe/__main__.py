"""CLI entry point for agentprobe: python -m agentprobe."""

from __future__ import annotations

import asyncio
import json
import sys


def _usage_error(message: str) -> None:
    print(message, file=sys.stderr)
    print(
        "Usage: agentprobe golden <golden.json> --fixtures <mocks.json> [--json]",
        file=sys.stderr,
    )
    sys.exit(2)


def _cmd_golden(args: list[str]) -> int:
    """Replay a golden set against fixture-backed responses. Returns the exit code."""
    from agentprobe.exceptions import FixtureFormatError
    from agentprobe.fixtures import load_golden_set, load_mock_fixtures
    from agentprobe.golden import GoldenSetRunner

    as_json = "--json" in args
    args = [a for a in args if a != "--json"]

    fixtures_path: str | None = None
    if "--fixtures" in args:
        index = args.index("--fixtures")
        if index + 1 >= len(args):
            _usage_error("--fixtures requires a path")
        fixtures_path = args[index + 1]
        args = args[:index] + args[index + 2:]

    if len(args) != 1 or fixtures_path is None:
        _usage_error("golden needs one golden-set path and --fixtures")

    try:
        cases = load_golden_set(args[0])
        client = load_mock_fixtures(fixtures_path)
    except (FileNotFoundError, FixtureFormatError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    report = asyncio.run(GoldenSetRunner(client).run(cases))

    if as_json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        for result in report.results:
            status = "PASS" if result.passed else "FAIL"
            print(f"{status} {result.case_id}")
            for error in result.errors:
                print(f"  - {error}")
        print(f"{report.passed_count} passed, {report.failed_count} failed")
    return report.exit_code


def main() -> None:
    """Run agentprobe CLI."""
    args = sys.argv[1:]

    if args and args[0] == "--version":
        from agentprobe import __version__
        print(f"agentprobe {__version__}")
        sys.exit(0)

    if args and args[0] == "golden":
        sys.exit(_cmd_golden(args[1:]))

    # `agentprobe run [args]` is an explicit alias for pytest passthrough
    if args and args[0] == "run":
        args = args[1:]

    # Default: run pytest with the agentprobe plugin loaded
    import pytest

    sys.exit(pytest.main(args))


if __name__ == "__main__":
    main()
