"""Run connectivity checks against the image provider and storage."""

from __future__ import annotations

import asyncio
import sys
from typing import Iterable

from memora.integrations import IntegrationCheckResult, run_all_checks
from memora.monitoring.logging import configure_logging


def _format_result(result: IntegrationCheckResult) -> str:
    status = "✅" if result.success else "❌"
    return f"{status} {result.name}: {result.message}"


def print_results(results: Iterable[IntegrationCheckResult]) -> None:
    for result in results:
        print(_format_result(result))


def main() -> int:
    configure_logging()
    results = asyncio.run(run_all_checks())
    print_results(results)
    return 0 if all(result.success for result in results) else 1


if __name__ == "__main__":
    sys.exit(main())
