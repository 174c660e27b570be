"""
Shared runner for the test_*.py modules.

Each test module holds plain test functions (collected by pytest as usual).
Run directly, e.g. `python test_engine.py`, a module hands its globals to
run_module(), which runs every test_* function in definition order and
prints a pass/fail line per test plus a summary.

Usage:
    source .venv/bin/activate
    python test_engine.py
"""

import sys
import time
import traceback
from dataclasses import dataclass

# Check Python version and dependencies early
if sys.version_info < (3, 10):
    print("Error: Python 3.10+ required")
    print()
    print("Activate the virtual environment:")
    print("    source .venv/bin/activate")
    sys.exit(1)

try:
    import anyio  # noqa: F401
    import httpx  # noqa: F401
except ImportError as e:
    print(f"Error: {e}")
    print()
    print("Activate the virtual environment first:")
    print("    source .venv/bin/activate")
    print("    pip install -e '.[test]'")
    sys.exit(1)

# Make the package importable when run from a checkout without installing
sys.path.insert(0, "src")


@dataclass
class Outcome:
    """Result of a single test."""

    name: str
    passed: bool
    message: str = ""


class Runner:
    """Runs tests and collects results."""

    def __init__(self):
        self.results: list[Outcome] = []
        self.current_section: str = ""

    def section(self, name: str):
        """Start a new test section."""
        self.current_section = name
        print(f"\n{'=' * 60}")
        print(f"  {name}")
        print(f"{'=' * 60}")

    def test(self, name: str, condition: bool, message: str = ""):
        """Record a test result."""
        self.results.append(Outcome(f"{self.current_section}: {name}", condition, message))
        if condition:
            print(f"  ✓ {name}")
        else:
            print(f"  ✗ {name}")
            if message:
                print(f"    → {message}")

    def summary(self) -> bool:
        """Print summary and return True if all tests passed."""
        passed = sum(1 for r in self.results if r.passed)
        failed = len(self.results) - passed

        print(f"\n{'=' * 60}")
        print(f"  SUMMARY: {passed}/{len(self.results)} passed, {failed} failed")
        print(f"{'=' * 60}")

        if failed:
            print("\nFailed tests:")
            for r in self.results:
                if not r.passed:
                    print(f"  ✗ {r.name}")
                    if r.message:
                        print(f"    → {r.message}")
        return failed == 0


def run_module(namespace: dict, title: str) -> None:
    """Run every test_* function in `namespace` and exit with the result."""
    runner = Runner()
    runner.section(title)
    start_time = time.time()

    for name, func in list(namespace.items()):
        if not name.startswith("test_") or not callable(func):
            continue
        label = name[5:].replace("_", " ")
        try:
            func()
        except AssertionError as e:
            runner.test(label, False, str(e) or traceback.format_exc().strip().splitlines()[-2])
        except Exception as e:
            runner.test(label, False, f"{e.__class__.__name__}: {e}")
        else:
            runner.test(label, True)

    all_passed = runner.summary()
    print(f"\nCompleted in {time.time() - start_time:.1f} seconds")
    sys.exit(0 if all_passed else 1)
