#!/usr/bin/env python3
"""Validate local availability service environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.repository.data_repository import DataRepository
from backend.services.availability_service import ManagerAvailabilityService
from backend.utils.config import get_settings

SEPARATOR_LINE = "=" * 44

# (date, products, language, rating) exercised against both strategies
SAMPLE_REQUESTS = [
    ("2024-05-03", ["SolarPanels", "Heatpumps"], "German", "Gold"),
    ("2024-05-03", ["Heatpumps"], "English", "Silver"),
    ("2024-05-04", ["SolarPanels"], "German", "Bronze"),
]


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="availability-env-")

    # CHECK 1: Python version >= 3.10
    if sys.version_info >= (3, 10):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.10",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable
    package_specs = ["fastapi", "uvicorn", "pydantic", "httpx", "pytest"]
    import_errors: list[str] = []
    for module_name in package_specs:
        try:
            importlib.import_module(module_name)
        except ImportError as exc:
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        validation_settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "availability_validation.db",
        )
        repository = DataRepository(validation_settings)

        # CHECK 3: Database initialization
        try:
            repository.initialize_database()
            ok, line = _print_result("Database initialization", True)
        except RuntimeError as exc:
            ok, line = _print_result("Database initialization", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4: Demo data seeding
        try:
            seeded_slots = repository.seed_demo_data()
            if seeded_slots != 16:
                raise RuntimeError(f"expected 16 slots, got {seeded_slots}")
            ok, line = _print_result("Demo dataset: 16 slots", True)
        except RuntimeError as exc:
            ok, line = _print_result("Demo dataset", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 5: Runtime and database strategies agree
        service = ManagerAvailabilityService(
            repository=repository,
            settings=validation_settings,
        )
        mismatches: list[str] = []
        for date, products, language, rating in SAMPLE_REQUESTS:
            runtime = service.get_availability(date, products, language, rating, strategy="runtime")
            database = service.get_availability(date, products, language, rating, strategy="database")
            if runtime != database:
                mismatches.append(f"{date}/{'+'.join(products)}/{language}/{rating}")
        if mismatches:
            ok, line = _print_result("Strategy agreement", False, ", ".join(mismatches))
        else:
            ok, line = _print_result(
                "Strategy agreement",
                True,
                f": {len(SAMPLE_REQUESTS)} requests",
            )
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Availability Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
