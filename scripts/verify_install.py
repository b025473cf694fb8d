#!/usr/bin/env python
"""
LevelMap - Installation Verification Script

Run this script to verify all dependencies are correctly installed.
"""

import sys
from pathlib import Path

# Add project root to path for the levelmap package
sys.path.insert(0, str(Path(__file__).parent.parent))


def check_package(name: str, import_name: str = None, version_attr: str = "__version__") -> tuple[bool, str]:
    """Check if a package is installed and return version."""
    import_name = import_name or name
    try:
        module = __import__(import_name)
        version = getattr(module, version_attr, "unknown")
        return True, str(version)
    except ImportError as e:
        return False, str(e)


def check_tesseract() -> tuple[bool, str]:
    """Check if the Tesseract executable is available."""
    try:
        import pytesseract
    except ImportError as e:
        return False, str(e)

    try:
        version = pytesseract.get_tesseract_version()
        return True, str(version)
    except (pytesseract.TesseractNotFoundError, OSError) as e:
        return False, f"Tesseract not installed or not in PATH: {e}"


def check_constants() -> tuple[bool, str]:
    """Check if the constants module loads correctly."""
    try:
        from levelmap.constants import (
            MM_PER_INCH,
            CALIBRATION_TAP_THRESHOLD,
            MAX_GRID_ROWS,
        )
        return True, f"loaded ({MM_PER_INCH=}, {CALIBRATION_TAP_THRESHOLD=}, {MAX_GRID_ROWS=})"
    except ImportError as e:
        return False, str(e)


def check_settings() -> tuple[bool, str]:
    """Check if settings.yaml loads and validates."""
    try:
        from levelmap.config import DEFAULT_SETTINGS_PATH, load_settings
        from levelmap.errors import ValidationError
    except ImportError as e:
        return False, str(e)

    if not DEFAULT_SETTINGS_PATH.exists():
        return False, "settings.yaml not found"

    try:
        settings = load_settings(str(DEFAULT_SETTINGS_PATH))
    except ValidationError as e:
        return False, str(e)

    return True, f"{settings.units}, tolerance {settings.tolerance}, grid {settings.rows}x{settings.cols}"


def main():
    print("=" * 60)
    print("LevelMap - Installation Verification")
    print("=" * 60)
    print()

    results = []

    # Core packages
    print("Core Dependencies:")
    print("-" * 40)

    packages = [
        ("numpy", "numpy", "__version__"),
        ("shapely", "shapely", "__version__"),
        ("opencv", "cv2", "__version__"),
        ("pytesseract", "pytesseract", "__version__"),
        ("pyyaml", "yaml", "__version__"),
    ]

    for name, import_name, version_attr in packages:
        ok, info = check_package(name, import_name, version_attr)
        status = "PASS" if ok else "FAIL"
        print(f"  {name:25} [{status}] {info}")
        results.append((name, ok))

    print()
    print("OCR Engine:")
    print("-" * 40)

    # Tesseract binary (optional, only the vision adapter needs it)
    ok, info = check_tesseract()
    status = "PASS" if ok else "WARN"
    print(f"  {'tesseract':25} [{status}] {info}")

    print()
    print("Configuration:")
    print("-" * 40)

    ok, info = check_constants()
    status = "PASS" if ok else "FAIL"
    print(f"  {'constants.py':25} [{status}] {info}")
    results.append(("constants", ok))

    ok, info = check_settings()
    status = "PASS" if ok else "FAIL"
    print(f"  {'settings.yaml':25} [{status}] {info}")
    results.append(("settings", ok))

    print()
    print("=" * 60)

    # Summary
    passed = sum(1 for _, ok in results if ok)
    total = len(results)

    if passed == total:
        print(f"ALL CHECKS PASSED ({passed}/{total})")
        print("Environment is ready for measurement sessions.")
        return 0
    else:
        failed = [name for name, ok in results if not ok]
        print(f"SOME CHECKS FAILED ({passed}/{total})")
        print(f"Failed: {', '.join(failed)}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
