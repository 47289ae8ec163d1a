"""Filesystem locations used at runtime."""
from __future__ import annotations

from pathlib import Path
from typing import Dict

PACKAGE_ROOT = Path(__file__).resolve().parent
PROJECT_ROOT = PACKAGE_ROOT.parent
REFERENCE_DIR = PACKAGE_ROOT / "reference" / "data"
DATA_DIR = PROJECT_ROOT / "data"
EXPORTS_DIR = DATA_DIR / "exports"
LOGS_DIR = PROJECT_ROOT / "logs"

# created on demand; REFERENCE_DIR ships with the package
WRITABLE_DIRECTORIES = (DATA_DIR, EXPORTS_DIR, LOGS_DIR)


def ensure_runtime_directories() -> Dict[str, Path]:
    for path in WRITABLE_DIRECTORIES:
        path.mkdir(parents=True, exist_ok=True)
    return {
        "reference": REFERENCE_DIR,
        "data": DATA_DIR,
        "exports": EXPORTS_DIR,
        "logs": LOGS_DIR,
    }


__all__ = [
    "DATA_DIR",
    "EXPORTS_DIR",
    "LOGS_DIR",
    "PACKAGE_ROOT",
    "PROJECT_ROOT",
    "REFERENCE_DIR",
    "ensure_runtime_directories",
]
