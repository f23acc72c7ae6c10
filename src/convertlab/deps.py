"""Dependency verification module for convertlab.

This module provides functions to verify that the native codec libraries
behind the converters are installed and loadable.
"""

import sys
from typing import Dict, Tuple

from .logging_config import DependencyError


def check_lame() -> Tuple[bool, str]:
    """Check if the LAME MP3 encoder binding is importable.

    Returns:
        Tuple of (is_installed: bool, message: str)
    """
    try:
        import lameenc
    except ImportError:
        return False, "lameenc not found. Install with:\n  pip install lameenc"

    version = getattr(lameenc, "__version__", None)
    return True, f"lameenc {version}" if version else "lameenc"


def check_libsndfile() -> Tuple[bool, str]:
    """Check if soundfile and the libsndfile library can be loaded.

    Returns:
        Tuple of (is_installed: bool, message: str)
    """
    try:
        import soundfile
    except (ImportError, OSError) as e:
        return False, (
            f"soundfile/libsndfile not available ({e}). Install with:\n"
            "  pip install soundfile\n"
            "  Ubuntu/Debian: sudo apt install libsndfile1\n"
            "  macOS: brew install libsndfile"
        )

    return True, f"libsndfile {soundfile.__libsndfile_version__}"


def check_python_version() -> Tuple[bool, str]:
    """Check if Python version meets requirements.

    Returns:
        Tuple of (is_compatible: bool, message: str)
    """
    py_version = sys.version_info
    py_ok = py_version >= (3, 10)

    message = f"Python {py_version[0]}.{py_version[1]}.{py_version[2]}"
    if not py_ok:
        message += " - Requires Python 3.10+"

    return py_ok, message


def verify_dependencies() -> Dict[str, Dict]:
    """Verify all dependencies and return status.

    Raises:
        DependencyError: If any critical dependency is missing

    Returns:
        Dictionary with dependency status for:
        - lame: installed status and message
        - libsndfile: installed status and message
        - python: version compatibility and message
    """
    results = {}

    lame_ok, lame_msg = check_lame()
    results["lame"] = {"installed": lame_ok, "message": lame_msg}

    sndfile_ok, sndfile_msg = check_libsndfile()
    results["libsndfile"] = {"installed": sndfile_ok, "message": sndfile_msg}

    py_ok, py_msg = check_python_version()
    results["python"] = {"compatible": py_ok, "message": py_msg}

    if not lame_ok:
        raise DependencyError(f"LAME required: {lame_msg}")

    if not sndfile_ok:
        raise DependencyError(f"libsndfile required: {sndfile_msg}")

    if not py_ok:
        raise DependencyError(f"Python version too old: {py_msg}")

    return results


def get_dependency_summary() -> Dict[str, str]:
    """Get a human-readable summary of dependencies.

    Returns:
        Dictionary with dependency name as key and status as value.
        Example: {"lame": "✓ Installed", "libsndfile": "✓ Installed", ...}
    """
    results = verify_dependencies()
    summary = {}

    for dep, info in results.items():
        if dep == "python":
            status = "✓ Compatible" if info["compatible"] else "✗ Not compatible"
        else:
            status = "✓ Installed" if info["installed"] else "✗ Not found"
        summary[dep] = status

    return summary
