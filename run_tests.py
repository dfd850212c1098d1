#!/usr/bin/env python3
"""Test runner that puts the project root on sys.path before running pytest."""
import sys
from pathlib import Path

# Project root holds the app, auth and persistence packages
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

# Now import and run pytest
import pytest

if __name__ == "__main__":
    # Pass through any command line arguments
    sys.exit(pytest.main(sys.argv[1:]))
