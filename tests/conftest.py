"""
Pytest configuration and fixtures for Modwatch tests.
"""

import os
import sys
import tempfile
from pathlib import Path

# Keep test runs from writing session logs into the project tree.
# Must be set before anything imports modwatch.util.logger.
os.environ.setdefault("MODWATCH_LOG_DIR", tempfile.mkdtemp(prefix="modwatch-logs-"))

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))
