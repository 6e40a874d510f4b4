"""Shared test setup.

Settings are read at import time, so the environment is prepared here before
any ``vidshelf`` module is imported.
"""

import os
import shutil
import tempfile

_TEST_ROOT = tempfile.mkdtemp(prefix="vidshelf-tests-")

os.environ.setdefault("SECRET_KEY", "vidshelf-test-secret-key")
os.environ["DATABASE_URL"] = (
    f"sqlite+aiosqlite:///{os.path.join(_TEST_ROOT, 'vidshelf-test.db')}"
)
os.environ["STORAGE_BACKEND"] = "local"
os.environ["LOCAL_STORAGE_PATH"] = os.path.join(_TEST_ROOT, "assets")
os.environ["LOG_JSON"] = "false"


def pytest_sessionfinish(session, exitstatus):
    shutil.rmtree(_TEST_ROOT, ignore_errors=True)
