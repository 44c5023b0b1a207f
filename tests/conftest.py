# tests/conftest.py
import os
import tempfile

# Database() with no URL must never touch the working directory during tests
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite:///{os.path.join(tempfile.mkdtemp(prefix='promptbench-tests-'), 'default.db')}",
)
