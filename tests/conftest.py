# tests/conftest.py
from __future__ import annotations

import os

# api.py builds Settings at import time; required values must exist first.
os.environ.setdefault("CHANGE_ADAPTER_INSTANCE_URL", "https://dev-test.service-now.com")
os.environ.setdefault("CHANGE_ADAPTER_USERNAME", "admin")
os.environ.setdefault("CHANGE_ADAPTER_PASSWORD", "test-password")
os.environ.setdefault("CHANGE_ADAPTER_ADAPTER_ID", "snow-test")
