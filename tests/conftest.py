import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


# 2025-01-01 is a Wednesday; 02:00 UTC is 10:00 in Shanghai.
FIXED_NOW = datetime(2025, 1, 1, 2, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW

