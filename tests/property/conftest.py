"""
Property tests are pure functions of their inputs; they need no app home.
"""

import pytest


@pytest.fixture(autouse=True, scope="module")
def isolated_home():
    """Module-scoped override so Hypothesis sees no function-scoped fixtures."""
    yield None
