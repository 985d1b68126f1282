from __future__ import annotations

from collections.abc import Iterator

import pytest

from pkgscout.bundle.engine import reset_engine


@pytest.fixture(autouse=True)
def _fresh_engine() -> Iterator[None]:
    reset_engine()
    yield
    reset_engine()
