from __future__ import annotations

import pytest
from casty import ActorSystem


@pytest.fixture
async def system():
    s = ActorSystem("test-workpool")
    await s.__aenter__()
    yield s
    await s.__aexit__(None, None, None)
