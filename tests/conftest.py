import pytest

import kvopath._scheduling as _sched_mod


@pytest.fixture(autouse=True)
def _isolated_scheduler():
    """Each test starts with the built-in queue and leaves nothing pending."""
    old = _sched_mod._scheduler
    _sched_mod._scheduler = None
    _sched_mod._pending.clear()
    try:
        yield
    finally:
        _sched_mod._scheduler = old
        _sched_mod._pending.clear()
