import logging

import pytest


@pytest.fixture(autouse=True)
def _restore_root_logger():
    # combine_rules.main() replaces the root handlers; undo that between tests.
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
