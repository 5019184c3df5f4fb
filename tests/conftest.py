# Headless Qt for the dispatcher tests; set before any QApplication exists.
# If pytest-qt is missing, tests requesting qtbot are skipped instead of erroring.

import os
import logging
import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

try:  # If pytest-qt present, its fixture is used
    import pytestqt  # type: ignore  # noqa: F401
except Exception:  # pragma: no cover

    @pytest.fixture
    def qtbot():  # type: ignore
        pytest.skip("pytest-qt not available")


@pytest.fixture(autouse=True)
def _quiet_pil_logging():
    # Pillow logs plugin discovery at DEBUG, which floods captured logs
    logging.getLogger("PIL").setLevel(logging.INFO)
    yield
