"""
Tests for the Streamlit app's inspection upload flow.

Runs the real script with Streamlit's AppTest and a store whose
uploads can be made to fail.
"""

from pathlib import Path

import pytest

APP_PATH = Path(__file__).resolve().parent.parent / "app" / "streamlit_app.py"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def failing_store(tmp_path):
    from qbot.backend import store as store_module

    class FailingUploadStore(store_module.LocalEntityStore):
        upload_attempts = 0

        def upload_file(self, data, filename, content_type):
            self.upload_attempts += 1
            raise OSError("disk full")

    store = FailingUploadStore(str(tmp_path))
    store_module.set_store(store)
    yield store
    store_module.set_store(None)


@pytest.fixture
def inspection_page():
    from streamlit.testing.v1 import AppTest

    at = AppTest.from_file(str(APP_PATH), default_timeout=10)
    at.run()
    at.sidebar.radio[0].set_value("Inspection").run()
    assert not at.exception
    return at


class TestInspectionUpload:
    """Tests for upload failures on the Inspection page."""

    def test_backend_failure_is_tried_once(self, failing_store, inspection_page):
        from qbot.vision.image_upload import UPLOAD_FAILED_MESSAGE

        at = inspection_page
        at.file_uploader[0].upload("part.png", PNG_BYTES, "image/png").run()

        assert not at.exception
        assert failing_store.upload_attempts == 1
        assert UPLOAD_FAILED_MESSAGE in [e.value for e in at.error]

        # Later reruns do not resubmit the rejected file
        at.run()
        assert failing_store.upload_attempts == 1
        assert at.session_state["image_url"] is None

    def test_oversized_file_is_rejected_once(self, failing_store, inspection_page, monkeypatch):
        from qbot.config import config
        from qbot.vision.image_upload import TOO_LARGE_MESSAGE

        monkeypatch.setitem(config["upload"], "max_size_mb", 0)

        at = inspection_page
        at.file_uploader[0].upload("part.png", PNG_BYTES, "image/png").run()

        assert not at.exception
        assert TOO_LARGE_MESSAGE in [e.value for e in at.error]
        assert failing_store.upload_attempts == 0

        at.run()
        assert TOO_LARGE_MESSAGE in [e.value for e in at.error]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
