import io
import pytest
from unittest.mock import MagicMock
from backend.gateway.server import create_app

PUBLIC_BASE_URL = "https://example.test/temp_uploads"

@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "temp_uploads"

@pytest.fixture
def app(upload_dir):
    app = create_app({
        "TESTING": True,
        "OPENAI_API_KEY": "sk-test",
        "UPLOAD_DIR": str(upload_dir),
        "PUBLIC_BASE_URL": PUBLIC_BASE_URL,
    })
    return app

@pytest.fixture
def client(app):
    return app.test_client()

@pytest.fixture
def mock_vision_client(mocker):
    """
    Replaces the OpenAI adapter used by the routes.
    """
    adapter = MagicMock()
    adapter.model = "gpt-5"
    mocker.patch("backend.vision_service.routes.build_client", return_value=adapter)
    return adapter

@pytest.fixture
def image_part():
    """
    Factory for (stream, filename, content_type) tuples accepted by the Flask test client.
    """
    def _make(data=b"\x89PNG\r\n\x1a\nfake-image-bytes", filename="dish.png", content_type="image/png"):
        return (io.BytesIO(data), filename, content_type)
    return _make
