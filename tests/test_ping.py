"""Tests for /ping and /models endpoints."""

import pytest
from unittest.mock import patch, MagicMock
from app import app


@pytest.fixture
def client():
    """Create test client."""
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


def test_ping_returns_ok(client):
    """Test /ping returns correct status."""
    response = client.get('/ping')
    assert response.status_code == 200
    data = response.get_json()
    assert data == {"status": "ok"}
    assert response.headers['Cache-Control'] == 'no-store'


@patch('llm_client.requests.get')
def test_models_reports_configuration(mock_get, client):
    """Test /models returns the effective Ollama configuration."""
    mock_get.return_value = MagicMock(status_code=200)

    response = client.get('/models')
    assert response.status_code == 200
    data = response.get_json()
    assert data["models"]
    assert all(e.endswith("/api/generate") for e in data["endpoints"])
    assert data["ollama_available"] is True


@patch('llm_client.requests.get')
def test_models_reports_ollama_offline(mock_get, client):
    """Test /models still answers when Ollama is down."""
    import requests
    mock_get.side_effect = requests.exceptions.ConnectionError("refused")

    response = client.get('/models')
    assert response.status_code == 200
    assert response.get_json()["ollama_available"] is False
