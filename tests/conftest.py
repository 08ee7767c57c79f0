"""Shared test fixtures for seed-extensions tests."""

from unittest.mock import MagicMock, patch

import pytest
from icecream import ic

from seed_extensions.config import Config


@pytest.fixture(autouse=True)
def quiet_console():
    """Silence console and debug output during tests."""
    ic.disable()
    with patch("seed_extensions.console.console.print"):
        yield


@pytest.fixture
def config():
    """Default reconciler configuration."""
    return Config()


@pytest.fixture
def mock_kube_contexts():
    """Mock kubernetes config contexts."""
    with patch("kubernetes.config.list_kube_config_contexts") as mock:
        mock.return_value = ([{"name": "garden"}, {"name": "garden-canary"}], {"name": "garden"})
        yield mock


@pytest.fixture
def mock_kube_config():
    """Mock kubernetes config loading."""
    with patch("kubernetes.config.load_kube_config") as mock:
        yield mock


@pytest.fixture
def mock_custom_objects_api():
    """Mock CustomObjectsApi used by GardenStore."""
    with patch("kubernetes.client.CustomObjectsApi") as mock:
        api_instance = MagicMock()
        mock.return_value = api_instance
        api_instance.list_cluster_custom_object.return_value = {"items": []}
        yield api_instance


@pytest.fixture
def cluster_mocks(mock_kube_contexts, mock_kube_config, mock_custom_objects_api):
    """Combined fixture for creating a Cluster instance."""
    return {
        "contexts": mock_kube_contexts,
        "config": mock_kube_config,
        "api": mock_custom_objects_api,
    }
