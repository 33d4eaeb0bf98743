"""Tests for shared handler utilities."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from kubernetes import config

from certificate_operator.handlers import shared


@pytest.fixture(autouse=True)
def reset_config_flag():
    shared._config_loaded = False
    yield
    shared._config_loaded = False


class TestLoadKubeConfig:
    """Test cases for load_kube_config."""

    @patch("certificate_operator.handlers.shared.config.load_kube_config")
    @patch("certificate_operator.handlers.shared.config.load_incluster_config")
    def test_incluster_preferred(self, mock_incluster, mock_kubeconfig):
        """Test in-cluster configuration is used when available."""
        shared.load_kube_config()

        mock_incluster.assert_called_once()
        mock_kubeconfig.assert_not_called()

    @patch("certificate_operator.handlers.shared.config.load_kube_config")
    @patch("certificate_operator.handlers.shared.config.load_incluster_config")
    def test_falls_back_to_kubeconfig(self, mock_incluster, mock_kubeconfig):
        """Test the local kubeconfig is used outside a cluster."""
        mock_incluster.side_effect = config.ConfigException("not in cluster")

        shared.load_kube_config()

        mock_kubeconfig.assert_called_once()

    @patch("certificate_operator.handlers.shared.config.load_kube_config")
    @patch("certificate_operator.handlers.shared.config.load_incluster_config")
    def test_loaded_once(self, mock_incluster, mock_kubeconfig):
        """Test configuration is loaded only on the first call."""
        shared.load_kube_config()
        shared.load_kube_config()

        mock_incluster.assert_called_once()


class TestGetK8sClients:
    """Test cases for get_k8s_clients."""

    @patch("certificate_operator.handlers.shared.client")
    @patch("certificate_operator.handlers.shared.load_kube_config")
    def test_returns_both_apis(self, mock_load, mock_client):
        """Test custom objects and core clients are returned."""
        custom_api, core_api = shared.get_k8s_clients()

        mock_load.assert_called_once()
        assert custom_api is mock_client.CustomObjectsApi.return_value
        assert core_api is mock_client.CoreV1Api.return_value
