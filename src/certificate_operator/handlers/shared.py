"""Shared utilities for handlers."""

from __future__ import annotations

import threading

from kubernetes import client, config

_config_lock = threading.Lock()
_config_loaded = False


def load_kube_config() -> None:
    """Load in-cluster configuration, falling back to the local kubeconfig."""
    global _config_loaded
    with _config_lock:
        if _config_loaded:
            return
        try:
            config.load_incluster_config()
        except config.ConfigException:
            config.load_kube_config()
        _config_loaded = True


def get_k8s_clients() -> tuple[client.CustomObjectsApi, client.CoreV1Api]:
    """Return API clients for custom objects and core resources."""
    load_kube_config()
    return client.CustomObjectsApi(), client.CoreV1Api()
