"""Kubernetes client construction."""

import logging

import kubernetes
from kubernetes import client

from .exceptions import ClusterConnectionError

logger = logging.getLogger(__name__)


def get_core_client() -> client.CoreV1Api:
    """Get a CoreV1 API client, preferring in-cluster configuration."""
    try:
        kubernetes.config.load_incluster_config()
        logger.debug("Using in-cluster Kubernetes config")
    except kubernetes.config.ConfigException:
        try:
            kubernetes.config.load_kube_config()
        except (kubernetes.config.ConfigException, OSError) as e:
            raise ClusterConnectionError(f"error reading out-of-cluster config: {e}") from e
        logger.debug("Using local kubeconfig")

    return client.CoreV1Api()
