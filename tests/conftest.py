"""Shared test fixtures for image-pull-creds tests."""

import copy
from unittest.mock import MagicMock

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException

PAYLOAD = b'{"https://us-docker.pkg.dev":{"email":"none","password":"tok","username":"oauth2accesstoken"}}'


class FakeCoreV1Api:
    """In-memory stand-in for the CoreV1Api calls the reconciler makes.

    Objects are copied on the way in and out so that only explicit
    create/replace calls change stored state. Every call is recorded in
    ``calls`` as ``(verb, namespace, name)``.
    """

    def __init__(self, namespaces=()):
        self.namespaces = list(namespaces)
        self.service_accounts = {ns: {} for ns in self.namespaces}
        self.secrets = {}
        self.calls = []
        self.failures = {}
        self.kwargs = []

    # -- setup helpers -------------------------------------------------------

    def add_service_account(self, namespace, name, pull_secrets=()):
        sa = client.V1ServiceAccount(
            metadata=client.V1ObjectMeta(name=name, namespace=namespace, labels={"team": "core"}),
            image_pull_secrets=[client.V1LocalObjectReference(name=s) for s in pull_secrets] or None,
        )
        self.service_accounts.setdefault(namespace, {})[name] = sa
        return sa

    def add_secret(self, namespace, name, data, secret_type="kubernetes.io/dockercfg"):
        secret = client.V1Secret(
            metadata=client.V1ObjectMeta(name=name, namespace=namespace, annotations={"keep": "me"}),
            type=secret_type,
            data=dict(data),
        )
        self.secrets[(namespace, name)] = secret
        return secret

    def fail(self, verb, namespace=None, status=500, reason="Internal Server Error"):
        self.failures[(verb, namespace)] = ApiException(status=status, reason=reason)

    def _record(self, verb, namespace=None, name=None, **kwargs):
        self.calls.append((verb, namespace, name))
        self.kwargs.append(kwargs)
        err = self.failures.get((verb, namespace))
        if err is not None:
            raise err

    def writes(self, verb=None):
        write_verbs = {"create_secret", "replace_secret", "replace_service_account"}
        return [c for c in self.calls if c[0] in write_verbs and (verb is None or c[0] == verb)]

    def pull_secret_names(self, namespace, name):
        refs = self.service_accounts[namespace][name].image_pull_secrets or []
        return [ref.name for ref in refs]

    # -- CoreV1Api surface ---------------------------------------------------

    def list_namespace(self, **kwargs):
        self._record("list_namespace", **kwargs)
        items = [client.V1Namespace(metadata=client.V1ObjectMeta(name=ns)) for ns in self.namespaces]
        return client.V1NamespaceList(items=items)

    def list_namespaced_service_account(self, namespace, **kwargs):
        self._record("list_service_accounts", namespace, **kwargs)
        items = [copy.deepcopy(sa) for sa in self.service_accounts.get(namespace, {}).values()]
        return client.V1ServiceAccountList(items=items)

    def replace_namespaced_service_account(self, name, namespace, body, **kwargs):
        self._record("replace_service_account", namespace, name, **kwargs)
        self.service_accounts[namespace][name] = copy.deepcopy(body)
        return body

    def read_namespaced_secret(self, name, namespace, **kwargs):
        self._record("read_secret", namespace, name, **kwargs)
        secret = self.secrets.get((namespace, name))
        if secret is None:
            raise ApiException(status=404, reason="Not Found")
        return copy.deepcopy(secret)

    def create_namespaced_secret(self, namespace, body, **kwargs):
        self._record("create_secret", namespace, body.metadata.name, **kwargs)
        self.secrets[(namespace, body.metadata.name)] = copy.deepcopy(body)
        return body

    def replace_namespaced_secret(self, name, namespace, body, **kwargs):
        self._record("replace_secret", namespace, name, **kwargs)
        self.secrets[(namespace, name)] = copy.deepcopy(body)
        return body


@pytest.fixture
def core():
    """Fake cluster with a few namespaces and service accounts."""
    api = FakeCoreV1Api(["default", "kube-system", "kube-public", "team-a"])
    api.add_service_account("default", "default")
    api.add_service_account("default", "builder", pull_secrets=["other-registry"])
    api.add_service_account("kube-system", "default")
    api.add_service_account("team-a", "default")
    api.add_service_account("team-a", "deployer")
    return api


@pytest.fixture
def provider():
    """Credential provider returning a fixed payload."""
    mock = MagicMock()
    mock.create_docker_cfg.return_value = PAYLOAD
    return mock
