"""Tests for server.py module."""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from conftest import PAYLOAD, FakeCoreV1Api
from image_pull_creds import constants as C
from image_pull_creds.exceptions import ProviderError, ReconcileBusyError, ReconcileError
from image_pull_creds.reconcile import Reconciler
from image_pull_creds.server import create_app

PATH = "/image_pull_creds.v1.ImagePullCredsService/SetupImagePullCreds"


@pytest.fixture
def reconciler():
    return MagicMock()


@pytest.fixture
def api(reconciler):
    return TestClient(create_app(reconciler))


class TestSetupImagePullCreds:
    """Tests for the RPC endpoint."""

    def test_path_matches_procedure(self):
        assert C.RPC_SETUP_IMAGE_PULL_CREDS == PATH

    def test_success_returns_empty_message(self, api, reconciler):
        response = api.post(PATH, json={"namespaces": ["a", "b"]})

        assert response.status_code == 200
        assert response.json() == {}
        reconciler.setup_image_pull_creds.assert_called_once_with(["a", "b"])

    def test_empty_message(self, api, reconciler):
        response = api.post(PATH, json={})

        assert response.status_code == 200
        reconciler.setup_image_pull_creds.assert_called_once_with([])

    def test_no_body(self, api, reconciler):
        response = api.post(PATH)

        assert response.status_code == 200
        reconciler.setup_image_pull_creds.assert_called_once_with([])

    def test_reconcile_error(self, api, reconciler):
        reconciler.setup_image_pull_creds.side_effect = ReconcileError(
            "error updating secret", "team-a", "(409) Conflict"
        )

        response = api.post(PATH, json={})

        assert response.status_code == 500
        assert response.json() == {
            "code": "unknown",
            "message": "error updating secret in namespace team-a: (409) Conflict",
        }

    def test_provider_error(self, api, reconciler):
        reconciler.setup_image_pull_creds.side_effect = ProviderError("error getting token")

        response = api.post(PATH, json={})

        assert response.status_code == 500
        assert response.json()["code"] == "unknown"

    def test_busy(self, api, reconciler):
        reconciler.setup_image_pull_creds.side_effect = ReconcileBusyError("still running")

        response = api.post(PATH, json={})

        assert response.status_code == 503
        assert response.json() == {"code": "unavailable", "message": "still running"}

    def test_unexpected_error(self, api, reconciler):
        reconciler.setup_image_pull_creds.side_effect = RuntimeError("nil pointer")

        response = api.post(PATH, json={})

        assert response.status_code == 500
        assert response.json() == {"code": "internal", "message": "internal error"}

    def test_null_namespaces(self, api, reconciler):
        response = api.post(PATH, json={"namespaces": None})

        assert response.status_code == 200
        assert response.json() == {}
        reconciler.setup_image_pull_creds.assert_called_once_with([])

    def test_invalid_message(self, api, reconciler):
        response = api.post(PATH, json={"namespaces": "default"})

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_argument"
        reconciler.setup_image_pull_creds.assert_not_called()

    def test_end_to_end_with_fake_cluster(self):
        core = FakeCoreV1Api(["default", "kube-system"])
        core.add_service_account("default", "default")
        provider = MagicMock()
        provider.create_docker_cfg.return_value = PAYLOAD
        api = TestClient(create_app(Reconciler(provider, client_factory=lambda: core)))

        response = api.post(PATH, json={})

        assert response.status_code == 200
        assert ("default", C.IMAGE_PULL_SECRET_NAME) in core.secrets
        assert ("kube-system", C.IMAGE_PULL_SECRET_NAME) not in core.secrets
        assert core.pull_secret_names("default", "default") == [C.IMAGE_PULL_SECRET_NAME]


def test_healthz(api):
    response = api.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"ok": True}
