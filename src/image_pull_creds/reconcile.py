"""Distribute the pull secret to namespaces and their service accounts.

A run fetches the credential payload once, then walks every namespace the
cluster lists. For each namespace in scope it upserts the
``auto-image-pull-creds`` secret and makes sure every service account
references it. The first failure ends the run; whatever was applied before
stays applied and the next successful run converges the rest.
"""

import base64
import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

from kubernetes import client
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from . import constants as C
from .cluster import get_core_client
from .exceptions import ReconcileBusyError, ReconcileError
from .provider import Provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    """Summary of a completed run."""

    namespaces: int
    service_accounts_patched: int


def namespace_filter(allow_list: Optional[Iterable[str]], ignored: Iterable[str]) -> Callable[[str], bool]:
    """Build the in-scope predicate for a run.

    A non-empty allow-list selects exactly its members, even ones in the
    ignore set. Without one, every namespace outside the ignore set is in
    scope.
    """
    allowed = set(allow_list or ())
    if allowed:
        return lambda name: name in allowed

    ignored = frozenset(ignored)
    return lambda name: name not in ignored


# Failures a cluster call can raise: API errors and transport errors
CLUSTER_ERRORS = (ApiException, HTTPError)


def _reason(e: Exception) -> str:
    if not isinstance(e, ApiException):
        return str(e)

    reason = f"({e.status}) {e.reason}"
    if not e.body:
        return reason
    body = e.body.decode("utf-8", "replace") if isinstance(e.body, bytes) else str(e.body)
    try:
        status = json.loads(body)
    except ValueError:
        return f"{reason}: {body}"
    # Kubernetes Status objects carry the server-side explanation in "message"
    if isinstance(status, dict) and status.get("message"):
        return f"{reason}: {status['message']}"
    return f"{reason}: {body}"


def ensure_image_pull_secret(core: client.CoreV1Api, namespace: str, dockercfg: bytes, **opts: Any) -> None:
    """Create or update the pull secret in ``namespace`` with ``dockercfg``."""
    encoded = base64.b64encode(dockercfg).decode("ascii")

    try:
        existing = core.read_namespaced_secret(C.IMAGE_PULL_SECRET_NAME, namespace, **opts)
    except CLUSTER_ERRORS as e:
        if not isinstance(e, ApiException) or e.status != 404:
            raise ReconcileError("error reading secret", namespace, _reason(e)) from e

        secret = client.V1Secret(
            api_version="v1",
            kind="Secret",
            type=C.IMAGE_PULL_SECRET_TYPE,
            metadata=client.V1ObjectMeta(
                name=C.IMAGE_PULL_SECRET_NAME,
                namespace=namespace,
                labels={C.LABEL_MANAGED_BY: C.SERVICE_NAME},
            ),
            data={C.IMAGE_PULL_SECRET_KEY: encoded},
        )
        try:
            core.create_namespaced_secret(namespace, secret, **opts)
        except CLUSTER_ERRORS as e:
            raise ReconcileError("error creating secret", namespace, _reason(e)) from e
        logger.info(f"Created secret {namespace}/{C.IMAGE_PULL_SECRET_NAME}")
        return

    data = dict(existing.data or {})
    data[C.IMAGE_PULL_SECRET_KEY] = encoded
    existing.data = data
    try:
        core.replace_namespaced_secret(C.IMAGE_PULL_SECRET_NAME, namespace, existing, **opts)
    except CLUSTER_ERRORS as e:
        raise ReconcileError("error updating secret", namespace, _reason(e)) from e
    logger.info(f"Updated secret {namespace}/{C.IMAGE_PULL_SECRET_NAME}")


def ensure_service_accounts(core: client.CoreV1Api, namespace: str, **opts: Any) -> int:
    """Add the pull secret reference to every service account lacking it.

    Returns the number of service accounts that were updated.
    """
    try:
        accounts = core.list_namespaced_service_account(namespace, **opts).items
    except CLUSTER_ERRORS as e:
        raise ReconcileError("error listing service accounts", namespace, _reason(e)) from e

    patched = 0
    for acct in accounts:
        name = acct.metadata.name
        refs = list(acct.image_pull_secrets or [])
        if any(ref.name == C.IMAGE_PULL_SECRET_NAME for ref in refs):
            logger.debug(f"Service account {namespace}/{name} already references the secret")
            continue

        refs.append(client.V1LocalObjectReference(name=C.IMAGE_PULL_SECRET_NAME))
        acct.image_pull_secrets = refs
        try:
            core.replace_namespaced_service_account(name, namespace, acct, **opts)
        except CLUSTER_ERRORS as e:
            raise ReconcileError(f"error updating service account {name}", namespace, _reason(e)) from e
        logger.info(f"Patched service account {namespace}/{name}")
        patched += 1

    return patched


class Reconciler:
    """Runs reconciliations one at a time."""

    def __init__(
        self,
        provider: Provider,
        client_factory: Callable[[], client.CoreV1Api] = get_core_client,
        ignored_namespaces: Iterable[str] = C.DEFAULT_IGNORED_NAMESPACES,
        request_timeout: Optional[float] = None,
        lock_timeout: Optional[float] = None,
    ):
        self.provider = provider
        self.client_factory = client_factory
        self.ignored_namespaces = frozenset(ignored_namespaces)
        self.lock_timeout = lock_timeout
        self._opts: Dict[str, Any] = {}
        if request_timeout is not None:
            self._opts["_request_timeout"] = request_timeout
        self._lock = threading.Lock()

    def _acquire(self) -> None:
        if self.lock_timeout is None:
            self._lock.acquire()
        elif not self._lock.acquire(timeout=self.lock_timeout):
            raise ReconcileBusyError(
                f"another reconciliation is still running after {self.lock_timeout}s"
            )

    def setup_image_pull_creds(self, namespaces: Optional[Iterable[str]] = None) -> ReconcileResult:
        """Run one reconciliation.

        Args:
            namespaces: Optional allow-list of target namespaces. Empty or
                None selects every namespace outside the ignore set.

        Raises:
            ClusterConnectionError: If no client could be built.
            ProviderError: If the credential payload could not be fetched.
            ReconcileError: If any cluster call failed.
            ReconcileBusyError: If the lock wait timed out.
        """
        self._acquire()
        try:
            return self._run(namespaces)
        finally:
            self._lock.release()

    def _run(self, namespaces: Optional[Iterable[str]]) -> ReconcileResult:
        logger.debug("getting k8s client")
        core = self.client_factory()

        logger.debug("getting docker config from provider")
        dockercfg = self.provider.create_docker_cfg()

        logger.debug("listing namespaces")
        try:
            ns_list = core.list_namespace(**self._opts).items
        except CLUSTER_ERRORS as e:
            raise ReconcileError("error listing namespaces", reason=_reason(e)) from e

        in_scope = namespace_filter(namespaces, self.ignored_namespaces)
        processed = 0
        patched = 0
        for ns in ns_list:
            name = ns.metadata.name
            if not in_scope(name):
                continue

            logger.debug(f"processing namespace {name}")
            ensure_image_pull_secret(core, name, dockercfg, **self._opts)
            patched += ensure_service_accounts(core, name, **self._opts)
            processed += 1

        logger.info(f"Reconciled {processed} namespace(s), patched {patched} service account(s)")
        return ReconcileResult(namespaces=processed, service_accounts_patched=patched)
