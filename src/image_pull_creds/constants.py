"""Default values and constants for image-pull-creds."""

# Service name
SERVICE_NAME = "image-pull-creds"

# =============================================================================
# Pull Secret
# =============================================================================

IMAGE_PULL_SECRET_NAME = "auto-image-pull-creds"
IMAGE_PULL_SECRET_TYPE = "kubernetes.io/dockercfg"
IMAGE_PULL_SECRET_KEY = ".dockercfg"

# System and bookkeeping namespaces skipped when no allow-list is given
DEFAULT_IGNORED_NAMESPACES = frozenset({
    "kube-system",
    "kube-node-lease",
    "kube-public",
})

# =============================================================================
# GCP Provider
# =============================================================================

GCP_TOKEN_USERNAME = "oauth2accesstoken"
GCP_TOKEN_EMAIL = "none"
GCP_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]
DEFAULT_GCP_REGISTRIES = "https://us-docker.pkg.dev"

# =============================================================================
# RPC
# =============================================================================

RPC_SERVICE = "image_pull_creds.v1.ImagePullCredsService"
RPC_SETUP_IMAGE_PULL_CREDS = f"/{RPC_SERVICE}/SetupImagePullCreds"

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080

# =============================================================================
# Labels
# =============================================================================

LABEL_MANAGED_BY = "app.kubernetes.io/managed-by"
