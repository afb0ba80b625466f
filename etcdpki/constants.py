from datetime import timedelta

# Validity windows. Refresh is measured from notBefore.
CA_VALIDITY = timedelta(days=5 * 365)
CA_REFRESH = timedelta(days=int(4.5 * 365))
CERT_VALIDITY = timedelta(days=3 * 365)
CERT_REFRESH = timedelta(days=int(2.5 * 365))

# Backdating of notBefore, tolerates small clock skew between nodes.
NOT_BEFORE_SKEW = timedelta(seconds=1)

RSA_KEY_SIZE = 2048

PEER_ORG = "system:etcd-peers"
SERVER_ORG = "system:etcd-servers"
METRIC_ORG = "system:etcd-metrics"

# Placeholder identity used where no per-node identity is known (offline issuance).
PLACEHOLDER_IDENTITY = "etcd-client"

CLIENT_USER = "etcd-client"
CLIENT_GROUPS = ("system:etcd", "etcd-client")
METRICS_CLIENT_USER = "etcd-metric"
METRICS_CLIENT_GROUPS = ("system:etcd", "etcd-metric")

LOCALHOST = "localhost"
SERVICE_HOSTNAMES = (
    "etcd.kube-system.svc",
    "etcd.kube-system.svc.cluster.local",
    "etcd.openshift-etcd.svc",
    "etcd.openshift-etcd.svc.cluster.local",
)
# "0:0:0:0:0:0:0:1" collapses to "::1" once parsed.
LOOPBACK_IPS = ("127.0.0.1", "::1")

OPERATOR_NAMESPACE = "openshift-etcd-operator"
TARGET_NAMESPACE = "openshift-etcd"
CONFIG_NAMESPACE = "openshift-config"
KUBE_SYSTEM_NAMESPACE = "kube-system"

ETCD_SIGNER_SECRET = "etcd-signer"
ETCD_SIGNER_BUNDLE = "etcd-ca-bundle"
ETCD_METRICS_SIGNER_SECRET = "etcd-metric-signer"
ETCD_METRICS_SIGNER_BUNDLE = "etcd-metrics-ca-bundle"
ETCD_CLIENT_SECRET = "etcd-client"
ETCD_METRICS_CLIENT_SECRET = "etcd-metric-client"
CLUSTER_CONFIG = "cluster-config-v1"

# Stored field names.
TLS_CERT_FIELD = "tls.crt"
TLS_KEY_FIELD = "tls.key"
CA_BUNDLE_FIELD = "ca-bundle.crt"

NOT_BEFORE_ANNOTATION = "auth.openshift.io/certificate-not-before"
NOT_AFTER_ANNOTATION = "auth.openshift.io/certificate-not-after"
ISSUER_ANNOTATION = "auth.openshift.io/certificate-issuer"
DESCRIPTION_ANNOTATION = "openshift.io/description"

CONTROL_PLANE_NODE_SELECTOR = "node-role.kubernetes.io/master"


def peer_secret_name(node_name: str) -> str:
    return f"etcd-peer-{node_name}"


def serving_secret_name(node_name: str) -> str:
    return f"etcd-serving-{node_name}"


def serving_metrics_secret_name(node_name: str) -> str:
    return f"etcd-serving-metrics-{node_name}"
