from datetime import datetime
from datetime import timezone

from etcdpki.constants import CA_REFRESH
from etcdpki.constants import CERT_REFRESH

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
CA_ROTATION_DUE = NOW + CA_REFRESH
LEAF_REFRESH_DUE = NOW + CERT_REFRESH

SERVER_SANS_FOR_10_0_0_5 = {
    "localhost",
    "etcd.kube-system.svc",
    "etcd.kube-system.svc.cluster.local",
    "etcd.openshift-etcd.svc",
    "etcd.openshift-etcd.svc.cluster.local",
    "127.0.0.1",
    "::1",
    "10.0.0.5",
}

REQUESTED_CIPHERS = ["TLS_AES_128_GCM_SHA256", "BOGUS_CIPHER"]
