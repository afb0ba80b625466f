from datetime import datetime
from typing import Iterable
from typing import List
from typing import Optional
from typing import Union

from cryptography import x509

from etcdpki.certs.pem import encode_certificate
from etcdpki.models.certificates import SigningAuthority
from etcdpki.models.certificates import TrustBundle


def build_bundle(*entries: Union[SigningAuthority, x509.Certificate]) -> TrustBundle:
    """
    Concatenate CA certificates, dropping byte-identical repeats and keeping first-seen order.
    Accepts signing authorities or bare certificates already present in a stored bundle.
    """
    seen = set()
    certificates: List[x509.Certificate] = []
    for entry in entries:
        certificate = entry.certificate if isinstance(entry, SigningAuthority) else entry
        pem = encode_certificate(certificate)
        if pem in seen:
            continue
        seen.add(pem)
        certificates.append(certificate)
    return TrustBundle(certificates=tuple(certificates))


def unexpired(certificates: Iterable[x509.Certificate], now: Optional[datetime]) -> List[x509.Certificate]:
    if now is None:
        return list(certificates)
    return [cert for cert in certificates if cert.not_valid_after_utc > now]
