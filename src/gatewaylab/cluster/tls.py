"""Self-signed certificate generation for the Gateway HTTPS listener."""

import datetime

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID


def generate_self_signed(
    domain: str, days: int = 365, key_size: int = 2048
) -> tuple[str, str]:
    """Generate a wildcard certificate for ``*.<domain>`` (plus ``localhost``).

    The key is not encrypted so it can be loaded straight into a TLS secret.

    Returns:
        Tuple of (cert_pem, key_pem)
    """
    key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    wildcard = f"*.{domain}"
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, wildcard)])

    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=days))
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName(wildcard), x509.DNSName("localhost")]),
            critical=False,
        )
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )

    cert_pem = cert.public_bytes(serialization.Encoding.PEM).decode()
    key_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    return cert_pem, key_pem
