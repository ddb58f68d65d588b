import argparse
import datetime
import ipaddress
import logging
import os

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from . import config

logger = logging.getLogger("server.certs")


def generate_self_signed(cert_path, key_path, hostname="127.0.0.1", days=365):
    """Write a self-signed RSA certificate and key for the TLS listener."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, hostname)])
    now = datetime.datetime.now(datetime.timezone.utc)
    try:
        alt_name = x509.IPAddress(ipaddress.ip_address(hostname))
    except ValueError:
        alt_name = x509.DNSName(hostname)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=days))
        .add_extension(x509.SubjectAlternativeName([alt_name]), critical=False)
        .sign(key, hashes.SHA256())
    )
    for path in (cert_path, key_path):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
    with open(key_path, "wb") as f:
        f.write(key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ))
    with open(cert_path, "wb") as f:
        f.write(cert.public_bytes(serialization.Encoding.PEM))
    logger.info(f"Certificate written to {cert_path}, key to {key_path}")
    return cert


def load_certificate(cert_path):
    with open(cert_path, "rb") as f:
        return x509.load_pem_x509_certificate(f.read())


def ensure_certificate(cert_path=config.CERT, key_path=config.KEY, hostname=config.HOST):
    if os.path.exists(cert_path) and os.path.exists(key_path):
        return load_certificate(cert_path)
    logger.info("No TLS certificate found, generating a self-signed one")
    return generate_self_signed(cert_path, key_path, hostname)


def main():
    parser = argparse.ArgumentParser(description="Generate the ballot server TLS certificate")
    parser.add_argument("--cert", default=config.CERT)
    parser.add_argument("--key", default=config.KEY)
    parser.add_argument("--hostname", default=config.HOST)
    parser.add_argument("--days", type=int, default=365)
    args = parser.parse_args()
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    generate_self_signed(args.cert, args.key, args.hostname, args.days)


if __name__ == "__main__":
    main()
