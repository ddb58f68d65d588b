from cryptography import x509
from cryptography.hazmat.primitives import serialization

from ballot_server.certs import ensure_certificate, generate_self_signed, load_certificate


def test_generate_self_signed(tmp_path):
    cert_path = tmp_path / "tls" / "cert.pem"
    key_path = tmp_path / "tls" / "key.pem"
    cert = generate_self_signed(str(cert_path), str(key_path), "127.0.0.1", days=2)

    loaded = load_certificate(str(cert_path))
    assert loaded.serial_number == cert.serial_number
    san = loaded.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    assert [str(ip) for ip in san.get_values_for_type(x509.IPAddress)] == ["127.0.0.1"]

    key = serialization.load_pem_private_key(key_path.read_bytes(), password=None)
    assert key.public_key().public_numbers() == loaded.public_key().public_numbers()


def test_hostname_goes_into_dns_name(tmp_path):
    cert = generate_self_signed(str(tmp_path / "c.pem"), str(tmp_path / "k.pem"), "ballot.local")
    san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    assert san.get_values_for_type(x509.DNSName) == ["ballot.local"]


def test_ensure_reuses_existing(tmp_path):
    cert_path, key_path = str(tmp_path / "cert.pem"), str(tmp_path / "key.pem")
    first = ensure_certificate(cert_path, key_path, "127.0.0.1")
    second = ensure_certificate(cert_path, key_path, "127.0.0.1")
    assert first.serial_number == second.serial_number
