import hashlib
import secrets

from Crypto.Hash import SHA256
from Crypto.PublicKey import RSA
from Crypto.Signature import pkcs1_15

CHALLENGE_SIZE = 32


def import_public_key(pubkey_hex):
    return RSA.import_key(bytes.fromhex(pubkey_hex))


def principal_for(public_key):
    """Address-like identity for an RSA public key: 0x + 40 hex chars."""
    der = public_key.export_key(format="DER")
    return "0x" + hashlib.sha256(der).hexdigest()[:40]


def new_challenge():
    return secrets.token_bytes(CHALLENGE_SIZE)


def sign_challenge(private_key, challenge):
    return pkcs1_15.new(private_key).sign(SHA256.new(challenge)).hex()


def verify_challenge(public_key, challenge, signature_hex):
    try:
        pkcs1_15.new(public_key).verify(SHA256.new(challenge), bytes.fromhex(signature_hex))
        return True
    except (ValueError, TypeError):
        return False
