import argparse
import getpass
import json
import logging
import os

from Crypto.PublicKey import RSA

from ballot_server.identity import sign_challenge

logger = logging.getLogger("client.wallet")

KEY_SIZE = 2048


class WalletError(Exception):
    pass


class Wallet:
    """JSON file holding the caller's RSA key and last known principal."""

    def __init__(self, path, passphrase=None):
        self.path = path
        self.passphrase = passphrase
        self.data = {}
        self._key = None

    def save(self):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self.data, f, indent=2)

    def load(self):
        if os.path.exists(self.path):
            with open(self.path, "r") as f:
                self.data = json.load(f)
        return self

    def set(self, key, value):
        self.data[key] = value

    def get(self, key):
        return self.data.get(key, None)

    def init(self, key_size=KEY_SIZE):
        key = RSA.generate(key_size)
        if self.passphrase:
            pem = key.export_key(pkcs=8, passphrase=self.passphrase, protection="scryptAndAES128-CBC")
        else:
            pem = key.export_key(pkcs=8)
        self.set("private_key", pem.decode())
        self.set("public_key", key.publickey().export_key(format="DER").hex())
        self.data.pop("principal", None)
        self._key = key
        self.save()
        logger.info(f"Wallet initialized and saved to {self.path}")
        return self

    def is_initialized(self):
        return bool(self.get("private_key") and self.get("public_key"))

    def private_key(self):
        if self._key is None:
            pem = self.get("private_key")
            if not pem:
                raise WalletError(f"Wallet {self.path} has no key. Run 'init' first.")
            try:
                self._key = RSA.import_key(pem, passphrase=self.passphrase)
            except (ValueError, IndexError, TypeError) as e:
                raise WalletError(f"Could not unlock wallet {self.path}: {e}") from e
        return self._key

    def public_key_hex(self):
        pubkey_hex = self.get("public_key")
        if not pubkey_hex:
            raise WalletError(f"Wallet {self.path} has no key. Run 'init' first.")
        return pubkey_hex

    def sign(self, challenge):
        return sign_challenge(self.private_key(), challenge)

    @property
    def principal(self):
        return self.get("principal")

    def remember_principal(self, principal):
        if self.principal != principal:
            self.set("principal", principal)
            self.save()


def open_wallet(path, passphrase=None, create=False):
    wallet = Wallet(path, passphrase).load()
    if not wallet.is_initialized():
        if not create:
            raise WalletError(f"Wallet {path} is not initialized. Run 'init' first.")
        wallet.init()
    return wallet


def main():
    parser = argparse.ArgumentParser(description="Ballot Wallet Manager")
    parser.add_argument("wallet", help="Path to wallet JSON file")
    parser.add_argument("mode", choices=["init", "show"])
    parser.add_argument("--passphrase", action="store_true",
                        help="Protect (init) or unlock (show) the key with a passphrase")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    passphrase = getpass.getpass("Wallet passphrase: ") if args.passphrase else None
    wallet = Wallet(args.wallet, passphrase)
    if args.mode == "init":
        if wallet.load().is_initialized():
            logger.error(f"Wallet {args.wallet} already holds a key; refusing to overwrite it.")
            return
        wallet.init()
    elif args.mode == "show":
        wallet.load()
        print(f"Public key: {wallet.get('public_key')}")
        print(f"Principal:  {wallet.principal or 'unknown until first connection'}")


if __name__ == "__main__":
    main()
