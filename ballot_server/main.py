import eventlet
eventlet.monkey_patch()
import argparse
import json
import logging
import socket
import ssl
import threading

from . import config
from .bulletin import create_bulletin
from .certs import ensure_certificate
from .deploy import deploy
from .handler import handle_client
from .identity import import_public_key, principal_for

logger = logging.getLogger("server.main")


def admin_from_wallet(wallet_path):
    with open(wallet_path, "r") as f:
        data = json.load(f)
    pubkey_hex = data.get("public_key")
    if not pubkey_hex:
        raise ValueError(f"Wallet {wallet_path} has no public key. Run 'init' on it first.")
    return principal_for(import_public_key(pubkey_hex))


def start_bulletin(engine, host, port):
    app, socketio = create_bulletin(engine, async_mode="eventlet")
    socketio.run(app, host=host, port=port)


def serve(engine, host, port, cert, key):
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(certfile=cert, keyfile=key)
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM, 0) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(5)
        logger.info(f"Listening on {host}:{port} (TLS)")
        with context.wrap_socket(sock, server_side=True) as ssock:
            try:
                while True:
                    try:
                        conn, addr = ssock.accept()
                    except ssl.SSLError as e:
                        logger.warning(f"TLS handshake failed: {e}")
                        continue
                    threading.Thread(target=handle_client, args=(conn, addr, engine), daemon=True).start()
            except KeyboardInterrupt:
                logger.info("Shutting down server.")
            finally:
                logger.info("Socket closed.")


def main():
    parser = argparse.ArgumentParser(description="Ballot engine server")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--admin", help="Administrator principal (0x...)")
    group.add_argument("--admin-wallet", default=config.ADMIN_WALLET,
                       help="Wallet whose key becomes the administrator")
    parser.add_argument("--host", default=config.HOST)
    parser.add_argument("--port", type=int, default=config.PORT)
    parser.add_argument("--bulletin-host", default=config.BULLETIN_HOST)
    parser.add_argument("--bulletin-port", type=int, default=config.BULLETIN_PORT)
    parser.add_argument("--cert", default=config.CERT)
    parser.add_argument("--key", default=config.KEY)
    parser.add_argument("--record", default=config.DEPLOYMENT_RECORD,
                        help="Where to write the deployment record")
    args = parser.parse_args()

    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)

    administrator = args.admin or admin_from_wallet(args.admin_wallet)
    ensure_certificate(args.cert, args.key, args.host)
    engine, record = deploy(administrator, args.record, args.host, args.port, args.bulletin_port)
    logger.info(f"Deployment summary: {json.dumps(record)}")

    threading.Thread(target=start_bulletin, args=(engine, args.bulletin_host, args.bulletin_port),
                     daemon=True).start()
    logger.info(f"Bulletin board running at {record['bulletin_url']}")
    serve(engine, args.host, args.port, args.cert, args.key)


if __name__ == "__main__":
    main()
