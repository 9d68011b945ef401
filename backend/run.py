import os
import socket

from store import create_app

app = create_app()


def _port_free(port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.settimeout(0.2)
        return sock.connect_ex(("127.0.0.1", port)) != 0


def pick_port() -> int:
    """PORT when free, else PORT_FALLBACK (local dev with a stale server)."""
    port = int(os.getenv("PORT", "5000"))
    fallback = int(os.getenv("PORT_FALLBACK", "5001"))
    if _port_free(port) or fallback == port or not _port_free(fallback):
        return port
    app.logger.warning("Port %s is busy, serving the catalog on %s", port, fallback)
    return fallback


if __name__ == '__main__':
    app.run(
        host=os.getenv("HOST", "0.0.0.0"),
        port=pick_port(),
        debug=app.config['FLASK_ENV'] == 'development',
    )
