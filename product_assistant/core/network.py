"""Server URL logging at startup (local + LAN addresses)."""

import logging
import socket

logger = logging.getLogger(__name__)


def get_network_ips() -> list[str]:
    """Non-loopback IPv4 addresses of this host, de-duplicated, in resolver order."""
    try:
        infos = socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET)
    except OSError as e:
        logger.warning("[network] could not resolve host addresses: %s", e)
        return []
    ips: list[str] = []
    for info in infos:
        ip = info[4][0]
        if not ip.startswith("127.") and ip not in ips:
            ips.append(ip)
    return ips


def log_server_urls(port: int) -> None:
    logger.info("Local URL: http://localhost:%d", port)
    ips = get_network_ips()
    if not ips:
        logger.info("No network interfaces detected.")
        return
    logger.info("Network URLs:")
    for ip in ips:
        logger.info("  http://%s:%d", ip, port)
