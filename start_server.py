"""
Automatic server starter for the CSAT survey API.
This script detects the local IP, picks a free port and starts the server.
"""

import sys
import socket
import logging

import config

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


def get_local_ip():
    """Get the local IP address of the machine."""
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.connect(("8.8.8.8", 80))
        local_ip = s.getsockname()[0]
        s.close()
        return local_ip
    except OSError as e:
        logger.error(f"Error getting local IP: {e}")
        return "127.0.0.1"


def check_port_available(host, port):
    """Check if a port is available."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host, port))
        return True
    except OSError:
        return False
    finally:
        sock.close()


def start_server():
    """Start the API server with automatic configuration."""
    logger.info("=" * 60)
    logger.info(f"{config.APP_NAME} - Starting Server")
    logger.info("=" * 60)

    host_ip = get_local_ip()
    logger.info(f"Detected Local IP: {host_ip}")

    ports_to_try = [config.PORT, 4001, 5000, 8080, 8000]
    selected_port = None

    for port in ports_to_try:
        if check_port_available("0.0.0.0", port):
            selected_port = port
            logger.info(f"Port {port} is available")
            break
        else:
            logger.warning(f"Port {port} is already in use")

    if not selected_port:
        logger.error("No available ports found. Please close other applications.")
        sys.exit(1)

    logger.info(f"Selected Port: {selected_port}")
    logger.info("=" * 60)
    logger.info("Server will be accessible at:")
    logger.info(f"  Local:   http://localhost:{selected_port}")
    logger.info(f"  Network: http://{host_ip}:{selected_port}")
    logger.info(f"  Allowed origin: {config.APP_ORIGIN}")
    logger.info("=" * 60)
    logger.info("Press Ctrl+C to stop the server")
    logger.info("=" * 60)

    try:
        from app import create_asgi_app
        import uvicorn

        uvicorn.run(
            create_asgi_app(),
            host="0.0.0.0",
            port=selected_port,
            log_config=None
        )
    except KeyboardInterrupt:
        logger.info("\nServer stopped by user")


if __name__ == "__main__":
    start_server()
