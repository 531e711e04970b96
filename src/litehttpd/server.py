from __future__ import annotations

import logging
import socket
import threading
from concurrent.futures import ThreadPoolExecutor

from .config import Config
from .http_utils import (
    HttpRequest,
    HttpResponse,
    MalformedRequest,
    RequestTooLarge,
    content_type_for,
    read_http_request,
    send_response,
    text_response,
)
from .paths import PathKind, resolve_path, resolve_script
from .scripts import build_invocation, run_script

logger = logging.getLogger(__name__)

SCRIPT_CONTENT_TYPE = "text/plain"


def create_listener(config: Config) -> socket.socket:
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        server.bind((config.bind, config.port))
        server.listen(128)
    except OSError:
        server.close()
        raise
    return server


def serve_forever(server: socket.socket, config: Config) -> None:
    """Accept connections until the listener is closed.

    Each connection gets its own daemon thread. When ``max_connections`` is
    set, connections are handed to a pool of that many workers instead and
    the rest wait in its queue.
    """
    pool = ThreadPoolExecutor(max_workers=config.max_connections) if config.max_connections else None
    host, port = server.getsockname()[:2]
    logger.info("litehttpd listening on %s:%s", host, port)
    try:
        with server:
            while True:
                try:
                    conn, addr = server.accept()
                except OSError as exc:
                    if server.fileno() == -1:
                        return
                    logger.warning("Error accepting connection: %s", exc)
                    continue
                if pool is not None:
                    pool.submit(_handle_client, conn, addr, config)
                    continue
                thread = threading.Thread(
                    target=_handle_client,
                    args=(conn, addr, config),
                    daemon=True,
                )
                thread.start()
    finally:
        if pool is not None:
            pool.shutdown(wait=False)


def _handle_client(conn: socket.socket, addr: tuple[str, int], config: Config) -> None:
    with conn:
        try:
            handle_connection(conn, addr, config)
        except Exception:
            logger.exception("Client handling failed for %s:%s", addr[0], addr[1])


def handle_connection(conn: socket.socket, addr: tuple[str, int], config: Config) -> None:
    conn.settimeout(config.read_timeout)
    try:
        request = read_http_request(conn, config.max_request_bytes)
    except RequestTooLarge as exc:
        logger.warning("Rejecting request from %s:%s: %s", addr[0], addr[1], exc)
        send_response(conn, text_response(400))
        return
    except MalformedRequest as exc:
        logger.warning("Malformed request from %s:%s: %s", addr[0], addr[1], exc)
        send_response(conn, text_response(405))
        return
    except OSError as exc:
        logger.debug("Read from %s:%s failed: %s", addr[0], addr[1], exc)
        return
    if request is None:
        return
    conn.settimeout(None)

    response = handle_request(request, config)
    logger.info(
        "%s:%s %s %r %s",
        addr[0],
        addr[1],
        request.method,
        request.target,
        response.status,
    )
    send_response(conn, response)


def handle_request(request: HttpRequest, config: Config) -> HttpResponse:
    if request.method == "GET":
        return serve_static(request.target, config)
    if request.method == "POST":
        return serve_script(request, config)
    logger.warning("Unsupported request method: %s", request.method)
    return text_response(405)


def serve_static(target: str, config: Config) -> HttpResponse:
    resolved = resolve_path(target, config.root)
    if resolved.kind is PathKind.MISSING:
        return text_response(404)
    if not resolved.is_file:
        return text_response(403)

    try:
        body = resolved.path.read_bytes()
    except OSError as exc:
        logger.warning("Failed to read %s: %s", resolved.path, exc)
        return text_response(500)
    return HttpResponse(status=200, content_type=content_type_for(resolved.path), body=body)


def serve_script(request: HttpRequest, config: Config) -> HttpResponse:
    resolved = resolve_script(request.target, config.root, config.scripts_dir)
    if resolved.kind is PathKind.MISSING:
        return text_response(404)
    if not resolved.is_file:
        return text_response(403)

    invocation = build_invocation(request.method, resolved.path, request.headers)
    result = run_script(invocation, timeout=config.script_timeout)
    if result.ok:
        return HttpResponse(status=200, content_type=SCRIPT_CONTENT_TYPE, body=result.stdout)
    return text_response(500, result.stderr)
