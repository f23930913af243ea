"""HTTP front end exposing graph initialisation and path queries."""

from __future__ import annotations

import argparse
import json
import logging
import random
import sys
import threading
import time
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Iterable, Mapping
from urllib.parse import urlsplit

from graphquery.graph import Graph, trim
from graphquery.resilience import (
    CircuitBreaker,
    RateLimiter,
    sanitize_input,
    should_compress_response,
)

logger = logging.getLogger(__name__)

SERVER_ID = "GraphQueryServer/1.0"
MAX_PAYLOAD_SIZE = 5 * 1024 * 1024
MAX_GRAPH_SIZE = 10 * 1024 * 1024
MAX_REQUESTS_PER_MINUTE = 10
MAX_PAYLOAD_REQUESTS_PER_MINUTE = 10
SUPPORTED_CONTENT_TYPES = ("text/plain", "application/json")
ENDPOINTS = "/heartbeat, /graph_info, /initialize, /shortest_path, /prime_path"
SLOW_QUERY_MS = 9000

_ERROR_TEXTS: dict[int, tuple[str, str]] = {
    400: ("Bad Request", "The request could not be understood due to malformed syntax."),
    404: (
        "Not Found",
        "The requested resource could not be found. Available endpoints: " + ENDPOINTS,
    ),
    408: (
        "Request Timeout",
        "The server timed out waiting for the request. "
        "Please try again with a simpler query or smaller payload.",
    ),
    413: (
        "Payload Too Large",
        "The request payload exceeds the server's limits. Max size for graph initialization: "
        f"{MAX_GRAPH_SIZE // 1024 // 1024}MB, other requests: "
        f"{MAX_PAYLOAD_SIZE // 1024 // 1024}MB.",
    ),
    429: (
        "Too Many Requests",
        "You have sent too many requests in a given amount of time. "
        "Please wait before trying again.",
    ),
    500: (
        "Internal Server Error",
        "The server encountered an unexpected condition. Please report this issue.",
    ),
    503: (
        "Service Unavailable",
        "The server is currently unable to handle the request due to temporary "
        "overloading or maintenance.",
    ),
    507: (
        "Insufficient Storage",
        "The server has insufficient storage to complete the request. "
        "Try with a smaller graph.",
    ),
}
_ERROR_RETRY_AFTER = {429: "60", 503: "120"}


@dataclass
class Response:
    """An HTTP response as produced by :class:`GraphQueryService`."""

    status: int = 200
    body: str = ""
    content_type: str = "text/plain"
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class _Request:
    method: str
    path: str
    headers: dict[str, str]
    body: str
    size: int
    remote_addr: str

    def wants_json(self) -> bool:
        return "application/json" in self.headers.get("accept", "")


def error_response(status: int) -> Response:
    """Build the standard error body and headers for ``status``."""
    message, info = _ERROR_TEXTS.get(status, ("Unknown error", ""))
    body = f"{message}: {info}" if info else message
    headers = {
        "X-Request-ID": str(random.randint(10000000, 99999999)),
        "Server": SERVER_ID,
        "Cache-Control": "no-store, must-revalidate",
        "Pragma": "no-cache",
    }
    if status in _ERROR_RETRY_AFTER:
        headers["Retry-After"] = _ERROR_RETRY_AFTER[status]
    return Response(status=status, body=body, headers=headers)


def _normalize_headers(headers: Mapping[str, str] | Any | None) -> dict[str, str]:
    normalized: dict[str, str] = {}
    if headers is None:
        return normalized
    items: Iterable[tuple[str, str]] = headers.items()
    for name, value in items:
        normalized.setdefault(name.lower(), value)
    return normalized


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class GraphQueryService:
    """Routes requests to the graph and applies rate limits and circuit breakers."""

    def __init__(self, graph: Graph | None = None, clock: Callable[[], float] | None = None) -> None:
        self.graph = graph if graph is not None else Graph()
        self._clock = clock or time.monotonic
        self._started = self._clock()
        self._limiter = RateLimiter(MAX_REQUESTS_PER_MINUTE, 60.0, self._clock)
        self.shortest_path_circuit = CircuitBreaker(clock=self._clock)
        self.prime_path_circuit = CircuitBreaker(clock=self._clock)
        self._routes: dict[tuple[str, str], Callable[[_Request], Response]] = {
            ("GET", "/heartbeat"): self._heartbeat,
            ("GET", "/graph_info"): self._graph_info,
            ("POST", "/initialize"): self._initialize,
            ("POST", "/shortest_path"): self._shortest_path,
            ("POST", "/prime_path"): self._prime_path,
        }

    # ----------------------------------------------------------------- dispatch

    def handle(
        self,
        method: str,
        path: str,
        headers: Mapping[str, str] | Any | None = None,
        body: bytes | str = b"",
        remote_addr: str = "",
    ) -> Response:
        """Process one request and return the response to send."""
        raw = body.encode("utf-8") if isinstance(body, str) else bytes(body)
        request = _Request(
            method=method.upper(),
            path=urlsplit(path).path,
            headers=_normalize_headers(headers),
            body=raw.decode("utf-8", errors="replace"),
            size=len(raw),
            remote_addr=remote_addr,
        )
        route = self._routes.get((request.method, request.path))
        if route is None:
            response = Response(status=404)
        else:
            try:
                response = route(request)
            except Exception as exc:  # noqa: BLE001 - every failure becomes a 5xx reply
                response = self._exception_response(exc)
        if response.status >= 400:
            logger.error(
                "HTTP error occurred: %s for request %s %s from %s",
                response.status,
                request.method,
                request.path,
                request.remote_addr,
            )
            error = error_response(response.status)
            response.headers.update(error.headers)
            response.body = error.body
            response.content_type = error.content_type
        return response

    @staticmethod
    def _exception_response(exc: Exception) -> Response:
        response = Response(status=500)
        if isinstance(exc, (ConnectionError, TimeoutError)):
            logger.error("Network I/O error during request processing: %s", exc)
            response.status = 503
            response.headers["Retry-After"] = "30"
            response.body = "Service temporarily unavailable due to network issues"
        elif isinstance(exc, OSError):
            logger.error("System error during request processing: %s", exc)
            response.body = f"System error: {exc}"
        elif isinstance(exc, RuntimeError):
            logger.error("Runtime error during request processing: %s", exc)
            response.body = f"Server error: {exc}"
        else:
            logger.error("Exception during request processing: %s", exc)
            response.body = f"Server error: {sanitize_input(str(exc))}"
        response.headers.update(
            {
                "Server": SERVER_ID,
                "Cache-Control": "no-store, must-revalidate",
                "Pragma": "no-cache",
            }
        )
        return response

    @staticmethod
    def _rate_limited(body: str) -> Response:
        return Response(status=429, body=body, headers={"Retry-After": "60"})

    # ------------------------------------------------------------------- routes

    def _heartbeat(self, request: _Request) -> Response:
        logger.info("Received request: %s from %s", request.path, request.remote_addr)
        if not self._limiter.hit(request.remote_addr):
            return self._rate_limited("Rate limit exceeded. Please try again later.")

        uptime = int(self._clock() - self._started)
        hours, minutes, seconds = uptime // 3600, uptime // 60 % 60, uptime % 60
        shortest_open = self.shortest_path_circuit.is_open()
        prime_open = self.prime_path_circuit.is_open()
        headers = {
            "Server": SERVER_ID,
            "X-Content-Type-Options": "nosniff",
            "Cache-Control": "no-cache, max-age=0",
        }
        if request.wants_json():
            payload = {
                "status": "running",
                "server_id": SERVER_ID,
                "uptime_seconds": uptime,
                "shortest_path_available": not shortest_open,
                "prime_path_available": not prime_open,
            }
            return Response(
                body=json.dumps(payload, separators=(",", ":")),
                content_type="application/json",
                headers=headers,
            )
        status = (
            "Status: Running\n"
            f"Server ID: {SERVER_ID}\n"
            f"Uptime: {hours}h {minutes}m {seconds}s\n"
            f"Endpoints: {ENDPOINTS}\n"
            f"Content types: {', '.join(SUPPORTED_CONTENT_TYPES)}\n"
            f"ShortestPath service: {'degraded' if shortest_open else 'available'}\n"
            f"PrimePath service: {'degraded' if prime_open else 'available'}"
        )
        return Response(body=status, headers=headers)

    def _graph_info(self, request: _Request) -> Response:
        logger.info("Received request: %s from %s", request.path, request.remote_addr)
        if not self._limiter.hit(request.remote_addr):
            return self._rate_limited("Rate limit exceeded. Please try again later.")
        try:
            started = time.perf_counter()
            self.graph.print_info()
            duration = _elapsed_ms(started)
            logger.info("Graph info printed in %dms", duration)
        except Exception as exc:  # noqa: BLE001
            logger.error("Error printing graph info: %s", exc)
            return Response(
                status=500, body=f"Failed to print graph info: {sanitize_input(str(exc))}"
            )

        headers = {
            "Server": SERVER_ID,
            "X-Processing-Time": f"{duration}ms",
            "Cache-Control": "no-cache, max-age=0",
        }
        if request.wants_json():
            content_type = "application/json"
            body = json.dumps(
                {"message": "Graph information printed to server console.", "duration_ms": duration},
                separators=(",", ":"),
            )
        else:
            content_type = "text/plain"
            body = f"Graph information printed to server console. (Processed in {duration}ms)"
        if should_compress_response(len(body), content_type):
            headers["X-Compression-Applied"] = "would-be-gzip"
        return Response(body=body, content_type=content_type, headers=headers)

    def _initialize(self, request: _Request) -> Response:
        logger.info(
            "Received /initialize request with body size: %d bytes from %s",
            request.size,
            request.remote_addr,
        )
        if not self._limiter.hit(request.remote_addr):
            response = self._rate_limited(
                "Rate limit exceeded for large payload operations. Please try again later."
            )
            response.headers.update(
                {
                    "X-RateLimit-Limit": str(MAX_PAYLOAD_REQUESTS_PER_MINUTE),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(self._limiter.seconds_until_reset(request.remote_addr)),
                }
            )
            return response

        if request.size > MAX_GRAPH_SIZE:
            return Response(
                status=413,
                body=f"Request body too large. Maximum allowed size is "
                f"{MAX_GRAPH_SIZE // 1024 // 1024}MB",
                headers={"X-Max-Payload-Size": str(MAX_GRAPH_SIZE)},
            )
        if request.size == 0:
            return Response(
                status=400, body="Empty graph data provided. Please provide valid graph data."
            )

        content_type = request.headers.get("content-type", "")
        if (
            content_type
            and "text/plain" not in content_type
            and "application/octet-stream" not in content_type
        ):
            return Response(
                status=415,
                body="Unsupported content type. Please provide graph data as text/plain "
                "or application/octet-stream.",
            )

        lines = (trim(line) for line in request.body.split("\n"))
        if not any(line and line[0] in "*-" for line in lines):
            return Response(
                status=400,
                body="Invalid graph format. Graph data must contain node definitions "
                "(lines starting with '*') and/or edge definitions (lines starting with '-').",
            )

        try:
            started = time.perf_counter()
            self.graph.parse(sanitize_input(request.body))
            duration = _elapsed_ms(started)
            logger.info("Graph initialization completed in %dms", duration)
        except Exception as exc:  # noqa: BLE001
            logger.error("Error during graph initialization: %s", exc)
            return Response(
                status=500, body=f"Failed to initialize graph: {sanitize_input(str(exc))}"
            )

        nodes = self.graph.node_count()
        edges = self.graph.edge_count()
        headers = {
            "Server": SERVER_ID,
            "X-Processing-Time": f"{duration}ms",
            "X-Graph-Nodes": str(nodes),
            "X-Graph-Edges": str(edges),
            "Cache-Control": "no-cache, max-age=0",
        }
        if request.wants_json():
            response_type = "application/json"
            body = json.dumps(
                {
                    "status": "success",
                    "message": "Graph initialized successfully",
                    "nodes": nodes,
                    "edges": edges,
                    "duration_ms": duration,
                },
                separators=(",", ":"),
            )
        else:
            response_type = "text/plain"
            body = (
                "Graph initialized successfully:\n"
                f"- Nodes: {nodes}\n"
                f"- Edges: {edges}\n"
                f"- Processing time: {duration}ms"
            )
        if should_compress_response(len(body), response_type):
            headers["X-Compression-Applied"] = "would-be-gzip"
            headers["Content-Encoding"] = "gzip"
        return Response(body=body, content_type=response_type, headers=headers)

    def _shortest_path(self, request: _Request) -> Response:
        return self._path_query(
            request,
            name="Shortest path",
            circuit=self.shortest_path_circuit,
            query=self.graph.shortest_path_parallel,
            label="shortest path",
        )

    def _prime_path(self, request: _Request) -> Response:
        return self._path_query(
            request,
            name="Prime path",
            circuit=self.prime_path_circuit,
            query=self.graph.prime_path_parallel,
            label="prime path",
        )

    def _path_query(
        self,
        request: _Request,
        name: str,
        circuit: CircuitBreaker,
        query: Callable[[str, str], str],
        label: str,
    ) -> Response:
        logger.info(
            "Received %s request with body size: %d bytes from %s",
            request.path,
            request.size,
            request.remote_addr,
        )
        if circuit.is_open():
            return Response(
                status=503,
                body=f"{name} service is temporarily unavailable. Please try again later.",
                headers={"Retry-After": "30"},
            )
        if not self._limiter.hit(request.remote_addr):
            return self._rate_limited("Rate limit exceeded. Please try again later.")
        if request.size > MAX_PAYLOAD_SIZE:
            return Response(status=413, body="Request body too large")

        tokens = request.body.split()
        if len(tokens) < 2:
            return Response(
                status=400, body="Invalid input: start_node and end_node required"
            )
        start_node, end_node = sanitize_input(tokens[0]), sanitize_input(tokens[1])

        try:
            started = time.perf_counter()
            result = query(start_node, end_node)
            duration = _elapsed_ms(started)
        except Exception as exc:  # noqa: BLE001
            circuit.record_failure()
            logger.error("Error during %s calculation: %s", label, exc)
            return Response(
                status=500,
                body=f"Failed to calculate {label}: {sanitize_input(str(exc))}",
            )
        logger.info("%s calculation completed in %dms", name, duration)
        if duration > SLOW_QUERY_MS:
            logger.warning("%s calculation approaching timeout threshold", name)
        circuit.record_success()

        headers = {"Server": SERVER_ID, "X-Processing-Time": f"{duration}ms"}
        if request.wants_json():
            content_type = "application/json"
            body = json.dumps({"path": result, "duration_ms": duration}, separators=(",", ":"))
        else:
            content_type = "text/plain"
            body = result
        if should_compress_response(len(body), content_type):
            headers["X-Compression-Applied"] = "would-be-gzip"
        return Response(body=body, content_type=content_type, headers=headers)


def make_server(host: str, port: int, service: GraphQueryService) -> ThreadingHTTPServer:
    """Create a threaded HTTP server that forwards every request to ``service``."""

    class _Handler(BaseHTTPRequestHandler):
        protocol_version = "HTTP/1.1"
        timeout = 10

        def version_string(self) -> str:
            return SERVER_ID

        def _dispatch(self) -> None:
            try:
                length = int(self.headers.get("Content-Length") or 0)
            except ValueError:
                self.send_error(400)
                return
            body = self.rfile.read(length) if length > 0 else b""
            response = service.handle(
                self.command, self.path, self.headers, body, self.client_address[0]
            )
            payload = response.body.encode("utf-8")
            self.send_response(response.status)
            for name, value in response.headers.items():
                if name != "Server":
                    self.send_header(name, value)
            self.send_header("Content-Type", response.content_type)
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            if self.command != "HEAD":
                self.wfile.write(payload)

        do_GET = do_POST = do_PUT = do_DELETE = do_PATCH = do_HEAD = _dispatch

        def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
            logger.debug(format, *args)

    server = ThreadingHTTPServer((host, port), _Handler)
    server.daemon_threads = True
    return server


def main(argv: list[str] | None = None) -> int:
    """Run the graph query server until interrupted."""
    parser = argparse.ArgumentParser(prog="graphquery", description="Graph query HTTP server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--workers", type=int, default=None, help="threads for path searches")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    with Graph(max_workers=args.workers) as graph:
        service = GraphQueryService(graph)
        try:
            server = make_server(args.host, args.port, service)
        except OSError as exc:
            print(f"Failed to start server! ({exc})", file=sys.stderr)
            return 1
        print(f"Starting {SERVER_ID} on http://localhost:{args.port}")
        print("Press Ctrl+C to stop the server")
        print("Available endpoints:")
        for line in (
            "GET  /heartbeat",
            "GET  /graph_info",
            "POST /initialize",
            "POST /shortest_path",
            "POST /prime_path",
        ):
            print(f"  - {line}")
        with server:
            thread = threading.Thread(target=server.serve_forever, daemon=True)
            thread.start()
            try:
                thread.join()
            except KeyboardInterrupt:
                server.shutdown()
    return 0