"""Stand-in Node host for tests: speaks the nodebridge HTTP protocol.

Launched as ``python echo_worker.py --port <n> [--watch exts]``. Behaviour is
selected by the request's moduleName; startup behaviour by the
NODEBRIDGE_TEST_WORKER_MODE environment variable.
"""

import argparse
import json
import os
import sys
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

MARKER = os.environ.get("NODEBRIDGE_TEST_WORKER_MARKER", "nodebridge.HttpHost")


def announce(port: int) -> None:
    print(f"[{MARKER}:Listening on port {port}]", flush=True)


class Handler(BaseHTTPRequestHandler):
    def log_message(self, format, *args):  # noqa: A002
        pass

    def _send(self, status: int, content_type: str, body: bytes) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _json(self, value) -> None:
        self._send(200, "application/json", json.dumps(value).encode("utf-8"))

    def do_POST(self) -> None:
        length = int(self.headers.get("Content-Length") or 0)
        payload = json.loads(self.rfile.read(length) or b"{}")
        module = payload.get("moduleName")
        args = payload.get("args") or []

        if module == "echo":
            self._json(args)
        elif module == "echo-request":
            self._json(payload)
        elif module == "text":
            self._send(200, "text/plain; charset=utf-8", str(args[0]).encode("utf-8"))
        elif module == "binary":
            self._send(200, "application/octet-stream", str(args[0]).encode("utf-8"))
        elif module == "fail":
            self._send(500, "text/plain", (args[0] if args else "boom").encode("utf-8"))
        elif module == "html":
            self._send(200, "text/html", b"<p>hi</p>")
        elif module == "pid":
            self._json({"pid": os.getpid()})
        elif module == "person":
            self._json({"firstName": "Ada", "lastName": "Lovelace", "birthYear": 1815})
        elif module == "sleep":
            time.sleep(float(args[0]))
            self._json("done")
        elif module == "die":
            os._exit(3)
        elif module == "die-once":
            marker = Path(args[0])
            if not marker.exists():
                marker.write_text("died", encoding="utf-8")
                os._exit(3)
            self._json({"recovered": True, "pid": os.getpid()})
        else:
            self._send(404, "text/plain", f"unknown module {module}".encode("utf-8"))


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--port", type=int, default=0)
    parser.add_argument("--watch", default="")
    options, extra = parser.parse_known_args()

    argv_file = os.environ.get("NODEBRIDGE_TEST_WORKER_ARGV_FILE")
    if argv_file:
        Path(argv_file).write_text(
            json.dumps({"argv": sys.argv[1:], "cwd": os.getcwd(), "nodePath": os.environ.get("NODE_PATH", "")}),
            encoding="utf-8",
        )

    mode = os.environ.get("NODEBRIDGE_TEST_WORKER_MODE", "")
    if mode == "exit":
        print("fatal: refusing to start", file=sys.stderr, flush=True)
        sys.exit(2)

    server = ThreadingHTTPServer(("127.0.0.1", options.port), Handler)
    port = server.server_address[1]

    if mode == "silent":
        server.serve_forever()
        return
    if mode == "slow-start":
        time.sleep(float(os.environ.get("NODEBRIDGE_TEST_WORKER_DELAY", "0.5")))
    if mode == "chatty":
        print("booting worker", flush=True)
        print("[other.Tag:Listening on port 1]", flush=True)
    announce(port)
    if mode == "chatty":
        print(f"[{MARKER}:Listening on port {port + 1}]", flush=True)
    server.serve_forever()


if __name__ == "__main__":
    main()
