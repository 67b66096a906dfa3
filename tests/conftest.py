import threading
import time

import pytest
import requests
from flask import Flask
from werkzeug.serving import make_server

from flexrpc import Client, RpcConfig, register, register_path
from services import Arith


def pytest_addoption(parser):
    parser.addoption(
        "--server-url",
        action="store",
        default=None,
        help="Use an already running server, e.g. http://127.0.0.1:5000",
    )
    parser.addoption(
        "--stress-workers",
        action="store",
        type=int,
        default=8,
        help="Number of client threads used inside the stress test.",
    )
    parser.addoption(
        "--stress-n",
        action="store",
        type=int,
        default=200,
        help="Number of calls made by the stress test.",
    )


@pytest.fixture(scope="session")
def stress_workers(pytestconfig) -> int:
    return int(pytestconfig.getoption("--stress-workers"))


@pytest.fixture(scope="session")
def stress_n(pytestconfig) -> int:
    return int(pytestconfig.getoption("--stress-n"))


def make_app(service=None, config=None) -> Flask:
    """Test app: the service under /rpc, at the default path, and a health route."""
    service = service or Arith()
    app = Flask("flexrpc-tests")
    register_path(app, service, "/rpc", config)
    register(app, service)

    @app.route("/health", methods=["GET"])
    def health():
        return "OK", 200

    @app.route("/plain", methods=["POST"])
    def plain():
        return "not an envelope", 200

    return app


def _wait_until_ready(url: str, timeout_s: float = 10.0) -> None:
    deadline = time.time() + timeout_s
    last_err = None

    while time.time() < deadline:
        try:
            r = requests.get(url + "/health", timeout=0.5)
            if r.status_code == 200 and r.text.strip() == "OK":
                return
        except requests.RequestException as e:
            last_err = e

        time.sleep(0.1)

    raise TimeoutError(f"Server not ready at {url}. Last error: {last_err!r}")


@pytest.fixture
def service():
    return Arith()


@pytest.fixture
def app(service):
    return make_app(service)


@pytest.fixture
def http(app):
    return app.test_client()


@pytest.fixture
def strict_http(service):
    return make_app(service, RpcConfig(strict_args=True)).test_client()


@pytest.fixture(scope="session")
def server_url(pytestconfig):
    provided = pytestconfig.getoption("--server-url")
    if provided:
        url = provided.rstrip("/")
        _wait_until_ready(url)
        yield url
        return

    server = make_server("127.0.0.1", 0, make_app(), threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    url = f"http://127.0.0.1:{server.server_port}"

    try:
        _wait_until_ready(url)
        yield url
    finally:
        server.shutdown()
        thread.join(timeout=5)


@pytest.fixture(scope="session")
def client(server_url):
    return Client(server_url, "/rpc")
