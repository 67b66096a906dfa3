import concurrent.futures
import random
import threading

import pytest

from flexrpc import Client, Code, RpcError


def _one_call(server_url: str, seed: int):
    rng = random.Random(seed)
    client = Client(server_url, "/rpc")
    a, b = rng.randint(-1000, 1000), rng.randint(1, 1000)
    kind = seed % 4
    if kind == 0:
        return client.call("add", a, b) == (a + b,)
    if kind == 1:
        return client.call("sub", a, b) == (a - b,)
    if kind == 2:
        return client.call("divmod", a, b) == divmod(a, b)
    try:
        client.call("panic")
    except RpcError as e:
        return e.code == Code.PANIC and e.info == "Just panic!"
    return False


@pytest.mark.stress
def test_concurrent_calls(server_url, stress_workers, stress_n):
    results = []
    with concurrent.futures.ThreadPoolExecutor(max_workers=stress_workers) as ex:
        futures = [ex.submit(_one_call, server_url, seed) for seed in range(stress_n)]
        for f in concurrent.futures.as_completed(futures):
            results.append(f.result())

    assert all(results), f"Some calls failed: {results.count(False)} / {len(results)}"


@pytest.mark.stress
def test_concurrent_same_method(server_url, stress_workers, stress_n):
    def add_twice(i):
        return Client(server_url, "/rpc").call("add", i, i)

    with concurrent.futures.ThreadPoolExecutor(max_workers=stress_workers) as ex:
        outputs = list(ex.map(add_twice, range(stress_n)))

    assert outputs == [(2 * i,) for i in range(stress_n)]


@pytest.mark.stress
def test_client_per_thread(server_url, stress_workers, stress_n):
    local = threading.local()

    def add_once(i):
        # One Client per worker thread, reused for every call on that thread.
        if not hasattr(local, "client"):
            local.client = Client(server_url, "/rpc")
        return local.client.call("add", i, 1)

    with concurrent.futures.ThreadPoolExecutor(max_workers=stress_workers) as ex:
        outputs = list(ex.map(add_once, range(stress_n)))

    assert outputs == [(i + 1,) for i in range(stress_n)]
