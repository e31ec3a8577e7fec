"""XML-RPC client exercising the fake Bugzilla endpoint.

Start the server first::

    python examples/bugzilla_server.py

Then run this client::

    python examples/bugzilla_client.py
"""

from __future__ import annotations

import sys
import xmlrpc.client

PORT = 8234


def run(url: str) -> None:
    """Log in, read a bug, update it, and show the faults along the way."""
    proxy = xmlrpc.client.ServerProxy(url, allow_none=True)

    login = proxy.User.login({"login": "calvin", "password": "hobbes"})
    print(f"User.login     -> token {login['token']}")

    bug = proxy.Bug.get({"ids": [1]})["bugs"][0]
    print(f"Bug.get #1     -> {bug['summary']} [{bug['status']}]")

    try:
        proxy.Bug.get({"ids": [2]})
    except xmlrpc.client.Fault as fault:
        print(f"Bug.get #2     -> fault {fault.faultCode}: {fault.faultString}")

    changes = proxy.Bug.update({"Bugzilla_token": login["token"], "ids": [1], "resolution": "FIXED"})
    print(f"Bug.update #1  -> {changes['bugs'][0]['changes']}")

    try:
        proxy.Bug.update({"Bugzilla_token": login["token"], "ids": [1], "status": "CLOSED"})
    except xmlrpc.client.Fault as fault:
        print(f"Bug.update     -> fault {fault.faultCode}: {fault.faultString}")

    print(f"Methods        -> {', '.join(proxy.system.listMethods())}")


def main() -> None:
    """Connect to the server on the port given on the command line."""
    port = int(sys.argv[1]) if len(sys.argv) > 1 else PORT
    run(f"http://127.0.0.1:{port}/")


if __name__ == "__main__":
    main()
