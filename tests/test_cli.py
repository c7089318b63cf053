from __future__ import annotations

import json

import pytest

from dsc.cli import main


def test_client_runs_reference_exchange(running_server, capsys):
    _, port = running_server.address
    assert main(["client", "-s", "127.0.0.1", "-p", str(port)]) == 0

    out = capsys.readouterr().out
    assert f"Connect server 127.0.0.1:{port}" in out
    assert "Version: 1.0" in out
    assert "Message: Hello, this is a message from the server." in out
    assert "CMD_PUT_MESSAGE OK" in out
    assert "Response status(3)" in out


def test_client_reports_failed_request(raw_peer, capsys):
    port = raw_peer.getsockname()[1]
    assert main(["client", "-p", str(port), "--timeout-ms", "100"]) == 1
    assert "Error: client send request error" in capsys.readouterr().out


def test_demo_json(capsys):
    assert main(["demo", "--json"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["ok"] is True
    assert payload["server"]["responded"] == 4


def test_rejects_invalid_port():
    with pytest.raises(SystemExit):
        main(["client", "-p", "0"])


@pytest.mark.parametrize("cmd", ["server", "client", "demo"])
@pytest.mark.parametrize("timeout", ["0", "-5", "soon"])
def test_rejects_non_positive_timeout(cmd, timeout, capsys):
    with pytest.raises(SystemExit) as exc:
        main([cmd, "--timeout-ms", timeout])
    assert exc.value.code == 2
    assert "--timeout-ms" in capsys.readouterr().err


def test_bad_timeout_in_environment_is_reported(monkeypatch, capsys):
    monkeypatch.setenv("DSC_CLIENT_TIMEOUT_MS", "0")
    assert main(["client"]) == 1
    assert "DSC_CLIENT_TIMEOUT_MS" in capsys.readouterr().err
