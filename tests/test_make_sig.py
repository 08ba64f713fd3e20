from coinpayments.services.webhook_verify import verify_request
from scripts.make_sig import main

BODY = '{"event": "invoicePaid"}'


def _printed_headers(capsys) -> dict[str, str]:
    out = capsys.readouterr().out
    return dict(line.split(": ", 1) for line in out.splitlines())


def test_make_sig_defaults(capsys):
    assert main(["whsec_test", BODY, "--timestamp", "1700000000"]) == 0
    headers = _printed_headers(capsys)
    verify_request("whsec_test", headers, BODY.encode(), now=1_700_000_000)


def test_make_sig_options(capsys):
    argv = [
        "whsec_test",
        BODY,
        "--timestamp",
        "1700000000",
        "--algorithm",
        "sha256",
        "--encoding",
        "base64",
        "--client-id",
        "client_123",
        "--sign-headers",
    ]
    assert main(argv) == 0
    headers = _printed_headers(capsys)
    assert headers["X-CoinPayments-Client"] == "client_123"
    verified = verify_request(
        "whsec_test",
        headers,
        BODY.encode(),
        now=1_700_000_000,
        algorithm="sha256",
        encoding="base64",
        sign_headers=True,
    )
    assert verified.client_id == "client_123"


def test_make_sig_rejects_non_json(capsys):
    assert main(["whsec_test", "{not json"]) == 1
    assert "not JSON" in capsys.readouterr().err
