import json

import pytest

from quant_analysis.cli import main


@pytest.fixture
def bars_csv(ramp_bars, tmp_path):
    path = tmp_path / "bars.csv"
    ramp_bars.to_csv(path, index_label="date")
    return path


def test_json_output_from_csv(bars_csv, capsys):
    assert main(["--input", str(bars_csv), "--json", "--seed", "3"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["currentPrice"] == 159.0
    assert data["mlPredictions"]["consensusSignal"] == "buy"


def test_report_output_from_csv(bars_csv, capsys):
    assert main(["--input", str(bars_csv)]) == 0
    out = capsys.readouterr().out
    assert "QUANTITATIVE ANALYSIS REPORT" in out
    assert "Three White Soldiers" in out


def test_downloads_through_client(fake_client, yahoo_frame, capsys):
    client = fake_client(default=yahoo_frame(60))
    assert main(["--symbol", "msft", "--range", "6mo", "--json"], client=client) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["barCount"] == 60


def test_missing_file_fails(tmp_path):
    assert main(["--input", str(tmp_path / "missing.csv")]) == 1


def test_no_market_data_fails(fake_client):
    assert main(["--symbol", "NOPE"], client=fake_client(max_retries=1)) == 1


def test_malformed_csv_fails(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("date,open,high,low,close\n2024-01-01,1,2,0.5,1.5\n")
    assert main(["--input", str(path)]) == 1


def test_default_run_requests_a_year(fake_client, yahoo_frame, capsys):
    client = fake_client(default=yahoo_frame(60))
    assert main(["--json", "--seed", "1"], client=client) == 0
    symbol, kwargs = client._yf.calls[0]
    assert symbol == "AAPL"
    assert kwargs["period"] == "1y"
    assert kwargs["interval"] == "1wk"
    ml = json.loads(capsys.readouterr().out)["mlPredictions"]
    assert ml["monteCarlo"]["high"] > ml["monteCarlo"]["low"]
    assert ml["knnConfidence"] > 0
