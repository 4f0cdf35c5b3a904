import os

import pytest

from main import main


def test_report_prints_all_time_high(dataset_path, tmp_path, capsys):
    html = str(tmp_path / "chart.html")
    png = str(tmp_path / "out" / "chart.png")

    main(["report", "--db", dataset_path, "--holdings", "2", "--html", html, "--png", png])

    out = capsys.readouterr().out
    assert "Holdings: 2 BTC" in out
    assert "All-Time High: $0.17 (2010-07-17" in out
    assert "4 rows loaded" in out
    assert os.path.getsize(html) > 0
    assert os.path.getsize(png) > 0


def test_report_rejects_invalid_holdings(dataset_path):
    with pytest.raises(SystemExit) as exc:
        main(["report", "--db", dataset_path, "--holdings", "1.123456789"])
    assert "eight decimal places" in str(exc.value)


def test_report_without_dataset_points_to_build_command(tmp_path):
    with pytest.raises(SystemExit) as exc:
        main(["report", "--db", str(tmp_path / "data.sqlite3")])
    assert "Dataset not found" in str(exc.value)
    assert "python main.py build-dataset" in str(exc.value)
