"""Tests for the twi-map command line."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from twi_map import cli
from twi_map.infra import config
from twi_map.services.name_tables import NameTableError
from twi_map.services.pipeline_service import AggregationSummary, CoordinateSummary, PipelineStatus


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep CLI runs away from the real data directory."""
    monkeypatch.setattr(config, "DATA_DIR", tmp_path / "data")
    monkeypatch.setattr(config, "DB_PATH", tmp_path / "data" / "twi-map.db")
    monkeypatch.setattr(config, "TABLES_DIR", config.PACKAGED_TABLES_DIR)
    monkeypatch.setattr(cli, "configure_logging", lambda verbose: None)
    return tmp_path


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        cli._build_parser().parse_args([])


def test_parser_aggregate_flags():
    args = cli._build_parser().parse_args(["--min-mentions", "2", "aggregate", "--no-coords"])
    assert args.command == "aggregate"
    assert args.min_mentions == 2
    assert args.coords is False


def test_data_dir_flag_moves_database(isolated_config):
    target = isolated_config / "elsewhere"
    with patch("twi_map.services.pipeline_service.get_status", AsyncMock(return_value=PipelineStatus())):
        assert cli.main(["--data-dir", str(target), "status"]) == 0
    assert config.DB_PATH == target / "twi-map.db"
    assert config.DB_PATH.exists()


def test_aggregate_runs_both_passes(capsys):
    agg = AggregationSummary(chapters=3, extracted=3, locations=2, relationships=1, containment=1)
    coords = CoordinateSummary(seeded=5, propagated=1, defaulted=1, written=7)
    with patch("twi_map.services.pipeline_service.run_aggregation", AsyncMock(return_value=agg)) as run_agg, \
         patch("twi_map.services.pipeline_service.run_coordinate_assignment", AsyncMock(return_value=coords)) as run_coords:
        assert cli.main(["--max-depth", "4", "aggregate"]) == 0

    assert run_agg.await_args.kwargs == {"min_mentions": None, "max_depth": 4}
    run_coords.assert_awaited_once()
    out = capsys.readouterr().out
    assert "2 locations" in out
    assert "7 written" in out


def test_aggregate_no_coords(capsys):
    with patch("twi_map.services.pipeline_service.run_aggregation", AsyncMock(return_value=AggregationSummary())), \
         patch("twi_map.services.pipeline_service.run_coordinate_assignment", AsyncMock()) as run_coords:
        assert cli.main(["aggregate", "--no-coords"]) == 0
    run_coords.assert_not_awaited()


def test_bad_tables_exit_nonzero(isolated_config, capsys):
    bad = isolated_config / "tables"
    bad.mkdir()
    assert cli.main(["--tables-dir", str(bad), "aggregate"]) == 1
    assert "missing vocabulary table" in capsys.readouterr().err


def test_import_then_status(isolated_config, capsys):
    src = isolated_config / "export"
    (src / "extractions").mkdir(parents=True)
    (src / "toc.json").write_text(json.dumps([{"index": 0, "volume": "vol-1"}]), encoding="utf-8")
    (src / "extractions" / "0.json").write_text(json.dumps({"locations": []}), encoding="utf-8")

    assert cli.main(["import", str(src)]) == 0
    assert "1 chapters, 1 extractions" in capsys.readouterr().out

    assert cli.main(["status"]) == 0
    out = capsys.readouterr().out
    assert "Chapters extracted:   1 / 1" in out
    assert "vol-1" in out


def test_set_and_clear_coord_resolve_names(capsys):
    assert cli.main(["set-coord", "The Inn", "1", "2", "--confidence", "medium"]) == 0
    assert "'the wandering inn'" in capsys.readouterr().out

    assert cli.main(["clear-coord", "[The Wandering Inn]"]) == 0
    assert cli.main(["clear-coord", "the inn"]) == 1


def test_name_table_error_is_reported(capsys):
    with patch("twi_map.services.name_tables.load_name_tables", side_effect=NameTableError("boom")):
        assert cli.main(["coords"]) == 1
    assert "error: boom" in capsys.readouterr().err
