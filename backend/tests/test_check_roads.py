from __future__ import annotations

import json
from pathlib import Path

from scripts.check_roads import build_parser, main, run_check


def _write_roads(path: Path) -> None:
    path.write_text(
        json.dumps(
            {
                "type": "FeatureCollection",
                "features": [
                    {"type": "Feature", "geometry": {"type": "LineString", "coordinates": [[37.60, 55.70], [37.61, 55.71]]}},
                    {"type": "Feature", "geometry": {"type": "LineString", "coordinates": [[37.61, 55.71], [37.62, 55.72]]}},
                    {"type": "Feature", "geometry": {"type": "LineString", "coordinates": [[38.00, 56.00], [38.01, 56.01]]}},
                    {"type": "Feature", "geometry": {"type": "Point", "coordinates": [37.0, 55.0]}},
                ],
            }
        ),
        encoding="utf-8",
    )


def test_run_check_reports_graph_statistics(tmp_path: Path) -> None:
    roads = tmp_path / "roads.geojson"
    _write_roads(roads)

    report = run_check(build_parser().parse_args(["--roads", str(roads)]))

    assert report["exists"] is True
    assert report["feature_count"] == 4
    assert report["line_feature_count"] == 3
    assert report["node_count"] == 5
    assert report["edge_count"] == 3
    assert report["component_count"] == 2
    assert report["largest_component_nodes"] == 3
    assert report["isolated_node_count"] == 0
    assert report["bbox"]["lat_max"] == 56.01


def test_main_fails_when_roads_file_missing(tmp_path: Path, capsys) -> None:
    code = main(["--roads", str(tmp_path / "missing.geojson")])

    assert code == 1
    assert "roads file not found" in capsys.readouterr().err


def test_main_prints_report(tmp_path: Path, capsys) -> None:
    roads = tmp_path / "roads.geojson"
    _write_roads(roads)

    assert main(["--roads", str(roads)]) == 0
    report = json.loads(capsys.readouterr().out)
    assert report["node_count"] == 5


def test_exists_only_skips_build(tmp_path: Path) -> None:
    roads = tmp_path / "roads.geojson"
    _write_roads(roads)

    report = run_check(build_parser().parse_args(["--roads", str(roads), "--exists-only"]))

    assert report == {"roads_path": str(roads), "exists": True}
