from pathlib import Path

from crewroute.persistence.filesystem import FileStorage


def test_file_storage_creates_run_directory(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory(prefix="routes_2026-10-20")

    assert run_dir.exists()
    assert run_dir.is_dir()
    assert run_dir.parent == tmp_path.resolve() / "outputs"
    assert run_dir.name.startswith("routes_2026-10-20_")


def test_back_to_back_runs_get_distinct_directories(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)

    first = storage.make_run_directory()
    second = storage.make_run_directory()

    assert first != second


def test_file_storage_writes_json_and_csv(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory()

    summary_path = run_dir / "summary.json"
    stops_path = run_dir / "stops.csv"

    storage.write_json(summary_path, {"date": "2026-10-20"})
    storage.write_csv(stops_path, "team_id,job_id\nA,1\n")

    assert summary_path.read_text(encoding="utf-8") == '{\n  "date": "2026-10-20"\n}'
    assert stops_path.read_text(encoding="utf-8") == "team_id,job_id\nA,1\n"
