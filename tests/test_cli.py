import json

import pytest

from wbs_engine.__main__ import main

DOCUMENT = {
    "project": {"name": "Portal"},
    "tasks": [
        {
            "id": 1,
            "name": "Design",
            "order": 0,
            "status": "IN_PROGRESS",
            "progress": 50,
            "start_date": "2025-02-03",
            "children": [
                {"id": 2, "name": "Research", "order": 0, "deadline": "2025-02-06"},
            ],
        },
        {"id": 3, "name": "Release", "order": 1, "end_date": "2025-02-27"},
    ],
}


@pytest.fixture
def tasks_file(tmp_path):
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps(DOCUMENT), encoding="utf-8")
    return path


def test_tree_command_prints_tree(tasks_file, capsys):
    assert main(["tree", str(tasks_file)]) == 0

    out = capsys.readouterr().out.splitlines()
    assert out == [
        "Portal",
        "▾ Design [In Progress 50%]",
        "  • Research [Todo 0%]",
        "• Release [Todo 0%]",
    ]


def test_tree_command_collapses_by_id(tasks_file, capsys):
    assert main(["tree", str(tasks_file), "--collapse", "1"]) == 0

    assert "▸ Design [In Progress 50%] (+1)" in capsys.readouterr().out


def test_move_command_emits_structure_payload(tasks_file, tmp_path):
    out_path = tmp_path / "structure.json"

    assert main(["move", str(tasks_file), "2", "root", "1", "--out", str(out_path)]) == 0

    payload = json.loads(out_path.read_text(encoding="utf-8"))
    assert payload["structure"] == [
        {"id": 1, "parent_id": None, "order": 0},
        {"id": 2, "parent_id": None, "order": 1},
        {"id": 3, "parent_id": None, "order": 2},
    ]


def test_rejected_move_exits_with_error(tasks_file, capsys):
    assert main(["move", str(tasks_file), "1", "2", "0"]) == 2

    captured = capsys.readouterr()
    assert "move rejected" in captured.err
    assert captured.out == ""


def test_edit_command_emits_reconciled_node(tasks_file, capsys):
    assert main(["edit", str(tasks_file), "2", "--status", "완료"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["id"] == 2
    assert (payload["status"], payload["progress"]) == ("DONE", 100)
    assert payload["parent_id"] == 1


def test_edit_unknown_node_exits_with_error(tasks_file, capsys):
    assert main(["edit", str(tasks_file), "42", "--progress", "10"]) == 2
    assert "unknown node" in capsys.readouterr().err


def test_gantt_command_writes_svg(tasks_file, tmp_path):
    out_path = tmp_path / "out" / "gantt.svg"

    code = main(
        [
            "gantt",
            str(tasks_file),
            "--month",
            "2025-02-10",
            "--today",
            "2025-02-10",
            "--out",
            str(out_path),
            "--no-view",
        ]
    )

    assert code == 0
    assert out_path.exists()
    assert out_path.stat().st_size > 0


def test_config_option_is_applied(tasks_file, tmp_path, capsys):
    config_path = tmp_path / "wbs.yaml"
    config_path.write_text("locale: ko\n", encoding="utf-8")

    assert main(["--config", str(config_path), "tree", str(tasks_file)]) == 0
    assert "▾ Design [진행중 50%]" in capsys.readouterr().out


def test_missing_file_returns_one(tmp_path, capsys):
    assert main(["tree", str(tmp_path / "missing.json")]) == 1
    assert "not found" in capsys.readouterr().err


def test_invalid_document_returns_two(tmp_path, capsys):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps([{"id": 1, "parent_id": 7}]), encoding="utf-8")

    assert main(["tree", str(path)]) == 2
    assert "unknown parents" in capsys.readouterr().err


def test_invalid_config_returns_two(tasks_file, tmp_path, capsys):
    config_path = tmp_path / "wbs.yaml"
    config_path.write_text("colour: red\n", encoding="utf-8")

    assert main(["--config", str(config_path), "tree", str(tasks_file)]) == 2
    assert "unexpected config fields" in capsys.readouterr().err
