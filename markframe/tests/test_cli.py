"""
Pytest test suite for the markframe command line.
"""

from __future__ import annotations

import json

import pytest

from markframe.cli import build_parser, main


@pytest.fixture
def exercise_files(tmp_path, grader_config_dict, correct_answer):
    config = tmp_path / "config.json"
    config.write_text(json.dumps(grader_config_dict), encoding="utf-8")
    answer = tmp_path / "answer.stim"
    answer.write_text(correct_answer, encoding="utf-8")
    return config, answer


def test_grade_correct(exercise_files, capsys):
    config, answer = exercise_files
    assert main(["grade", str(config), str(answer)]) == 0
    response = json.loads(capsys.readouterr().out)
    assert response["isCorrect"] is True
    assert response["feedbackConfiguration"]["initIndex"] == 1


def test_grade_incorrect_exit_code(exercise_files, capsys):
    config, answer = exercise_files
    answer.write_text(answer.read_text().replace("MARKX", "MARKZ"), encoding="utf-8")
    assert main(["grade", str(config), str(answer)]) == 1
    assert json.loads(capsys.readouterr().out)["isCorrect"] is False


def test_grade_unparseable(exercise_files, capsys):
    config, answer = exercise_files
    answer.write_text("T 0", encoding="utf-8")
    assert main(["grade", str(config), str(answer)]) == 2
    assert "Unrecognized gate" in capsys.readouterr().err
    assert main(["grade", str(config), str(answer), "--reject-unparseable"]) == 1
    assert "could not be read" in capsys.readouterr().out


def test_grade_config_missing_key(exercise_files, grader_config_dict, capsys):
    config, answer = exercise_files
    del grader_config_dict["markIndex"]
    config.write_text(json.dumps(grader_config_dict), encoding="utf-8")
    assert main(["grade", str(config), str(answer)]) == 2
    assert "missing 'markIndex'" in capsys.readouterr().err


def test_grade_config_bad_letter(exercise_files, grader_config_dict, capsys):
    config, answer = exercise_files
    grader_config_dict["errors"] = {"0": "Q"}
    config.write_text(json.dumps(grader_config_dict), encoding="utf-8")
    assert main(["grade", str(config), str(answer)]) == 2
    assert "bad grader config" in capsys.readouterr().err


def test_propagate(exercise_files, capsys):
    _, answer = exercise_files
    assert main(["propagate", str(answer)]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[0] == "layer 1: bases [0:X 1:X]"
    assert out[-2] == "layer 3: bases [0:Y 1:Y]  crossings [0-1:I]"
    assert out[-1] == "layer 4: bases [0:Y 1:Y]  errors [0, 1]"


def test_propagate_other_marker(exercise_files, capsys):
    _, answer = exercise_files
    assert main(["propagate", str(answer), "--marker", "1"]) == 0
    assert "empty on every layer" in capsys.readouterr().out


def test_canon(tmp_path, capsys):
    path = tmp_path / "c.stim"
    path.write_text("Q(1,0) 0\nQ(0,0) 1\nCX 0 1", encoding="utf-8")
    assert main(["canon", str(path)]) == 0
    assert capsys.readouterr().out == "QUBIT_COORDS(0, 0) 0\nQUBIT_COORDS(1, 0) 1\nCX 1 0\n"
    assert main(["canon", str(path), "--rotations", "8"]) == 0
    assert capsys.readouterr().out == "QUBIT_COORDS(0, 0) 0\nQUBIT_COORDS(1, 0) 1\nCX 1 0\n"


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        main(["canon", str(tmp_path / "missing.stim")])


def test_subcommand_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
