import logging

import pytest

from vsr.cli import build_parser, main
from vsr.config import Config


@pytest.fixture
def docs_dir(tmp_path):
    (tmp_path / "cats.txt").write_text("cats purr and cats sleep")
    (tmp_path / "dogs.txt").write_text("dogs bark and dogs run")
    (tmp_path / "pets.txt").write_text("cats and dogs are pets")
    return tmp_path


def run(argv, answers):
    answers = iter(answers)
    output = []
    code = main(argv, input_fn=lambda prompt: next(answers), output=output.append)
    return code, output


def test_query_and_exit(docs_dir):
    code, output = run([str(docs_dir), "--log-level", "WARNING"], ["cats", "", ""])

    assert code == 0
    assert "Top 10 matching Documents from most to least relevant:" in output
    assert any(line.startswith("1.  cats.txt") for line in output)


def test_no_matches(docs_dir):
    _, output = run([str(docs_dir), "--log-level", "WARNING"], ["unicorn", ""])

    assert "No matching documents found." in output


def test_show_judge_and_redo(docs_dir):
    _, output = run(
        [str(docs_dir), "--feedback", "--log-level", "WARNING"],
        ["cats", "r", "2", "y", "r", "", ""],
    )

    assert "Need to first view some documents and provide feedback." in output
    assert any("pets.txt" in line and line.startswith("Document") for line in output)
    assert "Positive docs: ['pets.txt']" in output
    assert "Executing New Expanded and Reweighted Query:" in output
    redo_at = output.index("Executing New Expanded and Reweighted Query:")
    assert output[redo_at + 2].startswith("1.  pets.txt")


def test_paging_and_bad_commands(docs_dir):
    _, output = run(
        [str(docs_dir), "--max-retrievals", "1", "--log-level", "WARNING"],
        ["cats", "m", "m", "x", "7", "", ""],
    )

    assert any(line.startswith("2.  pets.txt") for line in output)
    assert "No more retrievals." in output
    assert "Unknown command." in output
    assert "No such document number: 7" in output


def test_stem_flag_matches_inflected_query(docs_dir):
    _, plain = run([str(docs_dir), "--log-level", "WARNING"], ["purring", ""])
    _, stemmed = run([str(docs_dir), "--stem", "--log-level", "WARNING"], ["purring", "", ""])

    assert "No matching documents found." in plain
    assert any(line.startswith("1.  cats.txt") for line in stemmed)


def test_end_of_input_exits_cleanly(docs_dir):
    answers = iter(["cats", "m"])

    def input_fn(prompt):
        try:
            return next(answers)
        except StopIteration:
            raise EOFError from None

    output = []
    assert main([str(docs_dir), "--log-level", "WARNING"], input_fn=input_fn, output=output.append) == 0
    assert any(line.startswith("1.  cats.txt") for line in output)


def test_missing_directory(tmp_path):
    with pytest.raises(SystemExit):
        main([str(tmp_path / "missing")], input_fn=lambda prompt: "")


def test_config_from_args():
    args = build_parser().parse_args(["docs", "--feedback", "--max-retrievals", "5", "--log-level", "DEBUG"])
    config = Config.from_args(args)

    assert config.feedback
    assert not config.html
    assert config.max_retrievals == 5
    assert config.log_level == logging.DEBUG


@pytest.mark.parametrize("kwargs", [{"max_retrievals": 0}, {"beta": -1.0}, {"alpha": 0.0}])
def test_config_validation(kwargs):
    with pytest.raises(ValueError):
        Config(**kwargs)
