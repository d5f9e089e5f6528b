"""
Tests for the pulse-recompute command.
"""
import pytest

from pulse import cli


@pytest.fixture
def run(monkeypatch, engine, repo):
    monkeypatch.setattr(cli, "engine", engine)
    monkeypatch.setattr(cli, "get_repository", lambda: repo)
    return cli.main


def test_recompute_with_saved_weights(run, make_resident, repo, capsys):
    r = make_resident(age=70, risk_score=0, risk_level="Low")

    assert run(["--as-of", "2025-06-30"]) == 0

    out = capsys.readouterr().out
    assert "Updated:   1" in out
    assert repo.get_resident(r.id).risk_score == 40


def test_weight_overrides_are_not_saved(run, make_resident, repo, capsys):
    r = make_resident(age=25, is_pregnant=True, risk_score=0, risk_level="Low")

    assert run(["--pregnancy", "15", "--as-of", "2025-06-30"]) == 0

    assert "pregnancy=15" in capsys.readouterr().out
    assert repo.get_resident(r.id).risk_score == 25
    assert repo.get_weight_configuration() is None


def test_failed_writes_give_nonzero_exit(monkeypatch, engine, flaky_repo, make_resident):
    r = make_resident(age=70)
    monkeypatch.setattr(cli, "engine", engine)
    monkeypatch.setattr(cli, "get_repository", lambda: flaky_repo(fail_ids={r.id}))

    assert cli.main(["--as-of", "2025-06-30"]) == 1
