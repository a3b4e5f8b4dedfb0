from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path

import pytest

import katabole.stamper as stamper
from conftest import T1, T2, TemplateRepo, requires_git
from katabole.generate import (
    DestinationExistsError,
    GenerateError,
    GenerateRequest,
    Phase,
    generate,
)
from katabole.git_repo import WorkingCopy
from katabole.project import parse_identity
from katabole.resolver import RefKind


@pytest.fixture
def scratch_root(tmp_path: Path, monkeypatch) -> Path:
    root = tmp_path / "scratch"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root


@pytest.fixture
def kbexample(template_repo: TemplateRepo) -> TemplateRepo:
    template_repo.commit(
        {
            "go.mod": "module github.com/katabole/kbexample\n",
            "main.go": 'package main\n\nimport "github.com/katabole/kbexample/app"\n',
            "README.md": "# KBExample\n",
            "Taskfile.yml": "db: psql -d kbexample_dev\ntest: psql -d kb_example_test\n",
            "kbexample/doc.txt": "kbexample lives here\n",
            "scripts/setup.sh": "#!/bin/sh\necho kbexample\n",
            "VERSION": "0.1.0\n",
        },
        when=T1,
    )
    os.chmod(template_repo.path / "scripts" / "setup.sh", 0o755)
    template_repo.git("add", "-A")
    template_repo.git("commit", "--quiet", "-m", "exec bit", when=T1)
    template_repo.tag("v0.1.0")
    template_repo.commit({"VERSION": "0.2.0-dev\n"}, when=T2)
    return template_repo


def _request(repo: TemplateRepo, dest: Path, ref: str = "") -> GenerateRequest:
    return GenerateRequest(
        identity=parse_identity("github.com/acme/my-app"),
        template_repository=repo.url,
        template_ref=ref,
        destination=dest,
    )


def test_existing_destination_fails_before_clone(tmp_path: Path, monkeypatch) -> None:
    dest = tmp_path / "my-app"
    dest.mkdir()

    def no_clone(cls, url, path):
        raise AssertionError("clone must not be attempted")

    monkeypatch.setattr(WorkingCopy, "clone", classmethod(no_clone))

    req = GenerateRequest(identity=parse_identity("github.com/acme/my-app"), destination=dest)
    with pytest.raises(DestinationExistsError):
        generate(req)


def test_default_destination_is_repo_name(tmp_path: Path) -> None:
    req = GenerateRequest(identity=parse_identity("github.com/acme/my-app"))
    assert req.destination_path() == Path("my-app")
    assert GenerateRequest(identity=req.identity, destination=tmp_path).destination_path() == tmp_path


@requires_git
def test_generate_materializes_latest_tag(kbexample: TemplateRepo, tmp_path: Path, scratch_root: Path) -> None:
    dest = tmp_path / "out" / "my-app"
    dest.parent.mkdir()
    seen = []

    result = generate(_request(kbexample, dest), on_revision=seen.append)

    assert result.destination == dest
    assert result.revision.kind is RefKind.TAG
    assert result.revision.ref == "v0.1.0"
    assert seen == [result.revision]

    assert not (dest / ".git").exists()
    assert (dest / "VERSION").read_text() == "0.1.0\n"
    assert (dest / "go.mod").read_text() == "module github.com/acme/my-app\n"
    assert 'import "github.com/acme/my-app/app"' in (dest / "main.go").read_text()
    assert (dest / "README.md").read_text() == "# My-App\n"
    assert (dest / "Taskfile.yml").read_text() == "db: psql -d my-app_dev\ntest: psql -d my_app_test\n"
    assert (dest / "kbexample" / "doc.txt").read_text() == "my-app lives here\n"
    assert stat.S_IMODE((dest / "scripts" / "setup.sh").stat().st_mode) & 0o111

    assert list(scratch_root.iterdir()) == []


@requires_git
def test_generate_with_explicit_ref(kbexample: TemplateRepo, tmp_path: Path, scratch_root: Path) -> None:
    dest = tmp_path / "my-app"
    result = generate(_request(kbexample, dest, ref="main"))
    assert result.revision.kind is RefKind.BRANCH
    assert (dest / "VERSION").read_text() == "0.2.0-dev\n"


@requires_git
def test_unknown_ref_fails_in_resolve_phase(kbexample: TemplateRepo, tmp_path: Path, scratch_root: Path) -> None:
    dest = tmp_path / "my-app"
    with pytest.raises(GenerateError) as excinfo:
        generate(_request(kbexample, dest, ref="deadbeef"))
    assert excinfo.value.phase is Phase.RESOLVE
    assert "deadbeef" in str(excinfo.value)
    assert not dest.exists()
    assert list(scratch_root.iterdir()) == []


@requires_git
def test_clone_failure_fails_in_clone_phase(tmp_path: Path, scratch_root: Path) -> None:
    req = GenerateRequest(
        identity=parse_identity("github.com/acme/my-app"),
        template_repository=str(tmp_path / "does-not-exist"),
        destination=tmp_path / "my-app",
    )
    with pytest.raises(GenerateError) as excinfo:
        generate(req)
    assert excinfo.value.phase is Phase.CLONE
    assert not (tmp_path / "my-app").exists()
    assert list(scratch_root.iterdir()) == []


@requires_git
def test_write_failure_leaves_nothing_behind(
    kbexample: TemplateRepo, tmp_path: Path, scratch_root: Path, monkeypatch
) -> None:
    real_write = stamper._write_file
    writes = []

    def flaky_write(path: Path, data: bytes, mode: int) -> None:
        writes.append(path)
        if len(writes) == 2:
            raise OSError("disk full")
        real_write(path, data, mode)

    monkeypatch.setattr(stamper, "_write_file", flaky_write)
    dest = tmp_path / "my-app"

    with pytest.raises(GenerateError) as excinfo:
        generate(_request(kbexample, dest))

    assert excinfo.value.phase is Phase.STAMP
    assert len(writes) == 2
    assert not dest.exists()
    assert list(scratch_root.iterdir()) == []


@requires_git
def test_rename_failure_fails_in_relocate_phase(
    kbexample: TemplateRepo, tmp_path: Path, scratch_root: Path, monkeypatch
) -> None:
    def no_rename(src, dst):
        raise OSError(18, "Invalid cross-device link")

    monkeypatch.setattr(os, "rename", no_rename)
    dest = tmp_path / "my-app"

    with pytest.raises(GenerateError) as excinfo:
        generate(_request(kbexample, dest))

    assert excinfo.value.phase is Phase.RELOCATE
    assert not dest.exists()
    assert list(scratch_root.iterdir()) == []
