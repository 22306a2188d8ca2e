from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from workbench.main import create_app

SERVICE_TOKEN = "integration-token"


@pytest.fixture
def workspace(tmp_path, monkeypatch) -> Path:
    root = tmp_path / "workspace"
    root.mkdir()
    for key in (
        "WORKBENCH_SEARCH_WORKERS",
        "WORKBENCH_SEARCH_TIMEOUT_SECONDS",
        "WORKBENCH_FORMAT_CODE",
        "WORKBENCH_SERVICE_TOKEN",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("WORKBENCH_ROOT", str(root))
    return root


def _seed_repo(root: Path) -> None:
    repo = root / "repo"
    repo.mkdir()
    (repo / "a.go").write_text("package main\n\nfunc Foo() {}\n", encoding="utf-8")
    (repo / "b.go").write_text("package main\n", encoding="utf-8")
    pkg = root / "pkg"
    pkg.mkdir()
    (pkg / "service.py").write_text(
        '"""Service helpers."""\n\nimport sys\n\n\ndef run():\n    return sys.argv\n',
        encoding="utf-8",
    )


def test_search_read_edit_flow(workspace):
    _seed_repo(workspace)

    with TestClient(create_app()) as client:
        search = client.post(
            "/tool:search_files",
            json={"path": "repo", "pattern": "**/*.go", "contains": "func Foo"},
        )
        assert search.status_code == 200
        matches = search.json()["data"]["matches"]
        assert [match["file"] for match in matches] == ["repo/a.go"]
        assert matches[0]["lines"] == [3]

        read = client.post(
            "/tool:read_file",
            json={"path": matches[0]["file"], "start_line": 3, "end_line": 3},
        )
        assert read.json()["data"]["content"] == "   3|func Foo() {}"

        edit = client.post(
            "/tool:edit_file",
            json={
                "path": "repo/a.go",
                "old_string": "func Foo() {}",
                "new_string": "func Bar() {}",
            },
        )
        assert edit.json() == {
            "ok": True,
            "data": {"message": "Replaced 1 occurrence in repo/a.go", "changed": True},
        }

    assert (workspace / "repo" / "a.go").read_text(encoding="utf-8") == (
        "package main\n\nfunc Bar() {}\n"
    )


def test_edit_source_round_trip(workspace):
    _seed_repo(workspace)
    target = workspace / "pkg" / "service.py"

    with TestClient(create_app()) as client:
        first = client.post(
            "/tool:edit_source",
            json={"path": "pkg/service.py", "operation": "add_import", "import_path": "os"},
        )
        snapshot = target.read_bytes()
        second = client.post(
            "/tool:edit_source",
            json={"path": "pkg/service.py", "operation": "add_import", "import_path": "os"},
        )
        function = client.post(
            "/tool:edit_source",
            json={
                "path": "pkg/service.py",
                "operation": "add_function",
                "code": "def cwd():\n    return os.getcwd()\n",
            },
        )

    assert first.json()["data"]["changed"] is True
    assert second.json()["data"]["changed"] is False
    assert "already exists" in second.json()["data"]["message"]
    assert function.json()["ok"] is True
    source = target.read_text(encoding="utf-8")
    assert source.startswith('"""Service helpers."""')
    assert "import sys\nimport os\n" in source
    assert source.endswith("def cwd():\n    return os.getcwd()\n")
    assert snapshot != target.read_bytes()


def test_concurrent_edits_to_one_file_are_serialized(workspace):
    target = workspace / "values.py"
    target.write_text("x = 0\n", encoding="utf-8")
    names = [f"value_{index}" for index in range(8)]

    with TestClient(create_app()) as client:

        def _add(name: str) -> dict:
            response = client.post(
                "/tool:edit_source",
                json={
                    "path": "values.py",
                    "operation": "add_var",
                    "var_name": name,
                    "var_value": "1",
                },
            )
            return response.json()

        with ThreadPoolExecutor(max_workers=4) as executor:
            results = list(executor.map(_add, names))

    assert all(result["ok"] for result in results)
    source = target.read_text(encoding="utf-8")
    for name in names:
        assert f"{name} = 1" in source


def test_service_token_is_enforced(workspace, monkeypatch):
    monkeypatch.setenv("WORKBENCH_SERVICE_TOKEN", SERVICE_TOKEN)

    with TestClient(create_app()) as client:
        health = client.get("/health")
        rejected = client.post("/tool:search_files", json={})
        accepted = client.post(
            "/tool:search_files",
            json={},
            headers={"X-Workbench-Service-Token": SERVICE_TOKEN},
        )

    assert health.status_code == 200
    assert rejected.status_code == 403
    assert rejected.json()["error"]["code"] == "AUTH_FORBIDDEN"
    assert accepted.status_code == 200
    assert accepted.json()["ok"] is True


def test_errors_are_returned_in_the_envelope(workspace):
    _seed_repo(workspace)

    with TestClient(create_app()) as client:
        response = client.post(
            "/tool:edit_source",
            json={
                "path": "pkg/service.py",
                "operation": "replace_code_block",
                "start_line": 6,
                "end_line": 7,
                "code": "def run(:\n",
            },
        )

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "INVALID_FRAGMENT"
    assert body["error"]["details"]["path"] == "pkg/service.py"
