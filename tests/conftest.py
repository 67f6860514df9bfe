# tests/conftest.py
# - Met le dossier racine dans sys.path pour importer nachweis_check.py
# - Fournit une config type et de faux clients GitHub (pas de réseau)

import json
import os
import sys
import pytest

ROOT = os.path.dirname(os.path.dirname(__file__))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

@pytest.fixture
def config_dict():
    return {
        "github_token": "ghp_test",
        "start_of_apprenticeship": "2023-09-01",
        "organization": "ngitl",
        "branch": "main",
        "file_dir": "Nachweise",
        "apprentices": ["Jane Doe", "John Paul Smith"],
    }

@pytest.fixture
def config_file(tmp_path, config_dict):
    path = tmp_path / "configuration.json"
    path.write_text(json.dumps(config_dict), encoding="utf-8")
    path.chmod(0o600)
    return path

class FakeContents:
    """Remplace GitHubContents : `present` = chemins existants, `fail_on` = dépôts en erreur."""

    def __init__(self, present=(), fail_on=None):
        self.present = set(present)
        self.fail_on = fail_on
        self.calls = []

    async def get_content(self, organization, repository, file_path, ref):
        from nachweis_check import GitHubError
        self.calls.append((organization, repository, file_path, ref))
        if repository == self.fail_on:
            raise GitHubError(401, "Bad credentials")
        if (repository, file_path) in self.present:
            return {"type": "file", "path": file_path}
        return None

@pytest.fixture
def fake_contents():
    return FakeContents
