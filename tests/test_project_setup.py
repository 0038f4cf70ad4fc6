"""Tests for project initialization"""
import os

import pytest

from gren.config import ConfigManager
from gren.models.worktree import ProjectAnalysis
from gren.services.project_setup import ProjectSetup


@pytest.fixture
def repo_root(git_repo):
    return git_repo.working_dir


def touch(root, name, content=""):
    with open(os.path.join(root, name), "w") as f:
        f.write(content)


class TestDetection:
    """Test package manager and linked-file detection."""

    @pytest.mark.parametrize("marker, manager", [
        ("pnpm-lock.yaml", "pnpm"),
        ("package.json", "npm"),
        ("go.mod", "go"),
        ("Cargo.toml", "cargo"),
        ("pyproject.toml", "pip"),
        ("Makefile", "make"),
    ])
    def test_package_manager(self, repo_root, marker, manager):
        touch(repo_root, marker)
        assert ProjectSetup(repo_root).detect_package_manager()[0] == manager

    def test_lockfile_beats_package_json(self, repo_root):
        touch(repo_root, "package.json", "{}")
        touch(repo_root, "yarn.lock")
        assert ProjectSetup(repo_root).detect_package_manager()[0] == "yarn"

    def test_nothing_detected(self, repo_root):
        assert ProjectSetup(repo_root).detect_package_manager() == ("none", "no package manager detected")

    def test_post_create_command(self, repo_root):
        setup = ProjectSetup(repo_root)
        assert setup.post_create_command("bun") == "bun install"
        assert setup.post_create_command("pip") == "pip install -e ."
        touch(repo_root, "requirements.txt")
        assert setup.post_create_command("pip") == "pip install -r requirements.txt"
        assert setup.post_create_command("none") == ""

    def test_only_ignored_files_linked(self, repo_root):
        touch(repo_root, ".gitignore", ".env\n")
        touch(repo_root, ".env", "SECRET=1\n")
        touch(repo_root, ".nvmrc", "20\n")
        assert ProjectSetup(repo_root).detect_linked_files() == [".env"]


class TestInitialize:
    """Test writing the configuration and hook."""

    def test_analyze(self, repo_root):
        touch(repo_root, "go.mod")
        analysis = ProjectSetup(repo_root).analyze()
        assert analysis.package_manager == "go"
        assert analysis.post_create_command == "go mod download"
        assert not analysis.hook_exists

    def test_initialize_writes_config_and_hook(self, repo_root):
        analysis = ProjectAnalysis("npm", "JavaScript project (npm)", "npm install", linked_files=(".env",))
        config = ProjectSetup(repo_root).initialize(analysis)

        assert config.package_manager == "npm"
        assert ConfigManager(repo_root).load().package_manager == "npm"

        hook = os.path.join(repo_root, ".gren", "post-create.sh")
        assert os.access(hook, os.X_OK)
        with open(hook) as f:
            content = f.read()
        assert content.startswith("#!/bin/sh")
        assert "npm install" in content
        assert '"$REPO_ROOT/.env"' in content

    def test_existing_hook_kept(self, repo_root):
        os.makedirs(os.path.join(repo_root, ".gren"))
        hook = os.path.join(repo_root, ".gren", "post-create.sh")
        touch(repo_root, ".gren/post-create.sh", "#!/bin/sh\necho custom\n")

        ProjectSetup(repo_root).initialize(ProjectAnalysis("none", "none", ""))
        with open(hook) as f:
            assert f.read() == "#!/bin/sh\necho custom\n"
        assert ProjectSetup(repo_root).analyze().hook_exists
