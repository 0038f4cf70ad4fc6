"""Tests for the shell directive file"""
from unittest.mock import patch

from gren.services.directive import ENV_DIRECTIVE_FILE, LEGACY_DIRECTIVE_FILE, DirectiveWriter, quote_for_shell


class TestQuoting:
    """Test shell quoting."""

    def test_plain(self):
        assert quote_for_shell("/work/repo") == '"/work/repo"'

    def test_special_characters(self):
        assert quote_for_shell('a "b" $c `d`') == '"a \\"b\\" \\$c \\`d\\`"'


class TestDirectiveWriter:
    """Test writing directives."""

    def test_path_from_environment(self, temp_dir):
        target = str(temp_dir / "directive")
        with patch.dict("os.environ", {ENV_DIRECTIVE_FILE: target}):
            writer = DirectiveWriter()
            assert writer.path == target
            assert writer.is_shell_integration_active()

    @patch.dict("os.environ", {}, clear=True)
    def test_legacy_path(self):
        writer = DirectiveWriter()
        assert writer.path == LEGACY_DIRECTIVE_FILE
        assert not writer.is_shell_integration_active()

    def test_write_cd(self, temp_dir):
        writer = DirectiveWriter(str(temp_dir / "directive"))
        writer.write_cd("/work/my repo")
        assert (temp_dir / "directive").read_text() == 'cd "/work/my repo"\n'

    def test_write_cd_and_run(self, temp_dir):
        writer = DirectiveWriter(str(temp_dir / "directive"))
        writer.write_cd_and_run("/work/repo", "make test")
        assert (temp_dir / "directive").read_text() == 'cd "/work/repo"\nmake test\n'

    def test_clear(self, temp_dir):
        writer = DirectiveWriter(str(temp_dir / "directive"))
        writer.clear()
        writer.write_cd("/x")
        writer.clear()
        assert not (temp_dir / "directive").exists()
