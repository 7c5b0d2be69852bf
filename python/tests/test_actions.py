"""
Action Tests - Verify what happens to the selected item.

External programs are never started: subprocess and platform checks are
patched.
"""

import io
from pathlib import Path
from unittest.mock import patch

import pytest

from sar import actions
from sar.config import SarConfig
from sar.models import Action, Encrypted, OpaqueRecord, Record


class TestEditor:
    """Tests for editor invocation."""

    def test_editor_precedence(self, monkeypatch):
        """Explicit editor wins over $VISUAL over $EDITOR over vi."""
        monkeypatch.setenv("VISUAL", "code --wait")
        monkeypatch.setenv("EDITOR", "nano")
        assert actions.editor_command("emacs -nw") == ["emacs", "-nw"]
        assert actions.editor_command() == ["code", "--wait"]

        monkeypatch.delenv("VISUAL")
        assert actions.editor_command() == ["nano"]

        monkeypatch.delenv("EDITOR")
        assert actions.editor_command() == ["vi"]

    def test_line_number_converted_once(self):
        """Zero-based line 4 opens at +5."""
        with patch("sar.actions.subprocess.run") as run:
            actions.open_in_editor(Path("/n/a.md"), 4, editor="vim")
        run.assert_called_once_with(["vim", "/n/a.md", "+5"], check=False)

    def test_without_line_number(self):
        """No line argument without a line number."""
        with patch("sar.actions.subprocess.run") as run:
            actions.open_in_editor(Path("/n/a.md"), editor="vim")
        run.assert_called_once_with(["vim", "/n/a.md"], check=False)


class TestReveal:
    """Tests for reveal()."""

    @pytest.mark.parametrize("platform,expected", [
        ("darwin", ["open", "-R", "/n/a.md"]),
        ("linux", ["xdg-open", "/n"]),
    ])
    def test_platform_commands(self, platform, expected):
        """Each platform uses its file manager."""
        with patch("sar.actions.sys.platform", platform), \
                patch("sar.actions.subprocess.run") as run:
            actions.reveal(Path("/n/a.md"))
        run.assert_called_once_with(expected, check=False)


class TestPrint:
    """Tests for print_item()."""

    def test_prints_whole_plain_file(self, sample_files):
        """The whole file is printed, not just the line."""
        out = io.StringIO()
        actions.print_item(Record(sample_files["txt"], 0, "buy milk"), out)
        assert out.getvalue() == "buy milk\n\n   \ncall bob\n"

    def test_prints_decrypted_file(self, encrypted_note):
        """Encrypted files are decrypted again for display."""
        path, password, plaintext = encrypted_note
        out = io.StringIO()
        actions.print_item(Record(path, 0, "secret one", Encrypted(password)), out)
        assert out.getvalue() == plaintext.decode("utf-8")

    def test_adds_final_newline(self, sample_files):
        """Output always ends with a newline."""
        out = io.StringIO()
        actions.print_item(Record(sample_files["md"], 0, "# Notes"), out)
        assert out.getvalue().endswith("here.\n")

    def test_prints_opaque_path(self):
        """Opaque items print their path."""
        out = io.StringIO()
        actions.print_item(OpaqueRecord(Path("/n/b.pdf")), out)
        assert out.getvalue() == f"{Path('/n/b.pdf')}\n"


class TestPerform:
    """Tests for perform() dispatch."""

    @pytest.fixture
    def config(self, temp_dir):
        return SarConfig(roots=[temp_dir], editor="vim")

    def test_open_record_uses_editor(self, config):
        """Opening a record opens the editor at its line."""
        record = Record(Path("/n/a.md"), 2, "x")
        with patch("sar.actions.open_in_editor") as open_in_editor:
            actions.perform(Action.OPEN, record, config)
        open_in_editor.assert_called_once_with(Path("/n/a.md"), 2, editor="vim")

    def test_open_opaque_uses_system(self, config):
        """Opening an opaque item uses the system opener."""
        with patch("sar.actions.open_with_system") as open_with_system:
            actions.perform(Action.OPEN, OpaqueRecord(Path("/n/b.pdf")), config)
        open_with_system.assert_called_once_with(Path("/n/b.pdf"))

    def test_reveal(self, config):
        """Reveal works for every item kind."""
        with patch("sar.actions.reveal") as reveal:
            actions.perform(Action.REVEAL, Record(Path("/n/a.md"), 0, "x"), config)
        reveal.assert_called_once_with(Path("/n/a.md"))

    def test_print(self, config):
        """Print dispatches to print_item()."""
        item = OpaqueRecord(Path("/n/b.pdf"))
        with patch("sar.actions.print_item") as print_item:
            actions.perform(Action.PRINT, item, config)
        print_item.assert_called_once_with(item)

    def test_create_new(self, config, temp_dir):
        """Create-new makes an empty note in the first root and opens it."""
        with patch("sar.actions.subprocess.run") as run:
            actions.perform(Action.CREATE_NEW, None, config)

        created = list(temp_dir.glob("*.md"))
        assert len(created) == 1
        assert created[0].read_text() == ""
        run.assert_called_once_with(["vim", str(created[0])], check=False)

    def test_none_does_nothing(self, config):
        """No action, no side effects."""
        with patch("sar.actions.subprocess.run") as run:
            actions.perform(Action.NONE, None, config)
        run.assert_not_called()

    def test_missing_item(self, config):
        """Item actions need an item."""
        with pytest.raises(ValueError):
            actions.perform(Action.OPEN, None, config)
